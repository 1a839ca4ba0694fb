"""Persistence: declarative base, engine and session factory."""
