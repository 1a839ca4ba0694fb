"""Cross-cutting concerns: configuration, logging, metrics, security."""
