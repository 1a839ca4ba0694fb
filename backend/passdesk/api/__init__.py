"""HTTP surface: routes, dependencies, middleware."""
