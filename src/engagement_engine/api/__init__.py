"""HTTP API - FastAPI routes, dependencies and middleware."""
