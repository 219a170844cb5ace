"""Endpoint modules: request building and response parsing per resource."""
