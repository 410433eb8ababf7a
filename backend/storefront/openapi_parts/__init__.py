"""Modular pieces for the programmatic OpenAPI builder.

This package holds the entity registry and small helpers that the main
builder imports to keep spec generation readable as the API grows.
"""

__all__ = [
    "constants",
    "helpers",
]
