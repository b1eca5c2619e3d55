"""
Application package initializer.

The API is organised by layer: ``core`` (configuration, database,
security, errors, logging), ``schemas`` (pydantic payloads),
``services`` (business logic) and ``api`` (versioned routers).
"""

from .main import app  # noqa: F401
