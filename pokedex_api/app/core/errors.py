"""
Domain exceptions raised by the service layer.

Every error carries a human readable ``message``, a stable ``code``
and the HTTP status the API layer should answer with.  Services raise
these instead of returning sentinel values for failures; plain
lookups still return ``None`` when nothing matches, and list
operations return empty sequences.

The exception handlers installed by ``create_app`` translate any
``PokedexError`` into a JSON body of the form
``{"detail": <message>, "code": <code>}``.
"""

from typing import Any, Dict, Optional


class PokedexError(Exception):
    """Base class for all errors raised by the Pokedex services."""

    code = "POKEDEX_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return None

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.details is not None:
            body["errors"] = self.details
        return body


class NotFoundError(PokedexError):
    """A referenced id, number or username does not exist."""

    code = "NOT_FOUND"
    status_code = 404


class ConflictError(PokedexError):
    """A uniqueness rule (username, email, pokemon number) would be broken."""

    code = "CONFLICT"
    status_code = 409


class UnauthorizedError(PokedexError):
    """Bad credentials, inactive account or an invalid/expired token."""

    code = "UNAUTHORIZED"
    status_code = 401

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return {"WWW-Authenticate": "Bearer"}


class ForbiddenError(PokedexError):
    """Authenticated, but the caller's role or ownership is insufficient."""

    code = "FORBIDDEN"
    status_code = 403


class ValidationError(PokedexError):
    """Malformed or missing input."""

    code = "VALIDATION_ERROR"
    status_code = 422
