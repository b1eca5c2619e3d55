"""
Security helpers for password hashing and JWT authentication.

This module implements a lightweight JSON Web Token (JWT) mechanism
using HMAC‑SHA256 signatures and base64url encoding.  Tokens embed the
user id (``sub``), username and role plus an expiration timestamp
(``exp``).  A secret key from the application settings is used to sign
and verify the token.  Tokens are self-contained: nothing is persisted
when they are issued, so the only way a token stops working is by
expiring.

Passwords are hashed with PBKDF2‑HMAC‑SHA256 and a random salt per
password.

The FastAPI dependencies at the bottom of the module (``get_current_user``
and ``require_roles``) turn a bearer token into an explicit
``TokenClaims`` value which endpoints hand to the services.
"""

import base64
import hashlib
import hmac
import json
import os
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .errors import ForbiddenError, UnauthorizedError
from ..schemas.user import Role


PBKDF2_ITERATIONS = 100_000


def _b64_url_encode(data: bytes) -> str:
    """Base64‑url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64‑url encoded string, adding padding if necessary."""
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    """Compute HMAC‑SHA256 signature of a message using the given secret."""
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def create_access_token(data: Dict[str, Any], expires_delta: Optional[int] = None) -> str:
    """Create a signed JWT token with the given payload.

    The payload is extended with an ``exp`` field representing the
    expiration time as a UNIX timestamp.  The token is a string of the
    form ``header.payload.signature``, where each part is base64url
    encoded.  Clients send it back as ``Authorization: Bearer <token>``.

    Parameters
    ----------
    data : dict
        Claims to embed in the token (e.g. ``{"sub": "1", "role": "ADMIN"}``).
    expires_delta : Optional[int]
        Lifetime of the token in seconds.  Defaults to
        ``settings.access_token_expire_minutes * 60``.
    """
    to_encode = data.copy()
    exp_seconds = expires_delta if expires_delta is not None else settings.access_token_expire_minutes * 60
    to_encode["exp"] = int(time.time()) + exp_seconds
    header = {"alg": "HS256", "typ": "JWT"}
    header_b64 = _b64_url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_b64 = _b64_url_encode(json.dumps(to_encode, separators=(",", ":")).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    signature_b64 = _b64_url_encode(_sign(signing_input, settings.secret_key))
    return f"{header_b64}.{payload_b64}.{signature_b64}"


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify and decode a JWT token.

    Returns the payload dictionary when the signature matches and the
    token has not expired, otherwise ``None``.  Malformed tokens of any
    kind also yield ``None``.
    """
    parts = token.split(".")
    if len(parts) != 3:
        return None
    header_b64, payload_b64, signature_b64 = parts
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    try:
        header = json.loads(_b64_url_decode(header_b64))
        actual_sig = _b64_url_decode(signature_b64)
        data = json.loads(_b64_url_decode(payload_b64))
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(header, dict) or header.get("alg") != "HS256":
        return None
    # Constant‑time comparison to prevent timing attacks
    if not hmac.compare_digest(_sign(signing_input, settings.secret_key), actual_sig):
        return None
    if not isinstance(data, dict):
        return None
    try:
        if data.get("exp") is None or int(data["exp"]) < int(time.time()):
            return None
    except (TypeError, ValueError):
        return None
    return data


@dataclass(frozen=True)
class TokenClaims:
    """Identity and role of the caller, as proven by a bearer token."""

    user_id: int
    username: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def issue_token(user_id: int, username: str, role: Role) -> str:
    """Issue an access token bound to a user's id and role."""
    return create_access_token({"sub": str(user_id), "username": username, "role": role.value})


def validate_token(token: str) -> TokenClaims:
    """Turn a token into ``TokenClaims``.

    Raises ``UnauthorizedError`` when the signature is invalid, the
    token has expired or the claims are malformed.
    """
    payload = decode_access_token(token)
    if not payload:
        raise UnauthorizedError("Invalid or expired token")
    try:
        return TokenClaims(
            user_id=int(payload["sub"]),
            username=str(payload.get("username", "")),
            role=Role(payload["role"]),
        )
    except (KeyError, TypeError, ValueError):
        raise UnauthorizedError("Invalid or expired token")


security = HTTPBearer(auto_error=False)


def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> TokenClaims:
    """Dependency that resolves the authenticated caller.

    Raises ``UnauthorizedError`` (HTTP 401) when the ``Authorization``
    header is missing or the token does not validate.
    """
    if credentials is None:
        raise UnauthorizedError("Not authenticated")
    return validate_token(credentials.credentials)


# ---------------------------------------------------------------------------
# Role-based access control (RBAC) helpers
# ---------------------------------------------------------------------------

def require_roles(*roles: Role) -> Callable[[TokenClaims], TokenClaims]:
    """Dependency factory to enforce that the current user has one of the given roles.

    Use it in endpoints via ``Depends(require_roles(Role.ADMIN))``.  If
    the authenticated user holds none of the roles, ``ForbiddenError``
    (HTTP 403) is raised.
    """

    def _role_dependency(current_user: TokenClaims = Depends(get_current_user)) -> TokenClaims:
        if current_user.role not in roles:
            raise ForbiddenError("Insufficient permissions")
        return current_user

    return _role_dependency


def ensure_self_or_admin(current_user: TokenClaims, user_id: int) -> None:
    """Allow administrators, or a user acting on their own account."""
    if not current_user.is_admin and current_user.user_id != user_id:
        raise ForbiddenError("Insufficient permissions")


def hash_password(password: str) -> str:
    """Hash a password using PBKDF2‑HMAC with SHA‑256.

    A 16‑byte random salt is generated for each call, so hashing the
    same password twice gives two different strings.  The result
    contains the salt and hash in hex, separated by ``$``.
    """
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return f"{salt.hex()}${dk.hex()}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a stored salt+hash string.

    A stored value that is not in ``salt$hash`` form never verifies.
    """
    try:
        salt_hex, hash_hex = hashed_password.split("$", 1)
        salt = bytes.fromhex(salt_hex)
        stored_hash = bytes.fromhex(hash_hex)
    except (AttributeError, ValueError):
        return False
    dk = hashlib.pbkdf2_hmac("sha256", plain_password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return hmac.compare_digest(dk, stored_hash)
