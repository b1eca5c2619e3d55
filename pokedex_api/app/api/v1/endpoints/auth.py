"""
Authentication endpoints for API v1.

Registration and login are the only routes reachable without a bearer
token.  ``/auth/me`` returns the profile behind the caller's token.
"""

import logging

from fastapi import APIRouter, Depends, status

from pokedex_api.app.core.errors import NotFoundError
from pokedex_api.app.core.security import TokenClaims, get_current_user
from pokedex_api.app.schemas.user import LoginRequest, TokenResponse, UserCreate, UserRead
from pokedex_api.app.services.user_service import UserService


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register(user: UserCreate) -> UserRead:
    """Register a new user.

    The account is always created with role ``STANDARD``.  Returns 409
    if the username or e‑mail is already in use.
    """
    created = await UserService.register_user(user)
    logger.info("New user registered: %s", created.username)
    return created


@router.post("/login", response_model=TokenResponse)
async def login(credentials: LoginRequest) -> TokenResponse:
    """Authenticate with username and password and receive a bearer token."""
    user, token = await UserService.authenticate(credentials.username, credentials.password)
    return TokenResponse(access_token=token, token_type="bearer", user=user)


@router.get("/me", response_model=UserRead)
async def me(current_user: TokenClaims = Depends(get_current_user)) -> UserRead:
    user = await UserService.get_user_by_id(current_user.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user
