"""
User endpoints for API v1.

Listing, deleting and deactivating users is reserved for
administrators.  Reading or updating a single user is allowed to
administrators and to the user themself.
"""

from typing import List

from fastapi import APIRouter, Depends, Path, Response, status

from pokedex_api.app.core.db import MAX_INTEGER
from pokedex_api.app.core.errors import NotFoundError
from pokedex_api.app.core.security import TokenClaims, ensure_self_or_admin, get_current_user, require_roles
from pokedex_api.app.schemas.user import Role, UserRead, UserUpdate
from pokedex_api.app.services.user_service import UserService


router = APIRouter()


@router.get("/", response_model=List[UserRead])
async def list_users(current_user: TokenClaims = Depends(require_roles(Role.ADMIN))) -> List[UserRead]:
    """List all users (admin only)."""
    return await UserService.list_users()


@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: int = Path(..., ge=0, le=MAX_INTEGER),
    current_user: TokenClaims = Depends(get_current_user),
) -> UserRead:
    ensure_self_or_admin(current_user, user_id)
    user = await UserService.get_user_by_id(user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


@router.put("/{user_id}", response_model=UserRead)
async def update_user(
    body: UserUpdate,
    user_id: int = Path(..., ge=0, le=MAX_INTEGER),
    current_user: TokenClaims = Depends(get_current_user),
) -> UserRead:
    """Update a user's names, e‑mail and optionally password.

    Username, role and active flag cannot be changed here.
    """
    ensure_self_or_admin(current_user, user_id)
    user = await UserService.update_user(user_id, body)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int = Path(..., ge=0, le=MAX_INTEGER),
    current_user: TokenClaims = Depends(require_roles(Role.ADMIN)),
) -> Response:
    """Delete a user (admin only).

    What happens to the user's pokemons depends on the configured
    owner delete policy; under ``restrict`` the request fails with 409
    while the user still owns pokemons.
    """
    if not await UserService.delete_user(user_id):
        raise NotFoundError(f"User {user_id} not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{user_id}/deactivate", response_model=UserRead)
async def deactivate_user(
    user_id: int = Path(..., ge=0, le=MAX_INTEGER),
    current_user: TokenClaims = Depends(require_roles(Role.ADMIN)),
) -> UserRead:
    """Deactivate a user account (admin only).  Deactivating twice is harmless."""
    if not await UserService.deactivate_user(user_id):
        raise NotFoundError(f"User {user_id} not found")
    return await UserService.get_user_by_id(user_id)
