"""
Pokemon endpoints for API v1.

Every route requires a bearer token.  New pokemons are owned by the
caller; replacing or deleting a pokemon is allowed to its owner and to
administrators.
"""

from typing import List

from fastapi import APIRouter, Depends, Path, Query, Response, status

from pokedex_api.app.core.config import settings
from pokedex_api.app.core.db import MAX_INTEGER
from pokedex_api.app.core.errors import ForbiddenError, NotFoundError
from pokedex_api.app.core.security import TokenClaims, get_current_user
from pokedex_api.app.schemas.pokemon import Page, PokemonCreate, PokemonRead, PokemonUpdate
from pokedex_api.app.services.pokemon_service import PokemonService


router = APIRouter()


def _page_size(size: int | None) -> int:
    return settings.default_page_size if size is None else size


async def _get_for_mutation(pokemon_id: int, current_user: TokenClaims) -> PokemonRead:
    pokemon = await PokemonService.get_pokemon_by_id(pokemon_id)
    if pokemon is None:
        raise NotFoundError(f"Pokemon {pokemon_id} not found")
    if not current_user.is_admin and pokemon.user_id != current_user.user_id:
        raise ForbiddenError("Only the owner or an administrator may modify this pokemon")
    return pokemon


@router.get("/", response_model=Page[PokemonRead])
async def list_pokemons(
    page: int = Query(0, ge=0, le=MAX_INTEGER),
    size: int | None = Query(None, ge=1, le=settings.max_page_size),
    sort_by: str = Query("id"),
    order: str = Query("asc"),
    current_user: TokenClaims = Depends(get_current_user),
) -> Page[PokemonRead]:
    """Page through the catalog.

    - **page**: zero-based page index.
    - **size**: page length (defaults to the configured page size).
    - **sort_by**: `id`, `pokemon_number`, `name`, `base_experience`, a stat, or `created_at`.
    - **order**: `asc` or `desc`.
    """
    return await PokemonService.list_pokemons(page, _page_size(size), sort_by, order)


@router.get("/search", response_model=List[PokemonRead])
async def search_pokemons(
    name: str = Query(..., min_length=1),
    current_user: TokenClaims = Depends(get_current_user),
) -> List[PokemonRead]:
    """Search pokemons by name (case-insensitive substring)."""
    return await PokemonService.search_by_name(name)


@router.get("/range", response_model=List[PokemonRead])
async def pokemons_in_range(
    start: int = Query(..., ge=0, le=MAX_INTEGER),
    end: int = Query(..., ge=0, le=MAX_INTEGER),
    current_user: TokenClaims = Depends(get_current_user),
) -> List[PokemonRead]:
    """Pokemons whose number lies in ``[start, end]``."""
    return await PokemonService.list_by_number_range(start, end)


@router.get("/my-pokemons", response_model=Page[PokemonRead])
async def my_pokemons(
    page: int = Query(0, ge=0, le=MAX_INTEGER),
    size: int | None = Query(None, ge=1, le=settings.max_page_size),
    current_user: TokenClaims = Depends(get_current_user),
) -> Page[PokemonRead]:
    """Pokemons owned by the authenticated caller."""
    return await PokemonService.list_by_owner(current_user.user_id, page, _page_size(size))


@router.get("/user/{username}", response_model=Page[PokemonRead])
async def pokemons_of_user(
    username: str,
    page: int = Query(0, ge=0, le=MAX_INTEGER),
    size: int | None = Query(None, ge=1, le=settings.max_page_size),
    current_user: TokenClaims = Depends(get_current_user),
) -> Page[PokemonRead]:
    return await PokemonService.list_by_username(username, page, _page_size(size))


@router.get("/type/{pokemon_type}", response_model=List[PokemonRead])
async def pokemons_by_type(
    pokemon_type: str,
    current_user: TokenClaims = Depends(get_current_user),
) -> List[PokemonRead]:
    return await PokemonService.list_by_type(pokemon_type)


@router.get("/number/{pokemon_number}", response_model=PokemonRead)
async def get_pokemon_by_number(
    pokemon_number: int = Path(..., ge=0, le=MAX_INTEGER),
    current_user: TokenClaims = Depends(get_current_user),
) -> PokemonRead:
    pokemon = await PokemonService.get_pokemon_by_number(pokemon_number)
    if pokemon is None:
        raise NotFoundError(f"Pokemon number {pokemon_number} not found")
    return pokemon


@router.get("/{pokemon_id}", response_model=PokemonRead)
async def get_pokemon(
    pokemon_id: int = Path(..., ge=0, le=MAX_INTEGER),
    current_user: TokenClaims = Depends(get_current_user),
) -> PokemonRead:
    pokemon = await PokemonService.get_pokemon_by_id(pokemon_id)
    if pokemon is None:
        raise NotFoundError(f"Pokemon {pokemon_id} not found")
    return pokemon


@router.post("/", response_model=PokemonRead, status_code=status.HTTP_201_CREATED)
async def create_pokemon(
    pokemon: PokemonCreate,
    current_user: TokenClaims = Depends(get_current_user),
) -> PokemonRead:
    """Create a pokemon owned by the caller.  409 if the number is taken."""
    return await PokemonService.create_pokemon(pokemon, current_user.user_id)


@router.put("/{pokemon_id}", response_model=PokemonRead)
async def update_pokemon(
    pokemon: PokemonUpdate,
    pokemon_id: int = Path(..., ge=0, le=MAX_INTEGER),
    current_user: TokenClaims = Depends(get_current_user),
) -> PokemonRead:
    """Replace every field of a pokemon.

    This is not a partial update: omitted optional fields are cleared
    and the tag sets are replaced.
    """
    await _get_for_mutation(pokemon_id, current_user)
    updated = await PokemonService.update_pokemon(pokemon_id, pokemon)
    if updated is None:
        raise NotFoundError(f"Pokemon {pokemon_id} not found")
    return updated


@router.delete("/{pokemon_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_pokemon(
    pokemon_id: int = Path(..., ge=0, le=MAX_INTEGER),
    current_user: TokenClaims = Depends(get_current_user),
) -> Response:
    await _get_for_mutation(pokemon_id, current_user)
    if not await PokemonService.delete_pokemon(pokemon_id):
        raise NotFoundError(f"Pokemon {pokemon_id} not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
