"""
Pydantic models for pokemon data.

``PokemonBase`` holds every mutable field.  ``PokemonCreate`` and
``PokemonUpdate`` are both full payloads: an update replaces every
field, so anything omitted by the client is reset to its default
(``None`` or an empty tag set).  ``PokemonRead`` adds the identifiers,
the owner and the timestamps.
"""

from datetime import datetime
from typing import Generic, List, Optional, Set, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pokedex_api.app.core.db import MAX_INTEGER


class PokemonBase(BaseModel):
    pokemon_number: int = Field(..., ge=1, le=MAX_INTEGER, examples=[1])
    name: str = Field(..., min_length=1, max_length=100, examples=["Bulbasaur"])
    description: Optional[str] = Field(None, examples=["A strange seed was planted on its back at birth."])
    height_m: Optional[float] = Field(None, gt=0, allow_inf_nan=False, examples=[0.7])
    weight_kg: Optional[float] = Field(None, gt=0, allow_inf_nan=False, examples=[6.9])
    base_experience: Optional[int] = Field(None, ge=0, le=MAX_INTEGER, examples=[64])
    types: Set[str] = Field(default_factory=set, examples=[["Grass", "Poison"]])
    abilities: Set[str] = Field(default_factory=set, examples=[["Overgrow"]])
    hp: int = Field(0, ge=0, le=MAX_INTEGER, examples=[45])
    attack: int = Field(0, ge=0, le=MAX_INTEGER, examples=[49])
    defense: int = Field(0, ge=0, le=MAX_INTEGER, examples=[49])
    special_attack: int = Field(0, ge=0, le=MAX_INTEGER, examples=[65])
    special_defense: int = Field(0, ge=0, le=MAX_INTEGER, examples=[65])
    speed: int = Field(0, ge=0, le=MAX_INTEGER, examples=[45])
    image_url: Optional[str] = Field(None, max_length=2048)
    sprite_url: Optional[str] = Field(None, max_length=2048)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("types", "abilities")
    @classmethod
    def tags_not_blank(cls, value: Set[str]) -> Set[str]:
        tags = {tag.strip() for tag in value}
        if "" in tags:
            raise ValueError("tags must be non-empty strings")
        return tags


class PokemonCreate(PokemonBase):
    """Schema for creating a pokemon.  The owner comes from the caller's token."""
    pass


class PokemonUpdate(PokemonBase):
    """Schema for replacing every mutable field of a pokemon."""
    pass


class PokemonRead(PokemonBase):
    """Schema for reading a pokemon from the API."""

    id: int
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One page of a larger result set.

    ``page`` is zero-based.  ``total_pages`` is ``0`` for an empty
    result set.
    """

    content: List[T]
    total_elements: int
    total_pages: int
    page: int
    size: int
