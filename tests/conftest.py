"""Shared test fixtures: a fresh SQLite database per test and an API client."""

import os

# Settings are read once at import time, so configure before importing the app.
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from httpx import ASGITransport, AsyncClient

from pokedex_api.app.core.config import settings
from pokedex_api.app.core.db import init_db
from pokedex_api.app.main import app
from pokedex_api.app.schemas.pokemon import PokemonCreate
from pokedex_api.app.schemas.user import Role, UserCreate
from pokedex_api.app.services.user_service import UserService


ASH_PASSWORD = "pikachu123"
ADMIN_PASSWORD = "professor-oak"


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch):
    """Point the app at an empty database file and migrate it."""
    monkeypatch.setattr(settings, "database_url", str(tmp_path / "pokedex-test.db"))
    monkeypatch.setattr(settings, "owner_delete_policy", "detach")
    init_db()
    yield


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
async def ash():
    return await UserService.register_user(
        UserCreate(username="ash", email="ash@example.com", password=ASH_PASSWORD, first_name="Ash")
    )


@pytest.fixture
async def misty():
    return await UserService.register_user(
        UserCreate(username="misty", email="misty@example.com", password="staryu123")
    )


@pytest.fixture
async def admin():
    return await UserService.create_user(
        UserCreate(username="oak", email="oak@example.com", password=ADMIN_PASSWORD),
        role=Role.ADMIN,
    )


@pytest.fixture
async def ash_headers(ash):
    _, token = await UserService.authenticate("ash", ASH_PASSWORD)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def misty_headers(misty):
    _, token = await UserService.authenticate("misty", "staryu123")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def admin_headers(admin):
    _, token = await UserService.authenticate("oak", ADMIN_PASSWORD)
    return {"Authorization": f"Bearer {token}"}


def make_pokemon(number: int, name: str, **fields) -> PokemonCreate:
    """Build a creation payload with sensible defaults for the other fields."""
    payload = {
        "pokemon_number": number,
        "name": name,
        "description": f"{name} description",
        "height_m": 0.7,
        "weight_kg": 6.9,
        "base_experience": 64,
        "types": {"Grass", "Poison"},
        "abilities": {"Overgrow"},
        "hp": 45,
        "attack": 49,
        "defense": 49,
        "special_attack": 65,
        "special_defense": 65,
        "speed": 45,
        "image_url": f"https://img.example.com/{number}.png",
        "sprite_url": None,
    }
    payload.update(fields)
    return PokemonCreate(**payload)
