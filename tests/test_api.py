"""HTTP surface: authentication, authorization rules and error mapping."""

from conftest import ASH_PASSWORD, make_pokemon
from pokedex_api.app.core.config import settings
from pokedex_api.app.core.security import create_access_token
from pokedex_api.app.services.pokemon_service import PokemonService


BULBASAUR = {
    "pokemon_number": 1,
    "name": "Bulbasaur",
    "description": "A strange seed was planted on its back at birth.",
    "height_m": 0.7,
    "weight_kg": 6.9,
    "base_experience": 64,
    "types": ["Grass", "Poison"],
    "abilities": ["Overgrow"],
    "hp": 45,
    "attack": 49,
    "defense": 49,
    "special_attack": 65,
    "special_defense": 65,
    "speed": 45,
}


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def test_register_login_me_scenario(client):
    res = await client.post(
        "/api/v1/auth/register",
        json={"username": "ash", "email": "ash@example.com", "password": ASH_PASSWORD, "role": "ADMIN"},
    )
    assert res.status_code == 201
    body = res.json()
    assert body["role"] == "STANDARD"
    assert body["is_active"] is True
    assert "password" not in body

    res = await client.post(
        "/api/v1/auth/register",
        json={"username": "ash", "email": "ash2@example.com", "password": "another1"},
    )
    assert res.status_code == 409
    assert res.json()["code"] == "CONFLICT"

    res = await client.post("/api/v1/auth/login", json={"username": "ash", "password": "wrongpassword"})
    assert res.status_code == 401
    assert res.headers["www-authenticate"] == "Bearer"

    res = await client.post("/api/v1/auth/login", json={"username": "ash", "password": ASH_PASSWORD})
    assert res.status_code == 200
    token = res.json()["access_token"]
    assert token
    assert res.json()["token_type"] == "bearer"
    assert res.json()["user"]["username"] == "ash"

    res = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 200
    assert res.json()["email"] == "ash@example.com"


async def test_register_validation_errors(client):
    res = await client.post(
        "/api/v1/auth/register",
        json={"username": "   ", "email": "not-an-email", "password": "123"},
    )
    assert res.status_code == 422
    body = res.json()
    assert body["code"] == "VALIDATION_ERROR"
    fields = {error["field"] for error in body["errors"]}
    assert {"body.username", "body.email", "body.password"} <= fields


async def test_protected_routes_require_token(client):
    assert (await client.get("/api/v1/pokemons/")).status_code == 401
    assert (await client.get("/api/v1/auth/me")).status_code == 401
    res = await client.get("/api/v1/pokemons/", headers={"Authorization": "Bearer garbage"})
    assert res.status_code == 401


async def test_expired_token_is_rejected(client, ash):
    token = create_access_token({"sub": str(ash.id), "username": "ash", "role": "STANDARD"}, expires_delta=-1)
    res = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

async def test_listing_users_is_admin_only(client, ash_headers, admin_headers):
    assert (await client.get("/api/v1/users/", headers=ash_headers)).status_code == 403

    res = await client.get("/api/v1/users/", headers=admin_headers)
    assert res.status_code == 200
    assert [u["username"] for u in res.json()] == ["ash", "oak"]


async def test_user_can_read_self_but_not_others(client, ash, misty, ash_headers):
    assert (await client.get(f"/api/v1/users/{ash.id}", headers=ash_headers)).status_code == 200
    assert (await client.get(f"/api/v1/users/{misty.id}", headers=ash_headers)).status_code == 403


async def test_admin_reads_any_user_and_gets_404_for_missing(client, misty, admin_headers):
    assert (await client.get(f"/api/v1/users/{misty.id}", headers=admin_headers)).status_code == 200
    assert (await client.get("/api/v1/users/9999", headers=admin_headers)).status_code == 404


async def test_user_updates_own_profile(client, ash, ash_headers):
    res = await client.put(
        f"/api/v1/users/{ash.id}",
        headers=ash_headers,
        json={"email": "ash@kanto.example.com", "first_name": "Ash", "last_name": "Ketchum", "role": "ADMIN"},
    )
    assert res.status_code == 200
    body = res.json()
    assert body["email"] == "ash@kanto.example.com"
    assert body["last_name"] == "Ketchum"
    assert body["role"] == "STANDARD"


async def test_user_cannot_update_someone_else(client, misty, ash_headers):
    res = await client.put(f"/api/v1/users/{misty.id}", headers=ash_headers, json={"email": "x@example.com"})
    assert res.status_code == 403


async def test_deactivate_and_delete_are_admin_only(client, misty, ash_headers, admin_headers):
    assert (await client.patch(f"/api/v1/users/{misty.id}/deactivate", headers=ash_headers)).status_code == 403
    assert (await client.delete(f"/api/v1/users/{misty.id}", headers=ash_headers)).status_code == 403

    res = await client.patch(f"/api/v1/users/{misty.id}/deactivate", headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["is_active"] is False
    res = await client.post("/api/v1/auth/login", json={"username": "misty", "password": "staryu123"})
    assert res.status_code == 401

    assert (await client.delete(f"/api/v1/users/{misty.id}", headers=admin_headers)).status_code == 204
    assert (await client.delete(f"/api/v1/users/{misty.id}", headers=admin_headers)).status_code == 404
    assert (await client.patch(f"/api/v1/users/{misty.id}/deactivate", headers=admin_headers)).status_code == 404


async def test_delete_owner_under_restrict_policy_conflicts(client, ash, admin_headers, monkeypatch):
    monkeypatch.setattr(settings, "owner_delete_policy", "restrict")
    await PokemonService.create_pokemon(make_pokemon(1, "Bulbasaur"), ash.id)

    res = await client.delete(f"/api/v1/users/{ash.id}", headers=admin_headers)
    assert res.status_code == 409


# ---------------------------------------------------------------------------
# Pokemons
# ---------------------------------------------------------------------------

async def test_create_pokemon_is_owned_by_caller(client, ash, admin, admin_headers):
    res = await client.post("/api/v1/pokemons/", headers=admin_headers, json=BULBASAUR)
    assert res.status_code == 201
    body = res.json()
    assert body["user_id"] == admin.id
    assert sorted(body["types"]) == ["Grass", "Poison"]

    res = await client.post("/api/v1/pokemons/", headers=admin_headers, json={**BULBASAUR, "name": "Ivysaur"})
    assert res.status_code == 409
    assert (await PokemonService.list_pokemons(0, 10)).total_elements == 1


async def test_create_pokemon_validation(client, ash_headers):
    bad = {**BULBASAUR, "pokemon_number": 0, "name": " ", "hp": -1, "types": ["Grass", ""]}
    res = await client.post("/api/v1/pokemons/", headers=ash_headers, json=bad)
    assert res.status_code == 422
    fields = {error["field"] for error in res.json()["errors"]}
    assert {"body.pokemon_number", "body.name", "body.hp", "body.types"} <= fields


async def test_my_pokemons_lists_only_callers_entries(client, ash, misty, ash_headers, misty_headers):
    await client.post("/api/v1/pokemons/", headers=ash_headers, json=BULBASAUR)
    await client.post(
        "/api/v1/pokemons/", headers=misty_headers,
        json={**BULBASAUR, "pokemon_number": 120, "name": "Staryu", "types": ["Water"]},
    )

    res = await client.get("/api/v1/pokemons/my-pokemons", headers=misty_headers)
    assert res.status_code == 200
    body = res.json()
    assert [p["name"] for p in body["content"]] == ["Staryu"]
    assert body["total_elements"] == 1
    assert body["total_pages"] == 1
    assert body["page"] == 0
    assert body["size"] == settings.default_page_size

    res = await client.get("/api/v1/pokemons/user/ash", headers=misty_headers)
    assert [p["name"] for p in res.json()["content"]] == ["Bulbasaur"]


async def test_query_endpoints(client, ash, ash_headers):
    for number, name, types in [(1, "Bulbasaur", {"Grass"}), (4, "Charmander", {"Fire"}), (25, "Pikachu", {"Electric"})]:
        await PokemonService.create_pokemon(make_pokemon(number, name, types=types), ash.id)

    res = await client.get("/api/v1/pokemons/", params={"page": 0, "size": 2}, headers=ash_headers)
    assert res.status_code == 200
    assert res.json()["total_elements"] == 3
    assert res.json()["total_pages"] == 2
    assert len(res.json()["content"]) == 2

    res = await client.get("/api/v1/pokemons/number/25", headers=ash_headers)
    assert res.json()["name"] == "Pikachu"
    assert (await client.get("/api/v1/pokemons/number/151", headers=ash_headers)).status_code == 404
    assert (await client.get("/api/v1/pokemons/9999", headers=ash_headers)).status_code == 404

    res = await client.get("/api/v1/pokemons/search", params={"name": "CHAR"}, headers=ash_headers)
    assert [p["name"] for p in res.json()] == ["Charmander"]

    res = await client.get("/api/v1/pokemons/type/Fire", headers=ash_headers)
    assert [p["name"] for p in res.json()] == ["Charmander"]
    res = await client.get("/api/v1/pokemons/type/Dragon", headers=ash_headers)
    assert res.status_code == 200
    assert res.json() == []

    res = await client.get("/api/v1/pokemons/range", params={"start": 1, "end": 4}, headers=ash_headers)
    assert [p["pokemon_number"] for p in res.json()] == [1, 4]
    res = await client.get("/api/v1/pokemons/range", params={"start": 25, "end": 1}, headers=ash_headers)
    assert res.status_code == 200
    assert res.json() == []

    res = await client.get("/api/v1/pokemons/", params={"size": 0}, headers=ash_headers)
    assert res.status_code == 422


async def test_only_owner_or_admin_can_modify(client, ash, ash_headers, misty_headers, admin_headers):
    pokemon = await PokemonService.create_pokemon(make_pokemon(1, "Bulbasaur"), ash.id)
    replacement = {**BULBASAUR, "name": "Bulbasaur (shiny)"}

    res = await client.put(f"/api/v1/pokemons/{pokemon.id}", headers=misty_headers, json=replacement)
    assert res.status_code == 403
    assert (await client.delete(f"/api/v1/pokemons/{pokemon.id}", headers=misty_headers)).status_code == 403

    res = await client.put(f"/api/v1/pokemons/{pokemon.id}", headers=ash_headers, json=replacement)
    assert res.status_code == 200
    assert res.json()["name"] == "Bulbasaur (shiny)"

    res = await client.put(
        f"/api/v1/pokemons/{pokemon.id}", headers=admin_headers, json={**replacement, "name": "Bulbasaur"}
    )
    assert res.status_code == 200

    assert (await client.delete(f"/api/v1/pokemons/{pokemon.id}", headers=ash_headers)).status_code == 204
    assert (await client.delete(f"/api/v1/pokemons/{pokemon.id}", headers=ash_headers)).status_code == 404
    assert (await client.put(f"/api/v1/pokemons/{pokemon.id}", headers=ash_headers, json=replacement)).status_code == 404


async def test_update_number_collision_conflicts(client, ash, ash_headers):
    first = await PokemonService.create_pokemon(make_pokemon(1, "Bulbasaur"), ash.id)
    await PokemonService.create_pokemon(make_pokemon(2, "Ivysaur"), ash.id)

    res = await client.put(
        f"/api/v1/pokemons/{first.id}", headers=ash_headers, json={**BULBASAUR, "pokemon_number": 2}
    )
    assert res.status_code == 409


async def test_oversized_integers_are_validation_errors(client, ash_headers):
    huge = 99999999999999999999
    calls = [
        client.get(f"/api/v1/pokemons/number/{huge}", headers=ash_headers),
        client.get(f"/api/v1/pokemons/{huge}", headers=ash_headers),
        client.get("/api/v1/pokemons/", params={"page": huge}, headers=ash_headers),
        client.get("/api/v1/pokemons/my-pokemons", params={"page": huge}, headers=ash_headers),
        client.get("/api/v1/pokemons/range", params={"start": 1, "end": huge}, headers=ash_headers),
        client.get(f"/api/v1/users/{huge}", headers=ash_headers),
        client.post("/api/v1/pokemons/", headers=ash_headers, json={**BULBASAUR, "pokemon_number": 2**64}),
        client.post("/api/v1/pokemons/", headers=ash_headers, json={**BULBASAUR, "hp": 2**64}),
    ]
    for call in calls:
        res = await call
        assert res.status_code == 422
        assert res.json()["code"] == "VALIDATION_ERROR"
    assert (await PokemonService.list_pokemons(0, 10)).total_elements == 0


async def test_update_user_rejects_short_password(client, ash, ash_headers):
    res = await client.put(
        f"/api/v1/users/{ash.id}", headers=ash_headers, json={"email": ash.email, "password": "abc"}
    )
    assert res.status_code == 422
    assert [e["field"] for e in res.json()["errors"]] == ["body.password"]
