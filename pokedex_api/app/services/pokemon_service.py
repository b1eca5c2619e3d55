"""
Business logic for the pokemon catalog.

``PokemonService`` creates, queries, replaces and deletes catalog
entries.  Each pokemon carries a unique ``pokemon_number``; the
``UNIQUE`` constraint on that column makes the uniqueness check and
the insert a single atomic step, and a violation is reported as
``ConflictError``.  Type and ability tags live in their own tables and
are written in the same transaction as the pokemon row.

Owners are resolved through ``UserService``; this module never reads
the ``users`` table directly.
"""

import logging
import math
import sqlite3
from typing import Dict, Iterable, List, Optional, Set, Tuple

from pokedex_api.app.core.db import MAX_INTEGER, get_connection
from pokedex_api.app.core.errors import ConflictError, NotFoundError, ValidationError
from pokedex_api.app.schemas.pokemon import Page, PokemonCreate, PokemonRead, PokemonUpdate
from pokedex_api.app.services.user_service import UserService


logger = logging.getLogger(__name__)

POKEMON_COLUMNS = (
    "id, pokemon_number, name, description, height_m, weight_kg, base_experience, "
    "hp, attack, defense, special_attack, special_defense, speed, image_url, sprite_url, "
    "user_id, created_at, updated_at"
)

# Columns written by create and overwritten by update, in SQL order.
MUTABLE_COLUMNS = (
    "name",
    "description",
    "height_m",
    "weight_kg",
    "base_experience",
    "hp",
    "attack",
    "defense",
    "special_attack",
    "special_defense",
    "speed",
    "image_url",
    "sprite_url",
)

SORTABLE_COLUMNS = {
    "id",
    "pokemon_number",
    "name",
    "base_experience",
    "hp",
    "attack",
    "defense",
    "special_attack",
    "special_defense",
    "speed",
    "created_at",
}


def _load_tags(cursor: sqlite3.Cursor, pokemon_ids: List[int]) -> Tuple[Dict[int, Set[str]], Dict[int, Set[str]]]:
    """Fetch type and ability tags for many pokemons in two queries."""
    types: Dict[int, Set[str]] = {pid: set() for pid in pokemon_ids}
    abilities: Dict[int, Set[str]] = {pid: set() for pid in pokemon_ids}
    if not pokemon_ids:
        return types, abilities
    placeholders = ", ".join("?" for _ in pokemon_ids)
    for row in cursor.execute(
        f"SELECT pokemon_id, type FROM pokemon_types WHERE pokemon_id IN ({placeholders})",
        tuple(pokemon_ids),
    ).fetchall():
        types[row["pokemon_id"]].add(row["type"])
    for row in cursor.execute(
        f"SELECT pokemon_id, ability FROM pokemon_abilities WHERE pokemon_id IN ({placeholders})",
        tuple(pokemon_ids),
    ).fetchall():
        abilities[row["pokemon_id"]].add(row["ability"])
    return types, abilities


def _rows_to_pokemons(cursor: sqlite3.Cursor, rows: Iterable[sqlite3.Row]) -> List[PokemonRead]:
    rows = list(rows)
    types, abilities = _load_tags(cursor, [row["id"] for row in rows])
    return [
        PokemonRead(
            id=row["id"],
            pokemon_number=row["pokemon_number"],
            name=row["name"],
            description=row["description"],
            height_m=row["height_m"],
            weight_kg=row["weight_kg"],
            base_experience=row["base_experience"],
            types=types[row["id"]],
            abilities=abilities[row["id"]],
            hp=row["hp"],
            attack=row["attack"],
            defense=row["defense"],
            special_attack=row["special_attack"],
            special_defense=row["special_defense"],
            speed=row["speed"],
            image_url=row["image_url"],
            sprite_url=row["sprite_url"],
            user_id=row["user_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
        for row in rows
    ]


def _write_tags(cursor: sqlite3.Cursor, pokemon_id: int, types: Set[str], abilities: Set[str]) -> None:
    cursor.execute("DELETE FROM pokemon_types WHERE pokemon_id = ?", (pokemon_id,))
    cursor.execute("DELETE FROM pokemon_abilities WHERE pokemon_id = ?", (pokemon_id,))
    cursor.executemany(
        "INSERT INTO pokemon_types (pokemon_id, type) VALUES (?, ?)",
        [(pokemon_id, tag) for tag in sorted(types)],
    )
    cursor.executemany(
        "INSERT INTO pokemon_abilities (pokemon_id, ability) VALUES (?, ?)",
        [(pokemon_id, tag) for tag in sorted(abilities)],
    )


def _check_paging(page: int, size: int) -> None:
    if page < 0:
        raise ValidationError("Page index must not be negative")
    if size < 1:
        raise ValidationError("Page size must be at least 1")
    if page > MAX_INTEGER or size > MAX_INTEGER:
        raise ValidationError("Page index or size too large")


class PokemonService:
    """Service for managing the pokemon catalog."""

    @classmethod
    async def create_pokemon(cls, data: PokemonCreate, owner_id: int) -> PokemonRead:
        """Create a pokemon owned by ``owner_id``.

        Raises ``NotFoundError`` if the owner does not exist and
        ``ConflictError`` if the pokemon number is already taken.  In
        both cases nothing is written.
        """
        owner = await UserService.get_user_by_id(owner_id)
        if owner is None:
            raise NotFoundError(f"User {owner_id} not found")
        values = [getattr(data, column) for column in MUTABLE_COLUMNS]
        conn = get_connection()
        try:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    f"INSERT INTO pokemons (pokemon_number, {', '.join(MUTABLE_COLUMNS)}, user_id) "
                    f"VALUES (?, {', '.join('?' for _ in MUTABLE_COLUMNS)}, ?)",
                    (data.pokemon_number, *values, owner_id),
                )
                pokemon_id = cursor.lastrowid
                _write_tags(cursor, pokemon_id, data.types, data.abilities)
            except sqlite3.IntegrityError as e:
                conn.rollback()
                if "pokemons.pokemon_number" in str(e):
                    raise ConflictError("Pokemon with this number already exists") from e
                if "FOREIGN KEY" in str(e):
                    # Owner deleted between the lookup and the insert.
                    raise NotFoundError(f"User {owner_id} not found") from e
                raise
            conn.commit()
            row = cursor.execute(f"SELECT {POKEMON_COLUMNS} FROM pokemons WHERE id = ?", (pokemon_id,)).fetchone()
            logger.info(
                "Created new Pokemon: %s (Number: %s) by user: %s",
                data.name, data.pokemon_number, owner.username,
            )
            return _rows_to_pokemons(cursor, [row])[0]
        finally:
            conn.close()

    @classmethod
    async def get_pokemon_by_id(cls, pokemon_id: int) -> Optional[PokemonRead]:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(f"SELECT {POKEMON_COLUMNS} FROM pokemons WHERE id = ?", (pokemon_id,)).fetchone()
            return _rows_to_pokemons(cursor, [row])[0] if row else None
        finally:
            conn.close()

    @classmethod
    async def get_pokemon_by_number(cls, pokemon_number: int) -> Optional[PokemonRead]:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                f"SELECT {POKEMON_COLUMNS} FROM pokemons WHERE pokemon_number = ?", (pokemon_number,)
            ).fetchone()
            return _rows_to_pokemons(cursor, [row])[0] if row else None
        finally:
            conn.close()

    @classmethod
    async def _paged(
        cls,
        where: str,
        params: tuple,
        page: int,
        size: int,
        sort_by: str = "id",
        order: str = "asc",
    ) -> Page[PokemonRead]:
        _check_paging(page, size)
        if sort_by not in SORTABLE_COLUMNS:
            sort_by = "id"
        order = order.lower()
        if order not in {"asc", "desc"}:
            order = "asc"
        conn = get_connection()
        try:
            cursor = conn.cursor()
            total = cursor.execute(f"SELECT COUNT(*) AS count FROM pokemons {where}", params).fetchone()["count"]
            rows = cursor.execute(
                f"SELECT {POKEMON_COLUMNS} FROM pokemons {where} "
                f"ORDER BY {sort_by} {order}, id {order} LIMIT ? OFFSET ?",
                (*params, size, page * size),
            ).fetchall()
            return Page[PokemonRead](
                content=_rows_to_pokemons(cursor, rows),
                total_elements=total,
                total_pages=math.ceil(total / size),
                page=page,
                size=size,
            )
        finally:
            conn.close()

    @classmethod
    async def list_pokemons(
        cls,
        page: int = 0,
        size: int = 20,
        sort_by: str = "id",
        order: str = "asc",
    ) -> Page[PokemonRead]:
        """Return one page of the catalog.

        - ``page`` is zero-based, ``size`` is the page length.
        - ``sort_by``: one of ``SORTABLE_COLUMNS``; anything else sorts by id.
        - ``order``: ``asc`` or ``desc``.

        Raises ``ValidationError`` for a negative page or a size below 1.
        """
        return await cls._paged("", (), page, size, sort_by, order)

    @classmethod
    async def list_by_owner(cls, owner_id: int, page: int = 0, size: int = 20) -> Page[PokemonRead]:
        """Return a page of the pokemons owned by ``owner_id``.

        An unknown owner simply yields an empty page.
        """
        return await cls._paged("WHERE user_id = ?", (owner_id,), page, size)

    @classmethod
    async def list_by_username(cls, username: str, page: int = 0, size: int = 20) -> Page[PokemonRead]:
        owner = await UserService.get_user_by_username(username)
        if owner is None:
            _check_paging(page, size)
            return Page[PokemonRead](content=[], total_elements=0, total_pages=0, page=page, size=size)
        return await cls.list_by_owner(owner.id, page, size)

    @classmethod
    async def list_by_type(cls, pokemon_type: str) -> List[PokemonRead]:
        """Pokemons whose type set contains ``pokemon_type`` (exact, case-sensitive)."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            rows = cursor.execute(
                f"SELECT {POKEMON_COLUMNS} FROM pokemons WHERE id IN "
                "(SELECT pokemon_id FROM pokemon_types WHERE type = ?) ORDER BY id",
                (pokemon_type,),
            ).fetchall()
            return _rows_to_pokemons(cursor, rows)
        finally:
            conn.close()

    @classmethod
    async def search_by_name(cls, fragment: str) -> List[PokemonRead]:
        """Case-insensitive substring search on the name."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            rows = cursor.execute(
                f"SELECT {POKEMON_COLUMNS} FROM pokemons "
                "WHERE instr(casefold(name), ?) > 0 ORDER BY id",
                (fragment.casefold(),),
            ).fetchall()
            return _rows_to_pokemons(cursor, rows)
        finally:
            conn.close()

    @classmethod
    async def list_by_number_range(cls, start: int, end: int) -> List[PokemonRead]:
        """Pokemons with ``start <= pokemon_number <= end``; empty when ``start > end``."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            rows = cursor.execute(
                f"SELECT {POKEMON_COLUMNS} FROM pokemons WHERE pokemon_number BETWEEN ? AND ? "
                "ORDER BY pokemon_number",
                (start, end),
            ).fetchall()
            return _rows_to_pokemons(cursor, rows)
        finally:
            conn.close()

    @classmethod
    async def update_pokemon(cls, pokemon_id: int, data: PokemonUpdate) -> Optional[PokemonRead]:
        """Replace every mutable field of a pokemon, tags included.

        The pokemon number may change, but not to a number held by a
        different pokemon (``ConflictError``).  Returns ``None`` if the
        pokemon does not exist.  The owner is left unchanged.
        """
        values = [getattr(data, column) for column in MUTABLE_COLUMNS]
        assignments = ", ".join(f"{column} = ?" for column in MUTABLE_COLUMNS)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if not cursor.execute("SELECT id FROM pokemons WHERE id = ?", (pokemon_id,)).fetchone():
                return None
            clash = cursor.execute(
                "SELECT id FROM pokemons WHERE pokemon_number = ? AND id != ?",
                (data.pokemon_number, pokemon_id),
            ).fetchone()
            if clash:
                raise ConflictError("Pokemon with this number already exists")
            try:
                cursor.execute(
                    f"UPDATE pokemons SET pokemon_number = ?, {assignments}, "
                    "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (data.pokemon_number, *values, pokemon_id),
                )
                _write_tags(cursor, pokemon_id, data.types, data.abilities)
            except sqlite3.IntegrityError as e:
                conn.rollback()
                raise ConflictError("Pokemon with this number already exists") from e
            conn.commit()
            row = cursor.execute(f"SELECT {POKEMON_COLUMNS} FROM pokemons WHERE id = ?", (pokemon_id,)).fetchone()
            logger.info("Updated Pokemon: %s (Number: %s)", data.name, data.pokemon_number)
            return _rows_to_pokemons(cursor, [row])[0]
        finally:
            conn.close()

    @classmethod
    async def delete_pokemon(cls, pokemon_id: int) -> bool:
        """Delete a pokemon and its tags.  ``False`` if it does not exist."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM pokemons WHERE id = ?", (pokemon_id,))
            conn.commit()
            if cursor.rowcount == 0:
                return False
            logger.info("Deleted Pokemon with id: %s", pokemon_id)
            return True
        finally:
            conn.close()
