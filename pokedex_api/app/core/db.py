"""
SQLite database integration and simple migration system.

This module provides functions for obtaining a database connection
(``get_connection``) and applying migrations on application start
(``init_db``).  Every service call opens its own connection, runs its
statements inside one transaction and closes the connection again.

Uniqueness of usernames, e‑mails and pokemon numbers is enforced by
``UNIQUE`` constraints so that two concurrent inserts can never both
succeed; services translate the resulting ``sqlite3.IntegrityError``
into domain errors.

The migration mechanism stores applied migration versions in the
``migrations`` table and executes new migrations in order.
"""

import logging
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .config import settings


logger = logging.getLogger(__name__)

# Upper bound for ids, numbers, stats and page indexes accepted from
# clients; larger values would overflow SQLite's INTEGER binding.
MAX_INTEGER = 2**31 - 1


MIGRATIONS: list[tuple[int, str]] = [
    # Migration 1: initial schema
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL UNIQUE COLLATE NOCASE,
            email TEXT NOT NULL UNIQUE COLLATE NOCASE,
            password TEXT NOT NULL,
            first_name TEXT,
            last_name TEXT,
            role TEXT NOT NULL DEFAULT 'STANDARD' CHECK (role IN ('STANDARD', 'ADMIN')),
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS pokemons (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            pokemon_number INTEGER NOT NULL UNIQUE CHECK (pokemon_number > 0),
            name TEXT NOT NULL,
            description TEXT,
            height_m REAL,
            weight_kg REAL,
            base_experience INTEGER,
            hp INTEGER NOT NULL DEFAULT 0,
            attack INTEGER NOT NULL DEFAULT 0,
            defense INTEGER NOT NULL DEFAULT 0,
            special_attack INTEGER NOT NULL DEFAULT 0,
            special_defense INTEGER NOT NULL DEFAULT 0,
            speed INTEGER NOT NULL DEFAULT 0,
            image_url TEXT,
            sprite_url TEXT,
            user_id INTEGER,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE SET NULL
        );

        CREATE TABLE IF NOT EXISTS pokemon_types (
            pokemon_id INTEGER NOT NULL,
            type TEXT NOT NULL,
            PRIMARY KEY (pokemon_id, type),
            FOREIGN KEY(pokemon_id) REFERENCES pokemons(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS pokemon_abilities (
            pokemon_id INTEGER NOT NULL,
            ability TEXT NOT NULL,
            PRIMARY KEY (pokemon_id, ability),
            FOREIGN KEY(pokemon_id) REFERENCES pokemons(id) ON DELETE CASCADE
        );
        """,
    ),
    # Migration 2: indices for the catalog queries
    (
        2,
        """
        CREATE INDEX IF NOT EXISTS idx_pokemons_user_id ON pokemons(user_id);
        CREATE INDEX IF NOT EXISTS idx_pokemons_name ON pokemons(name);
        CREATE INDEX IF NOT EXISTS idx_pokemon_types_type ON pokemon_types(type);
        """,
    ),
]


def get_database_path() -> str:
    """Compute the path to the SQLite database file.

    If ``settings.database_url`` is an absolute path, use it directly.
    Otherwise resolve it relative to the project root.
    """
    db_url = settings.database_url
    if os.path.isabs(db_url):
        return db_url
    base_dir = Path(__file__).resolve().parent.parent.parent.parent
    return str((base_dir / db_url).resolve())


def _casefold(value):
    return value.casefold() if isinstance(value, str) else value


def get_connection() -> sqlite3.Connection:
    """Create and return a new SQLite connection.

    Rows are returned as ``sqlite3.Row`` so columns can be accessed by
    name.  Foreign key enforcement is switched on for the lifetime of
    the connection; SQLite leaves it off by default, which would
    silently bypass the ``REFERENCES`` clauses above.
    A ``casefold`` SQL function is registered for case-insensitive
    matching of non-ASCII text.
    """
    conn = sqlite3.connect(get_database_path())
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    # SQLite's lower() only folds ASCII.
    conn.create_function("casefold", 1, _casefold, deterministic=True)
    return conn


@contextmanager
def get_cursor() -> Iterator[sqlite3.Cursor]:
    """Yield a cursor; commit on success, roll back on error, always close."""
    conn = get_connection()
    try:
        yield conn.cursor()
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db() -> None:
    """Initialise the database and apply pending migrations.

    Creates the ``migrations`` table if it does not exist, checks the
    current schema version, and applies any new migrations from
    ``MIGRATIONS``.  To change the schema, append a migration with an
    incremented version number.
    """
    with get_cursor() as cursor:
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
        )
        cursor.execute("SELECT MAX(version) AS version FROM migrations")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] is not None else 0

        for version, sql in MIGRATIONS:
            if version > current_version:
                cursor.executescript(sql)
                cursor.execute(
                    "INSERT INTO migrations (version) VALUES (?)", (version,)
                )
                logger.info("Applied database migration %s", version)
                current_version = version
