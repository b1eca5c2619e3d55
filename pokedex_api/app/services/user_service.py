"""
Business logic for users.

``UserService`` is the user directory: registration, authentication,
lookups and profile maintenance.  It has no notion of who is calling;
role checks happen in the API layer before a method is invoked.

Usernames and e‑mails are unique regardless of letter case.  The
``UNIQUE`` constraints on the ``users`` table enforce this atomically;
an ``sqlite3.IntegrityError`` raised by an insert or update is
reported as ``ConflictError``.
"""

import logging
import sqlite3
from typing import List, Optional, Tuple

from pokedex_api.app.core.config import settings
from pokedex_api.app.core.db import get_connection
from pokedex_api.app.core.errors import ConflictError, UnauthorizedError
from pokedex_api.app.core.security import hash_password, issue_token, verify_password
from pokedex_api.app.schemas.user import Role, UserCreate, UserRead, UserUpdate


logger = logging.getLogger(__name__)

USER_COLUMNS = "id, username, email, first_name, last_name, role, is_active, created_at, updated_at"

DELETE_POLICIES = {"detach", "restrict"}


def _row_to_user(row: sqlite3.Row) -> UserRead:
    return UserRead(
        id=row["id"],
        username=row["username"],
        email=row["email"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        role=Role(row["role"]),
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _conflict_from_integrity_error(exc: sqlite3.IntegrityError) -> ConflictError:
    message = str(exc)
    if "users.username" in message:
        return ConflictError("Username already exists")
    if "users.email" in message:
        return ConflictError("Email already exists")
    return ConflictError("User violates a uniqueness constraint")


class UserService:
    """Service for managing user accounts."""

    @classmethod
    async def register_user(cls, data: UserCreate) -> UserRead:
        """Register a new standard user.

        Registration never grants elevated privileges; administrators
        are created with ``create_user`` from the command line.
        """
        return await cls.create_user(data, role=Role.STANDARD)

    @classmethod
    async def create_user(cls, data: UserCreate, role: Role = Role.STANDARD) -> UserRead:
        """Insert a user, hashing the password first.

        Raises ``ConflictError`` when the username or e‑mail is taken.
        """
        hashed = hash_password(data.password)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    "INSERT INTO users (username, email, password, first_name, last_name, role) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (data.username, data.email, hashed, data.first_name, data.last_name, role.value),
                )
            except sqlite3.IntegrityError as e:
                conn.rollback()
                raise _conflict_from_integrity_error(e) from e
            user_id = cursor.lastrowid
            conn.commit()
            row = cursor.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
            logger.info("Created user %s (id=%s, role=%s)", data.username, user_id, role.value)
            return _row_to_user(row)
        finally:
            conn.close()

    @classmethod
    async def authenticate(cls, username: str, password: str) -> Tuple[UserRead, str]:
        """Check credentials and issue an access token.

        Raises ``UnauthorizedError`` if the user does not exist, is
        deactivated, or the password does not match.
        """
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {USER_COLUMNS}, password FROM users WHERE username = ?",
                (username,),
            ).fetchone()
        finally:
            conn.close()
        if not row or not verify_password(password, row["password"]):
            logger.warning("Failed login attempt for username %s", username)
            raise UnauthorizedError("Invalid credentials")
        if not row["is_active"]:
            logger.warning("Login attempt for deactivated user %s", username)
            raise UnauthorizedError("User account disabled")
        user = _row_to_user(row)
        return user, issue_token(user.id, user.username, user.role)

    @classmethod
    async def list_users(cls) -> List[UserRead]:
        """Return all users ordered by id."""
        conn = get_connection()
        try:
            rows = conn.execute(f"SELECT {USER_COLUMNS} FROM users ORDER BY id").fetchall()
            return [_row_to_user(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def get_user_by_id(cls, user_id: int) -> Optional[UserRead]:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
            return _row_to_user(row) if row else None
        finally:
            conn.close()

    @classmethod
    async def get_user_by_username(cls, username: str) -> Optional[UserRead]:
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {USER_COLUMNS} FROM users WHERE username = ?", (username,)
            ).fetchone()
            return _row_to_user(row) if row else None
        finally:
            conn.close()

    @classmethod
    async def update_user(cls, user_id: int, data: UserUpdate) -> Optional[UserRead]:
        """Overwrite a user's names and e‑mail, optionally the password.

        Username, role, active flag and id are never touched here.
        Returns ``None`` if the user does not exist and raises
        ``ConflictError`` if the new e‑mail belongs to someone else.
        """
        fields = ["first_name = ?", "last_name = ?", "email = ?"]
        values: list = [data.first_name, data.last_name, data.email]
        if data.password:
            fields.append("password = ?")
            values.append(hash_password(data.password))
        values.append(user_id)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    f"UPDATE users SET {', '.join(fields)}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    tuple(values),
                )
            except sqlite3.IntegrityError as e:
                conn.rollback()
                raise _conflict_from_integrity_error(e) from e
            if cursor.rowcount == 0:
                return None
            conn.commit()
            row = cursor.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
            logger.info("Updated user %s", row["username"])
            return _row_to_user(row)
        finally:
            conn.close()

    @classmethod
    async def set_role(cls, user_id: int, role: Role) -> Optional[UserRead]:
        """Change a user's role.  Only reachable from the admin CLI."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE users SET role = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (role.value, user_id),
            )
            if cursor.rowcount == 0:
                return None
            conn.commit()
            row = cursor.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
            logger.info("Assigned role %s to user %s", role.value, row["username"])
            return _row_to_user(row)
        finally:
            conn.close()

    @classmethod
    async def deactivate_user(cls, user_id: int) -> bool:
        """Clear the active flag.  Idempotent; ``False`` if the user is absent."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE users SET is_active = 0, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (user_id,),
            )
            conn.commit()
            if cursor.rowcount == 0:
                return False
            logger.info("Deactivated user with id %s", user_id)
            return True
        finally:
            conn.close()

    @classmethod
    async def delete_user(cls, user_id: int) -> bool:
        """Delete a user.  Returns ``False`` if the user does not exist.

        Pokemons owned by the user are handled according to
        ``settings.owner_delete_policy``:

        * ``detach`` – the pokemons stay in the catalog without an owner;
        * ``restrict`` – ``ConflictError`` is raised and nothing changes.
        """
        policy = settings.owner_delete_policy.lower()
        if policy not in DELETE_POLICIES:
            raise ValueError(f"Unknown owner delete policy: {settings.owner_delete_policy}")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            exists = cursor.execute("SELECT id FROM users WHERE id = ?", (user_id,)).fetchone()
            if not exists:
                return False
            owned = cursor.execute(
                "SELECT COUNT(*) AS count FROM pokemons WHERE user_id = ?", (user_id,)
            ).fetchone()["count"]
            if owned and policy == "restrict":
                raise ConflictError(f"User {user_id} still owns {owned} pokemon(s)")
            cursor.execute(
                "UPDATE pokemons SET user_id = NULL, updated_at = CURRENT_TIMESTAMP WHERE user_id = ?",
                (user_id,),
            )
            cursor.execute("DELETE FROM users WHERE id = ?", (user_id,))
            conn.commit()
            logger.info("Deleted user with id %s (%s pokemon(s) detached)", user_id, owned)
            return True
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
