#!/usr/bin/env python3
"""
Create an administrator account, or promote an existing user to ADMIN.

Registration through the API always produces STANDARD users, so this
script is the way to obtain the first administrator.  It applies
pending migrations before touching the database configured through
``DATABASE_URL``.

Usage:
    python create_admin.py --username oak --email oak@example.com
    python create_admin.py --username ash --promote

If --password is omitted when creating a user, you will be prompted for
it securely.
"""

import argparse
import asyncio
import getpass
import sys

from pydantic import ValidationError

from pokedex_api.app.core.db import init_db
from pokedex_api.app.core.errors import ConflictError
from pokedex_api.app.schemas.user import Role, UserCreate
from pokedex_api.app.services.user_service import UserService


async def promote(username: str) -> int:
    user = await UserService.get_user_by_username(username)
    if user is None:
        print(f"[!] No user found with username: {username}", file=sys.stderr)
        return 2
    await UserService.set_role(user.id, Role.ADMIN)
    print(f"[+] {user.username} is now an administrator")
    return 0


async def create(args: argparse.Namespace) -> int:
    if not args.email:
        print("[!] --email is required when creating a user.", file=sys.stderr)
        return 1
    password = args.password or getpass.getpass("Enter password: ")
    if not password:
        print("[!] Empty password is not allowed.", file=sys.stderr)
        return 1
    try:
        data = UserCreate(
            username=args.username,
            email=args.email,
            password=password,
            first_name=args.first_name,
            last_name=args.last_name,
        )
    except ValidationError as e:
        print(f"[!] Invalid input: {e}", file=sys.stderr)
        return 1
    try:
        user = await UserService.create_user(data, role=Role.ADMIN)
    except ConflictError as e:
        print(f"[!] {e.message}", file=sys.stderr)
        return 2
    print(f"[+] Administrator {user.username} created with id {user.id}")
    return 0


def main() -> None:
    ap = argparse.ArgumentParser(description="Create or promote a Pokedex administrator.")
    ap.add_argument("--username", required=True, help="Username of the administrator")
    ap.add_argument("--email", help="E-mail address (required when creating)")
    ap.add_argument("--password", help="Password. If omitted, you'll be prompted securely.")
    ap.add_argument("--first-name", dest="first_name")
    ap.add_argument("--last-name", dest="last_name")
    ap.add_argument("--promote", action="store_true", help="Promote an existing user instead of creating one")
    args = ap.parse_args()

    init_db()
    if args.promote:
        sys.exit(asyncio.run(promote(args.username)))
    sys.exit(asyncio.run(create(args)))


if __name__ == "__main__":
    main()
