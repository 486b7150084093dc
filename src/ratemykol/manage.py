"""
Operational commands.

Usage:
    python -m ratemykol.manage create-admin <username>
    python -m ratemykol.manage check-user <username>
    python -m ratemykol.manage delete-user <username>

The database URL comes from RMK_DATABASE_URL like the API itself.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from ratemykol.admin.service import delete_user
from ratemykol.auth.service import get_user_by_username
from ratemykol.config import get_settings
from ratemykol.database import close_db, get_engine, init_db

Command = Callable[[AsyncSession, str], Awaitable[int]]


async def create_admin(db: AsyncSession, username: str) -> int:
    """Promote an existing account to admin."""
    user = await get_user_by_username(db, username)
    if user is None:
        print(f"User '{username}' not found. Sign up on the website first.")
        return 1
    if user.is_admin:
        print(f"User '{user.username}' is already an admin.")
        return 0
    user.role = "admin"
    await db.commit()
    print(f"'{user.username}' (id {user.id}) is now an admin.")
    return 0


async def check_user(db: AsyncSession, username: str) -> int:
    """Print what is stored for an account."""
    user = await get_user_by_username(db, username)
    if user is None:
        print(f"User '{username}' not found.")
        return 1
    print(f"Username:   {user.username}")
    print(f"User ID:    {user.id}")
    print(f"Email:      {user.email or 'Not provided'}")
    print(f"Role:       {user.role}")
    print(f"Auth type:  {user.auth_type}")
    print(f"User type:  {user.user_type}")
    print(f"Trader ID:  {user.trader_id if user.trader_id is not None else '-'}")
    print(f"Created:    {user.created_at}")
    print(f"Password:   {'set' if user.password_hash else 'none (external login)'}")
    return 0


async def remove_user(db: AsyncSession, username: str) -> int:
    """Delete an account with its ratings, votes and badges."""
    user = await get_user_by_username(db, username)
    if user is None:
        print(f"User '{username}' not found.")
        return 1
    user_id = user.id
    # No acting admin from the command line
    await delete_user(db, user, acting_user_id=0)
    await db.commit()
    print(f"Deleted user '{username}' (id {user_id}).")
    return 0


COMMANDS: dict[str, Command] = {
    "create-admin": create_admin,
    "check-user": check_user,
    "delete-user": remove_user,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m ratemykol.manage", description="RateMyKOL maintenance commands")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("create-admin", help="Promote a user to admin").add_argument("username")
    sub.add_parser("check-user", help="Show a user's account details").add_argument("username")
    sub.add_parser("delete-user", help="Delete a user and everything they wrote").add_argument("username")
    return parser


async def _run(command: Command, username: str, database_url: str) -> int:
    await init_db(database_url)
    try:
        async with AsyncSession(get_engine(), expire_on_commit=False) as db:
            return await command(db, username)
    finally:
        await close_db()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(_run(COMMANDS[args.command], args.username, get_settings().database_url))


if __name__ == "__main__":
    sys.exit(main())
