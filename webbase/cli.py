#!/usr/bin/env python3
"""
Administrative CLI — user provisioning (self-registration is disabled).

Usage:
    # Create a user; prompts for anything not given on the command line
    webbase-admin create-user alice
    webbase-admin create-user alice --email alice@example.com --password 'hunter2pass'
    webbase-admin create-user bob --email bob@example.com --no-password

    # Set or reset a password by user id
    webbase-admin set-password 1 --password 'newpass123'

The database comes from DATABASE_URL (environment or .env), the same as
the web server. Tables are created if missing.
"""

import argparse
import asyncio
import sys
from getpass import getpass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from webbase.config import settings
from webbase.database import AsyncSessionLocal, create_tables, engine
from webbase.exceptions import WebBaseError
from webbase.logging import setup_logging
from webbase.services import auth_service


def _prompt(label: str) -> str:
    return input(f"{label}: ").strip()


def _prompt_password() -> str:
    first = getpass("Password: ")
    second = getpass("Repeat password: ")
    if first != second:
        raise SystemExit("Error: Passwords do not match")
    return first


async def create_user(
    session_factory: async_sessionmaker[AsyncSession],
    username: str,
    email: str | None,
    password: str | None,
    ask_password: bool = True,
) -> int:
    """Create a user and print the result. Returns the process exit code."""
    if email is None:
        email = _prompt("Email")
    if not email:
        print("Error: Email cannot be empty", file=sys.stderr)
        return 1

    if password is None and ask_password:
        if _prompt("Set password now? (y/N)").lower() == "y":
            password = _prompt_password()

    if password is not None:
        try:
            auth_service.check_password_policy(password)
        except WebBaseError as exc:
            print(f"Error: {exc.detail}", file=sys.stderr)
            return 1

    async with session_factory() as db:
        try:
            user = await auth_service.create_user(db, username, email, password)
            await db.commit()
        except WebBaseError as exc:
            await db.rollback()
            print(f"Failed to create user: {exc.detail}", file=sys.stderr)
            return 1

    print("User created successfully!")
    print(f"   ID: {user.id}")
    print(f"   Username: {user.username}")
    print(f"   Email: {user.email}")
    print(f"   Active: {user.is_active}")
    if password is not None:
        print("   Password: Set")
    else:
        print("   Password: Not set (user cannot log in yet)")
        print()
        print("To set the password later, run:")
        print(f"   webbase-admin set-password {user.id}")
    return 0


async def set_password(
    session_factory: async_sessionmaker[AsyncSession],
    user_id: int,
    password: str | None,
) -> int:
    """Set a user's password. Returns the process exit code."""
    if password is None:
        password = _prompt_password()

    try:
        auth_service.check_password_policy(password)
    except WebBaseError as exc:
        print(f"Error: {exc.detail}", file=sys.stderr)
        return 1

    async with session_factory() as db:
        try:
            await auth_service.set_password(db, user_id, password)
            await db.commit()
        except WebBaseError as exc:
            await db.rollback()
            print(f"Failed to set password: {exc.detail}", file=sys.stderr)
            return 1

    print(f"Password set successfully for user ID {user_id}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="webbase-admin", description="webbase user administration")
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create-user", help="Create a new user")
    create.add_argument("username")
    create.add_argument("--email", help="Email address (prompted if omitted)")
    create.add_argument("--password", help="Initial password (prompted if omitted)")
    create.add_argument(
        "--no-password",
        action="store_true",
        help="Create the user without a password and do not prompt for one",
    )

    set_pw = commands.add_parser("set-password", help="Set or reset a user's password")
    set_pw.add_argument("user_id", type=int)
    set_pw.add_argument("--password", help="New password (prompted if omitted)")

    return parser


async def _run(args: argparse.Namespace) -> int:
    await create_tables(engine)
    try:
        if args.command == "create-user":
            return await create_user(
                AsyncSessionLocal,
                args.username,
                args.email,
                args.password,
                ask_password=not args.no_password,
            )
        return await set_password(AsyncSessionLocal, args.user_id, args.password)
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(settings.DEBUG)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
