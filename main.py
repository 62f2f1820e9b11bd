#!/usr/bin/env python3
"""
SessionVault -- operator command line.

Usage:
  python main.py migrate
  python main.py create-user alice --role ADMIN

Passwords are read with getpass, never from the command line, so they do not
end up in shell history or the process list.

Environment variables:
  DATABASE_URL  SQLAlchemy URL of the store (default: SQLite file under db/).
  See core/config.py for the full list.
"""

import argparse
import getpass
import logging
import sys
from typing import Optional

from sqlalchemy.exc import IntegrityError

from auth.models import Role
from auth.service import AuthenticationService
from core.config import get_settings
from db.pool import create_pool
from db.schema import install_schema


def _read_password(prompt_confirm: bool = True) -> Optional[str]:
    """Prompt for a password (twice). Returns None if the entries differ or are empty."""
    password = getpass.getpass("Password: ")
    if not password:
        print("  [!] Password must not be empty.")
        return None
    if prompt_confirm and getpass.getpass("Repeat password: ") != password:
        print("  [!] Passwords do not match.")
        return None
    return password


def cmd_migrate(args: argparse.Namespace) -> int:
    settings = get_settings()
    pool = create_pool(settings.database_url, settings.pool_size)
    try:
        applied = install_schema(pool)
    finally:
        pool.close()
    if applied:
        for name in applied:
            print(f"  applied: {name}")
    else:
        print("  Schema is up to date.")
    return 0


def cmd_create_user(args: argparse.Namespace) -> int:
    password = _read_password()
    if password is None:
        return 1
    settings = get_settings()
    pool = create_pool(settings.database_url, settings.pool_size)
    try:
        install_schema(pool)
        service = AuthenticationService(pool, settings)
        service.create_user(Role(args.role), args.username, password)
    except IntegrityError:
        print(f"  [!] User '{args.username}' already exists.")
        return 1
    finally:
        pool.close()
    print(f"  Created {args.role} user '{args.username}'.")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="sessionvault",
        description="Manage the SessionVault credential store.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py migrate
  python main.py create-user alice --role ADMIN
  DATABASE_URL=postgresql://user:pw@host/db python main.py migrate
        """,
    )
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    sub = parser.add_subparsers(dest="command", required=True)

    migrate = sub.add_parser("migrate", help="Apply pending schema scripts")
    migrate.set_defaults(func=cmd_migrate)

    create = sub.add_parser("create-user", help="Create a credential (prompts for the password)")
    create.add_argument("username", help="Unique username")
    create.add_argument(
        "--role",
        choices=[r.value for r in Role],
        default=Role.USER.value,
        help="Role to grant (default: USER)",
    )
    create.set_defaults(func=cmd_create_user)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
