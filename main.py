#!/usr/bin/env python3
"""
Gatekeeper -- authentication and role-authorization service.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 5001 --reload
  python main.py create-admin --username root --email root@example.com
  python main.py set-role alice@example.com moderator
  python main.py set-role alice moderator

Signup always creates plain "user" accounts, so the first admin has to be
created here. After that, admins can promote others over the API.

Environment variables (see core/config.py):
  SECRET_KEY    Required unless DEBUG=true. At least 32 characters.
  DATABASE_URL  SQLAlchemy URL of the identity store. Defaults to SQLite.
  DEBUG         Development mode: non-Secure cookies, error text in 500s.
"""

import argparse
import getpass
import sys

from auth.errors import DuplicateUserError
from auth.models import ROLE_ADMIN, ROLES, User
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.validators import is_strong_password, is_valid_email
from core.config import get_settings


def _prompt_password() -> str:
    """Read a new password twice without echo. Returns "" if they differ."""
    first = getpass.getpass("  Password: ")
    second = getpass.getpass("  Repeat password: ")
    if first != second:
        print("  [!] Passwords do not match.")
        return ""
    return first


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def cmd_create_admin(args: argparse.Namespace) -> int:
    if not is_valid_email(args.email):
        print(f"  [!] '{args.email}' is not a valid email address.")
        return 1
    password = args.password if args.password is not None else _prompt_password()
    if not is_strong_password(password):
        print("  [!] Password must be at least 8 characters and include a number and a special character.")
        return 1

    settings = get_settings()
    store = UserStore(settings.database_url)
    try:
        hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
        user = User(
            username=args.username,
            email=args.email,
            role=ROLE_ADMIN,
            hashed_password=hasher.hash(password),
        )
        user_id = store.create_user(user)
    except DuplicateUserError as exc:
        print(f"  [!] A user with that {exc.field} already exists.")
        return 1
    finally:
        store.close()
    print(f"  Admin '{args.username}' created (id={user_id}).")
    return 0


def cmd_set_role(args: argparse.Namespace) -> int:
    store = UserStore(get_settings().database_url)
    try:
        if "@" in args.identity:
            user = store.get_by_email(args.identity)
        else:
            user = store.get_by_username(args.identity)
        if user is None:
            print(f"  [!] No user with email or username '{args.identity}'.")
            return 1
        store.update_user(user.id, role=args.role)
    finally:
        store.close()
    print(f"  {user.username}: {user.role} -> {args.role}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gatekeeper",
        description="Gatekeeper authentication service",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=5001)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    serve.set_defaults(func=cmd_serve)

    admin = sub.add_parser("create-admin", help="Create an admin account")
    admin.add_argument("--username", required=True)
    admin.add_argument("--email", required=True)
    admin.add_argument("--password", help="Skip the interactive prompt (avoid in shared shells)")
    admin.set_defaults(func=cmd_create_admin)

    role = sub.add_parser("set-role", help="Change a user's role directly in the store")
    role.add_argument("identity", help="Email address or username")
    role.add_argument("role", choices=ROLES)
    role.set_defaults(func=cmd_set_role)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
