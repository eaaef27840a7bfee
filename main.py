#!/usr/bin/env python3
"""
Back-office access -- operator command line.

Usage:
  python main.py create-super-admin --username root --email root@example.com
  python main.py create-super-admin --username root --email root@example.com --password 'Str0ng!pass' --yes
  python main.py serve --host 127.0.0.1 --port 8000

create-super-admin bootstraps the first privileged account. Admin accounts
can only be created over the API by an existing super_admin, so a fresh
deployment needs this once. The password is prompted for (not echoed) when
--password is omitted.

Environment variables: see core/config.py (DATABASE_URL, JWT_SECRET,
JWT_REFRESH_SECRET, PASSWORD_HASH_ROUNDS, ...).
"""

import argparse
import getpass
import logging
import sys
from typing import Optional

from pydantic import ValidationError

from api.models import RegisterRequest
from auth.errors import Conflict
from auth.hasher import PasswordHasher
from auth.models import Role
from auth.store import UserStore
from core.config import get_settings

logger = logging.getLogger("backoffice.cli")


def _validation_messages(exc: ValidationError) -> list[str]:
    return [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]


def create_super_admin(
    store: UserStore,
    passwords: PasswordHasher,
    username: str,
    email: str,
    password: str,
    assume_yes: bool = False,
) -> Optional[int]:
    """Create a super_admin account. Returns its id, or None if nothing was created.

    Applies the same username/email/password rules as POST /auth/register.
    """
    try:
        fields = RegisterRequest(username=username, email=email, password=password)
    except ValidationError as exc:
        print("  [!] Invalid account details:")
        for msg in _validation_messages(exc):
            print(f"      {msg}")
        return None

    existing = store.count_by_role(Role.SUPER_ADMIN)
    if existing and not assume_yes:
        print(f"  [!] {existing} super admin account(s) already exist.")
        answer = input("  Create another super admin? (yes/no): ")
        if answer.strip().lower() != "yes":
            print("  Operation cancelled.")
            return None

    try:
        principal = store.create(fields.username, fields.email, passwords.hash(fields.password), Role.SUPER_ADMIN)
    except Conflict as exc:
        print(f"  [!] {exc.message}")
        return None

    logger.info("Created super_admin account %s", principal.id)
    print("  Super admin created.")
    print(f"    ID:       {principal.id}")
    print(f"    Username: {principal.username}")
    print(f"    Email:    {principal.email}")
    return principal.id


def _cmd_create_super_admin(args: argparse.Namespace) -> int:
    settings = get_settings()
    password = args.password
    if password is None:
        password = getpass.getpass("Password: ")
        if getpass.getpass("Confirm password: ") != password:
            print("  [!] Passwords do not match.")
            return 1

    store = UserStore(settings.database_url)
    try:
        created = create_super_admin(
            store,
            PasswordHasher(rounds=settings.password_hash_rounds),
            args.username,
            args.email,
            password,
            assume_yes=args.yes,
        )
    finally:
        store.close()
    return 0 if created is not None else 1


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Back-office access control -- operator tools.")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-super-admin", help="Bootstrap a super_admin account.")
    create.add_argument("--username", required=True)
    create.add_argument("--email", required=True)
    create.add_argument("--password", help="Prompted for when omitted.")
    create.add_argument("--yes", action="store_true", help="Do not ask when a super admin already exists.")
    create.set_defaults(func=_cmd_create_super_admin)

    serve = sub.add_parser("serve", help="Run the API with uvicorn.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")
    serve.set_defaults(func=_cmd_serve)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)-5s %(name)s %(message)s")
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
