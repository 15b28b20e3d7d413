#!/usr/bin/env python3
"""
Create a user directly in the local JSON database.

Usage:
  python scripts/create_user.py --username budi --full-name "Budi Santoso" [--password xxx] [--role admin]
"""
from __future__ import annotations

import argparse
import secrets
import string
import sys

from pengawas.core.config import get_settings
from pengawas.repositories.json_storage import USER_ROLES, JSONRecordStore
from pengawas.services.user_service import UserService


def gen_password(length: int = 12) -> str:
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Create a supervisor account in the local database")
    ap.add_argument("--username", required=True, help="Login name (must be unique)")
    ap.add_argument("--full-name", required=True, help="Display name printed on reports")
    ap.add_argument("--password", help="Password (default: random 12 chars)")
    ap.add_argument("--role", choices=USER_ROLES, default="pengawas")
    ap.add_argument("--data-file", help="Database path (default: DATA_FILE env or local-database.json)")
    return ap


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    data_file = args.data_file or get_settings().data_file
    password = (args.password or "").strip() or gen_password()

    with JSONRecordStore(data_file) as store:
        users = UserService(store)
        user = users.register(
            args.username,
            password,
            args.full_name,
            role=args.role,
            allow_reserved=args.role == "admin",
        )

    print("OK: user created")
    print(f"  ID: {user['id']}")
    print(f"  Username: {user['username']}")
    print(f"  Role: {user['role']}")
    if not args.password:
        print(f"  Password: {password}")


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover - CLI usage
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
