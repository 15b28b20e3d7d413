"""
Account related use cases (registration, login, admin seeding).
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from pengawas.core.security import hash_password, verify_password
from pengawas.repositories.errors import ValidationPreconditionError
from pengawas.repositories.json_storage import JSONRecordStore

log = logging.getLogger(__name__)

RESERVED_USERNAMES = {"admin"}


class InvalidCredentialsError(Exception):
    """Raised when username/password do not match a stored user."""


def public_view(user: Mapping[str, Any]) -> dict:
    """User fields safe to send to clients."""
    return {
        "id": user.get("id"),
        "username": user.get("username"),
        "fullName": user.get("fullName"),
        "role": user.get("role"),
    }


class UserService:
    """Wraps user creation so the store's uniqueness precondition is always checked."""

    def __init__(self, store: JSONRecordStore) -> None:
        self.store = store

    def normalize(self, username: str | None) -> str:
        return (username or "").strip()

    def register(
        self,
        username: str,
        password: str,
        full_name: str,
        role: Optional[str] = None,
        *,
        allow_reserved: bool = False,
    ) -> dict:
        name = self.normalize(username)
        if not name:
            raise ValidationPreconditionError("Username wajib diisi")
        if not password:
            raise ValidationPreconditionError("Password wajib diisi")
        if name.lower() in RESERVED_USERNAMES and not allow_reserved:
            raise ValidationPreconditionError(f"Username '{name}' is reserved")
        # hashing is slow; do it before taking the store lock
        password_hash = hash_password(password)
        # check and insert under one lock so two registrations cannot both pass
        with self.store.atomic():
            if self.store.get_user_by_username(name):
                raise ValidationPreconditionError("Username already exists")
            return self.store.create_user(
                {
                    "username": name,
                    "password": password_hash,
                    "fullName": (full_name or "").strip(),
                    "role": role,
                }
            )

    def authenticate(self, username: str, password: str) -> dict:
        user = self.store.get_user_by_username(self.normalize(username))
        if not user or not verify_password(password or "", user.get("password")):
            raise InvalidCredentialsError("Invalid credentials")
        return user

    def ensure_admin(self, username: str, password: str, full_name: str) -> dict:
        existing = self.store.get_user_by_username(self.normalize(username))
        if existing:
            log.info("Admin user %r already exists", existing["username"])
            return existing
        user = self.register(username, password, full_name, role="admin", allow_reserved=True)
        log.info("Created admin user %r", user["username"])
        return user
