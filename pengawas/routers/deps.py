"""Request-scoped accessors for objects wired on app.state at startup."""
from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Request

from pengawas.core.config import Settings
from pengawas.core.rate_limiter import RateLimiter
from pengawas.repositories.json_storage import JSONRecordStore
from pengawas.services.report_service import ReportService
from pengawas.services.session_service import SessionService
from pengawas.services.user_service import UserService


def _state(request: Request, name: str):
    value = getattr(getattr(request.app, "state", None), name, None)
    if value is None:
        raise RuntimeError(f"{name} is not configured")
    return value


def get_settings_dep(request: Request) -> Settings:
    return _state(request, "settings")


def get_store(request: Request) -> JSONRecordStore:
    return _state(request, "store")


def get_user_service(request: Request) -> UserService:
    return _state(request, "user_service")


def get_sessions(request: Request) -> SessionService:
    return _state(request, "sessions")


def get_report_service(request: Request) -> ReportService:
    return _state(request, "report_service")


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization") or ""
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return value.strip() or None


def current_user_id(request: Request) -> str:
    user_id = get_sessions(request).resolve(bearer_token(request))
    if not user_id:
        raise HTTPException(401, "Silakan login terlebih dahulu")
    return user_id


def get_rate_limiter(request: Request) -> RateLimiter:
    return _state(request, "rate_limiter")
