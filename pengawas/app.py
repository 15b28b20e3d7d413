from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from pengawas.core.config import Settings, get_settings
from pengawas.core.logging_setup import configure_logging
from pengawas.core.rate_limiter import RateLimiter
from pengawas.repositories.errors import (
    RecordNotFoundError,
    StorageUnavailableError,
    ValidationPreconditionError,
)
from pengawas.repositories.json_storage import JSONRecordStore
from pengawas.routers import additional_tasks as additional_tasks_router
from pengawas.routers import auth as auth_router
from pengawas.routers import reports as reports_router
from pengawas.routers import schools as schools_router
from pengawas.routers import supervisions as supervisions_router
from pengawas.routers import tasks as tasks_router
from pengawas.services.report_service import ReportService
from pengawas.services.session_service import SessionService
from pengawas.services.user_service import UserService

log = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Baseline security headers for a JSON API."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    store = JSONRecordStore(settings.data_file).open()
    app.state.store = store
    app.state.user_service = UserService(store)
    app.state.report_service = ReportService(store)
    app.state.sessions = SessionService(settings.session_ttl_seconds)
    if settings.seed_admin:
        try:
            app.state.user_service.ensure_admin(
                settings.admin_username,
                settings.admin_password,
                settings.admin_full_name,
            )
        except StorageUnavailableError as exc:
            log.warning("Failed to seed admin user: %s", exc)
    log.info("Using local file-based storage (%s)", settings.data_file)
    try:
        yield
    finally:
        store.close()
        log.info("Record store closed")


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RecordNotFoundError)
    async def not_found_handler(request: Request, exc: RecordNotFoundError):
        return _error(404, str(exc) or "Data tidak ditemukan")

    @app.exception_handler(ValidationPreconditionError)
    async def precondition_handler(request: Request, exc: ValidationPreconditionError):
        return _error(400, str(exc))

    @app.exception_handler(StorageUnavailableError)
    async def storage_handler(request: Request, exc: StorageUnavailableError):
        return _error(503, "Penyimpanan data tidak tersedia. Coba lagi nanti.")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        response = _error(exc.status_code, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        log.warning("Validation error: %s", exc.errors())
        return _error(400, "Input tidak valid", details=jsonable_encoder(exc.errors()))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        log.exception("Unhandled error: %s", exc)
        return _error(500, "Terjadi kesalahan tak terduga di server.")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Factory compatible with ``uvicorn pengawas.app:create_app --factory``."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Pengawas Sekolah API", lifespan=lifespan)
    app.state.settings = settings
    app.state.rate_limiter = RateLimiter()

    allowed_cors = set(settings.cors_origins)
    if settings.app_env != "prod":
        allowed_cors.update({"http://localhost:5173", "http://127.0.0.1:5173"})
    if allowed_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=sorted(allowed_cors),
            allow_credentials=True,
            allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")

    _register_error_handlers(app)

    app.include_router(auth_router.router)
    app.include_router(schools_router.router)
    app.include_router(tasks_router.router)
    app.include_router(supervisions_router.router)
    app.include_router(additional_tasks_router.router)
    app.include_router(reports_router.router)
    return app
