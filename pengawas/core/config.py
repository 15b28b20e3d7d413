"""
Configuration helpers for the supervisor backend.

Settings are read from environment variables once (``get_settings`` is cached)
so that routers/services never touch os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
import os

DEFAULT_DATA_FILE = Path(__file__).resolve().parents[2] / "local-database.json"


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    data_file: Path
    log_level: str
    session_ttl_seconds: int
    seed_admin: bool
    admin_username: str
    admin_password: str
    admin_full_name: str
    cors_origins: tuple
    login_rate_limit: int


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _bool(value: str | None, default: bool = False) -> bool:
        if value is None:
            return default
        return value.strip().lower() in {"1", "true", "yes", "on"}

    origins = tuple(
        origin.strip().rstrip("/")
        for origin in (os.getenv("CORS_ORIGINS") or "").split(",")
        if origin.strip()
    )
    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        data_file=Path(os.getenv("DATA_FILE") or DEFAULT_DATA_FILE),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        session_ttl_seconds=_int(os.getenv("SESSION_TTL_SECONDS", "28800"), 28800),
        seed_admin=_bool(os.getenv("SEED_ADMIN"), True),
        admin_username=os.getenv("ADMIN_USERNAME", "admin"),
        admin_password=os.getenv("ADMIN_PASSWORD", "admin"),
        admin_full_name=os.getenv("ADMIN_FULL_NAME", "Administrator"),
        cors_origins=origins,
        login_rate_limit=_int(os.getenv("LOGIN_RATE_LIMIT", "10"), 10),
    )
