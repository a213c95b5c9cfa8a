"""
Configuration helpers for the facilities portal.

Both tiers read their settings here: the server (database, SMTP, CORS) and
the client data layer (API base URL, local store path, routing policy).
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
import os

DEFAULT_LOCAL_STORE = Path(__file__).resolve().parents[1] / "local_store.json"


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    database_url: str
    api_base_url: str
    local_store_path: str
    remote_timeout_seconds: float
    routing_policy: str
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    smtp_from: str
    cors_origins: tuple


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _float(value: str, default: float = 0.0) -> float:
        try:
            return float(value)
        except (TypeError, ValueError):
            return default

    def _list(value: str | None) -> tuple:
        if not value:
            return ()
        return tuple(item.strip().rstrip("/") for item in value.split(",") if item.strip())

    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        database_url=os.getenv("DATABASE_URL", ""),
        api_base_url=os.getenv("PORTAL_API_URL", "").rstrip("/"),
        local_store_path=os.getenv("PORTAL_LOCAL_STORE", str(DEFAULT_LOCAL_STORE)),
        remote_timeout_seconds=_float(os.getenv("PORTAL_REMOTE_TIMEOUT", "10"), 10.0),
        routing_policy=(os.getenv("PORTAL_ROUTING_POLICY") or "first").strip().lower(),
        smtp_host=os.getenv("SMTP_HOST", ""),
        smtp_port=_int(os.getenv("SMTP_PORT", "587"), 587),
        smtp_user=os.getenv("SMTP_USER", ""),
        smtp_password=os.getenv("SMTP_PASSWORD", ""),
        smtp_from=os.getenv("SMTP_FROM", os.getenv("SMTP_USER", "")),
        cors_origins=_list(os.getenv("CORS_ORIGINS")),
    )
