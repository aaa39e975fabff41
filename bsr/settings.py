from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_str(name: str, default: str | None = None) -> str | None:
    """Blank values count as unset."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw


def _env_list(name: str, default: str = "") -> tuple[str | None, ...]:
    """Comma separated list; blank entries are kept as None so they can be rejected later."""
    raw = os.getenv(name, default)
    if not raw.strip():
        return ()
    return tuple(part.strip() or None for part in raw.split(","))


@dataclass(frozen=True)
class Settings:
    # Cluster
    hosts: tuple[str | None, ...] = _env_list("BSR_HOSTS", "localhost")
    username: str | None = _env_str("BSR_USERNAME")
    password: str | None = _env_str("BSR_PASSWORD")
    admin_port: int = _env_int("BSR_ADMIN_PORT", 8091)
    query_port: int = _env_int("BSR_QUERY_PORT", 8093)
    http_timeout_s: int = _env_int("BSR_HTTP_TIMEOUT_S", 10)
    # How long open_bucket waits for a new bucket to finish warming up.
    bucket_ready_timeout_s: int = _env_int("BSR_BUCKET_READY_TIMEOUT_S", 30)

    # Schema
    operation_mode: str = os.getenv("BSR_OPERATION_MODE", "update")
    bucket_ram_mb: int = _env_int("BSR_BUCKET_RAM_MB", 100)
    tables_path: str = os.getenv("BSR_TABLES_PATH", "tables.json")

    # Event log
    db_path: str = os.getenv("BSR_DB_PATH", "bsr.db")

    # API
    api_user: str = os.getenv("BSR_API_USER", "admin")
    api_password: str | None = _env_str("BSR_API_PASSWORD")
    # Run one reconciliation pass when the API starts.
    reconcile_on_startup: bool = _env_bool("BSR_RECONCILE_ON_STARTUP", True)


settings = Settings()
