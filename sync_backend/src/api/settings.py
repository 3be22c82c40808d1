from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/sync.db'
    - SQLITE_TIMEOUT_SEC: seconds a writer waits on a locked database (default 5)
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: root log level name (default INFO)
    - LOG_FILE: optional log file path; stderr only when unset
    - PASSWORD_HASH_ROUNDS: bcrypt cost factor, 4..31 (default 12)
    """

    persistence_backend: str
    sqlite_db_path: str
    sqlite_timeout_sec: float
    cors_allow_origins: List[str]
    log_level: str
    log_file: Optional[str]
    password_hash_rounds: int


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_float(value: str, default: float) -> float:
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _parse_rounds(value: str, default: int) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if 4 <= parsed <= 31 else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        backend = "memory"

    sqlite_path = _get_env("SQLITE_DB_PATH", "./data/sync.db").strip()
    sqlite_timeout = _parse_float(_get_env("SQLITE_TIMEOUT_SEC", "5"), 5.0)
    origins = _parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*"))

    log_level = _get_env("LOG_LEVEL", "INFO").strip().upper()
    log_file = os.getenv("LOG_FILE") or None
    rounds = _parse_rounds(_get_env("PASSWORD_HASH_ROUNDS", "12"), 12)

    return Settings(
        persistence_backend=backend,
        sqlite_db_path=sqlite_path,
        sqlite_timeout_sec=sqlite_timeout,
        cors_allow_origins=origins,
        log_level=log_level,
        log_file=log_file,
        password_hash_rounds=rounds,
    )
