"""Environment-driven settings."""

import os
from pathlib import Path
from typing import Optional

DB_PATH_ENV = "BOOKIT_DB_PATH"
USER_ID_ENV = "BOOKIT_USER_ID"
LOG_LEVEL_ENV = "BOOKIT_LOG_LEVEL"
REBUILD_BATCH_SIZE_ENV = "BOOKIT_REBUILD_BATCH_SIZE"

DEFAULT_USER_ID = 1
DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_REBUILD_BATCH_SIZE = 500


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def default_database_path() -> str:
    """Return the database path from BOOKIT_DB_PATH, else ~/.bookit/bookit.db."""
    database_path: Optional[str] = os.environ.get(DB_PATH_ENV)
    if database_path:
        return database_path
    db_dir = Path.home() / ".bookit"
    db_dir.mkdir(exist_ok=True)
    return str(db_dir / "bookit.db")


def default_user_id() -> int:
    return _int_from_env(USER_ID_ENV, DEFAULT_USER_ID)


def default_log_level() -> str:
    return os.environ.get(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL


def rebuild_batch_size() -> int:
    """Rows persisted per transaction during an aggregate rebuild."""
    return _int_from_env(REBUILD_BATCH_SIZE_ENV, DEFAULT_REBUILD_BATCH_SIZE)
