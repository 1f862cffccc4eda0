"""Structured JSON logging for bookit."""

__all__ = [
    "StructuredFormatter",
    "get_logger",
    "configure_logging",
    "reset_logging",
    "parse_level",
]

import json
import logging
import sys
import threading
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


class _JSONEncoder(json.JSONEncoder):
    """Handle Decimal, dates and enums in log payloads."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Structured extra data
        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, cls=_JSONEncoder, default=str)


_LOGGER_PREFIX = "bookit"


class _StderrHandler(logging.StreamHandler):
    """Writes to whatever sys.stderr is at emit time."""

    def __init__(self, level: int = logging.NOTSET):
        logging.Handler.__init__(self, level)

    @property
    def stream(self):
        return sys.stderr


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the bookit namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def parse_level(level: str | int) -> int:
    """Turn 'debug', 'INFO' or a numeric level into a logging level."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: '{level}'")
    return value


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.WARNING,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Configure the bookit logger hierarchy (idempotent)."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.setLevel(level)
    root_logger.propagate = False

    if handler is not None:
        h = handler
    elif stream is not None:
        h = logging.StreamHandler(stream)
    else:
        h = _StderrHandler()
    h.setFormatter(StructuredFormatter())
    root_logger.addHandler(h)


def reset_logging() -> None:
    """Reset logging configuration. FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
    logger.propagate = True
