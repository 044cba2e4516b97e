"""Centralized logging helpers.

Every module logs through ``logging.getLogger(__name__)``; this module only
configures the root logger and provides the small helpers used to attach
structured context to records.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from constants import Constants

_CONTEXT_KEYS = (
    "event",
    "component",
    "action",
    "outcome",
    "target",
    "status_code",
    "duration_ms",
    "attempt",
    "count",
    "atom",
    "repository",
)


class _ContextFormatter(logging.Formatter):
    """Formatter appending structured context fields when present."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        fields = []
        for key in _CONTEXT_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                fields.append(f"{key}={value}")
        if fields and record.levelno <= logging.DEBUG:
            return f"{base} [{' '.join(fields)}]"
        return base


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once.

    Level precedence: explicit argument, then ``PLYDEP_LOG_LEVEL``, then INFO.
    """
    level_name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)
    root = logging.getLogger()
    if not any(getattr(h, "_plydep", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(_ContextFormatter(Constants.LOG_FORMAT))
        handler._plydep = True  # type: ignore[attr-defined]  # pylint: disable=protected-access
        root.addHandler(handler)
    root.setLevel(level_value)


def extra_context(**kwargs: Any) -> Dict[str, Any]:
    """Build an ``extra`` mapping for a log call, dropping None values."""
    return {k: v for k, v in kwargs.items() if v is not None}


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records would be emitted by ``logger``."""
    return logger.isEnabledFor(logging.DEBUG)


def safe_url(url: str) -> str:
    """Strip credentials from a URL before logging it."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if parts.username is None and parts.password is None:
        return url
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, host, parts.path, parts.query, parts.fragment))


class Timer:
    """Context manager measuring elapsed wall time."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc: Any) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        """Elapsed milliseconds (running total while inside the block)."""
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
