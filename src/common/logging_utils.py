"""Centralized logging helpers shared by the CLI and the resolver engine.

Structured context travels through the standard ``extra=`` mechanism so that
call sites stay plain ``logger.debug(...)`` calls. Nothing here raises; a bad
log level falls back to INFO.
"""
from __future__ import annotations

import logging
import os
import sys
import time
from typing import Any, Dict, Optional

from constants import Constants

_CONTEXT_FIELDS = (
    "event",
    "component",
    "action",
    "outcome",
    "specifier",
    "target",
    "duration_ms",
)


class ContextFormatter(logging.Formatter):
    """Formatter that appends structured context fields when present."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        pairs = []
        for name in _CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                pairs.append(f"{name}={value}")
        if pairs:
            return f"{base} ({', '.join(pairs)})"
        return base


def configure_logging() -> None:
    """Install a root stderr handler once, honoring LOADERKIT_LOG_LEVEL."""
    root = logging.getLogger()
    level_name = os.environ.get(Constants.ENV_LOG_LEVEL, "INFO").upper()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    if any(getattr(h, "_loaderkit", False) for h in root.handlers):
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ContextFormatter(Constants.LOG_FORMAT))
    handler._loaderkit = True  # type: ignore[attr-defined]
    root.addHandler(handler)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra=`` mapping, dropping fields that are None."""
    return {key: value for key, value in fields.items() if value is not None}


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records from ``logger`` would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


class Timer:
    """Context manager measuring elapsed wall time in milliseconds."""

    def __init__(self) -> None:
        self._start: Optional[float] = None
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        """Elapsed milliseconds so far, or in total once the block has exited."""
        if self._start is None:
            return 0
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
