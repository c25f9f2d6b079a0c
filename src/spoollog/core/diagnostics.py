"""
Internal diagnostics for contained errors.

The flush pipeline never raises I/O failures to producers. Instead each
discarded error is reported here as a structured JSON line on the stdlib
logger ``spoollog.diagnostics``. Output is off unless
``SPOOLLOG_SINK__INTERNAL_LOGGING_ENABLED`` is true; the setting is read once
and cached in ``_internal_logging_enabled``.

Diagnostics are best-effort: ``warn()`` and ``debug()`` never raise.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any

import orjson

LOGGER_NAME = "spoollog.diagnostics"

_logger = logging.getLogger(LOGGER_NAME)

# None = not yet resolved from settings
_internal_logging_enabled: bool | None = None

# Minimum seconds between two messages sharing a rate-limit key
RATE_LIMIT_WINDOW_SECONDS = 5.0

_rate_lock = threading.Lock()
_last_emitted: dict[str, float] = {}


def _is_enabled() -> bool:
    global _internal_logging_enabled
    if _internal_logging_enabled is None:
        try:
            from .settings import Settings

            _internal_logging_enabled = bool(
                Settings().sink.internal_logging_enabled
            )
        except Exception:
            _internal_logging_enabled = False
    return _internal_logging_enabled


def set_enabled(enabled: bool) -> None:
    """Override the cached enable flag (used by LogSink.from_settings)."""
    global _internal_logging_enabled
    _internal_logging_enabled = bool(enabled)


def _allow(rate_limit_key: str | None) -> bool:
    if rate_limit_key is None:
        return True
    now = time.monotonic()
    with _rate_lock:
        last = _last_emitted.get(rate_limit_key)
        if last is not None and (now - last) < RATE_LIMIT_WINDOW_SECONDS:
            return False
        _last_emitted[rate_limit_key] = now
        return True


def _emit(level: int, component: str, message: str, fields: dict[str, Any]) -> None:
    try:
        if not _is_enabled():
            return
        if not _allow(fields.pop("_rate_limit_key", None)):
            return
        payload = {
            "ts": time.time(),
            "level": logging.getLevelName(level),
            "component": component,
            "message": message,
        }
        payload.update(fields)
        line = orjson.dumps(payload, default=str).decode("utf-8")
        _logger.log(level, line)
    except Exception:
        return None


def warn(component: str, message: str, **fields: Any) -> None:
    """Report a contained, non-fatal error."""
    _emit(logging.WARNING, component, message, fields)


def debug(component: str, message: str, **fields: Any) -> None:
    _emit(logging.DEBUG, component, message, fields)


def reset_rate_limits() -> None:
    with _rate_lock:
        _last_emitted.clear()
