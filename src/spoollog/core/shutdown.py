"""Best-effort drain of live sinks at interpreter exit.

Sinks register themselves here on construction when
``atexit_drain_enabled`` is set. The atexit hook drains each one with its
configured timeout so that records accepted shortly before exit still reach
the file. Registration uses a WeakSet so it never keeps a sink alive.

The handler never raises and never blocks past the per-sink timeout.
"""

from __future__ import annotations

import atexit
import weakref
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .sink import LogSink


_shutdown_in_progress: bool = False
_registered_sinks: weakref.WeakSet[Any] = weakref.WeakSet()


def register_sink(sink: LogSink) -> None:
    """Register a sink for automatic drain on exit."""
    _registered_sinks.add(sink)


def unregister_sink(sink: LogSink) -> None:
    """Unregister a sink, typically after an explicit drain()."""
    try:
        _registered_sinks.discard(sink)
    except Exception:  # pragma: no cover - defensive
        pass


def registered_sinks() -> list[Any]:
    try:
        return list(_registered_sinks)
    except Exception:  # pragma: no cover - rare GC race
        return []


def _drain_single_sink(sink: Any) -> None:
    try:
        sink.drain(timeout=sink.atexit_drain_timeout)
    except Exception:
        pass  # Best effort - don't crash on exit


def _atexit_handler() -> None:
    """Drain all registered sinks; called by atexit, never raises."""
    global _shutdown_in_progress

    if _shutdown_in_progress:
        return
    _shutdown_in_progress = True

    for sink in registered_sinks():
        _drain_single_sink(sink)


atexit.register(_atexit_handler)
