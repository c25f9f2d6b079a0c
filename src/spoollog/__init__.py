"""
Public entrypoints for spoollog.

Provides a zero-config ``get_sink()`` returning a process-wide, named sink
configured from ``SPOOLLOG_*`` environment variables.
"""

from __future__ import annotations

import threading

from ._version import VERSION, __version__
from .core.errors import SinkClosedError, SinkDirectoryError, SpoolLogError
from .core.settings import Settings, SinkSettings
from .core.sink import LogSink
from .core.stdlib_bridge import StdlibBridgeHandler, enable_stdlib_bridge

__all__ = [
    "LogSink",
    "Settings",
    "SinkSettings",
    "SinkClosedError",
    "SinkDirectoryError",
    "SpoolLogError",
    "StdlibBridgeHandler",
    "clear_sink_cache",
    "enable_stdlib_bridge",
    "get_sink",
    "__version__",
    "VERSION",
]

_sink_cache: dict[str, LogSink] = {}
_sink_cache_lock = threading.Lock()


def get_sink(name: str = "default", *, settings: Settings | None = None) -> LogSink:
    """Return the sink registered under ``name``, creating it on first use.

    The sink lives for the rest of the process (drained at exit) unless
    ``clear_sink_cache()`` is called. ``settings`` only applies when the sink
    is created.

    Example:
        from spoollog import get_sink

        sink = get_sink()
        sink.write(b"service started\\n")
    """
    with _sink_cache_lock:
        sink = _sink_cache.get(name)
        if sink is None or sink.closed:
            sink = LogSink.from_settings(settings)
            _sink_cache[name] = sink
        return sink


def clear_sink_cache(timeout: float | None = 5.0) -> None:
    """Drain and forget every cached sink."""
    with _sink_cache_lock:
        sinks = list(_sink_cache.values())
        _sink_cache.clear()
    for sink in sinks:
        sink.drain(timeout=timeout)
