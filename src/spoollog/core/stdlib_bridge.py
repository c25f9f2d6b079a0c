"""
Bridge from the standard ``logging`` module into a spool sink.

The handler formats each record with a stdlib ``Formatter`` and writes the
result, newline-terminated and UTF-8 encoded, as one raw record. Records
from spoollog's own loggers are ignored so that internal diagnostics can
never loop back into the sink they describe.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .errors import SinkClosedError

if TYPE_CHECKING:
    from .sink import LogSink

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class StdlibBridgeHandler(logging.Handler):
    """``logging.Handler`` that forwards formatted records to a ``LogSink``."""

    def __init__(self, sink: LogSink, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self._sink = sink

    def emit(self, record: logging.LogRecord) -> None:
        # Loop prevention
        if record.name == "spoollog" or record.name.startswith("spoollog."):
            return
        try:
            line = self.format(record) + "\n"
            self._sink.write(line.encode("utf-8"))
        except SinkClosedError:
            return
        except Exception:
            self.handleError(record)


def enable_stdlib_bridge(
    sink: LogSink,
    *,
    level: int = logging.INFO,
    logger: logging.Logger | None = None,
    formatter: logging.Formatter | None = None,
    remove_existing_handlers: bool = False,
) -> StdlibBridgeHandler:
    """Attach a bridge handler to ``logger`` (the root logger by default)."""
    target = logger if logger is not None else logging.getLogger()
    if remove_existing_handlers:
        for h in list(target.handlers):
            target.removeHandler(h)
    handler = StdlibBridgeHandler(sink, level=level)
    handler.setFormatter(formatter or logging.Formatter(DEFAULT_FORMAT))
    target.addHandler(handler)
    if target.level == logging.NOTSET or target.level > level:
        target.setLevel(level)
    return handler
