from __future__ import annotations

from typing import Protocol, runtime_checkable

from .rotating_file import RotatingFileWriter, SinkTarget, WriteOutcome


@runtime_checkable
class ByteWriter(Protocol):
    """Destination the flush pump hands accumulated bytes to.

    Implementations run on a worker thread and must contain their own I/O
    errors; a raised exception is treated as a pump fault.
    """

    def write_file(self, data: bytes | bytearray) -> WriteOutcome:
        """Persist ``data`` and report what happened."""
        ...


__all__ = [
    "ByteWriter",
    "RotatingFileWriter",
    "SinkTarget",
    "WriteOutcome",
]
