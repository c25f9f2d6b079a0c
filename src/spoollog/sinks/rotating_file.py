"""
Size-capped append writer with rename-based rotation.

The active file lives at ``<directory>/<filename>``. Each append opens the
file, checks its size, writes and closes it again, so the file is never held
open between flushes. When an append would push the file past
``max_file_size`` the active file is renamed to
``<filename>.<YYYYMMDDHHMMSS>`` (local time), the data is written to a fresh
active file and the rotation callback is notified.

Every I/O error is contained: the writer reports it through diagnostics and
returns an outcome instead of raising, because logging must never crash the
host application.
"""

from __future__ import annotations

import os
import re
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from ..core import diagnostics
from ..core.defaults import (
    DEFAULT_FILENAME,
    DEFAULT_MAX_FILE_SIZE,
    ROTATION_TIMESTAMP_FORMAT,
)

# Fixed single retry for rename failures (e.g. a reader holding the file)
RENAME_RETRY_DELAY_SECONDS = 1.0


@dataclass
class SinkTarget:
    """Mutable file target shared by the writer, the sweeper and the pump.

    The sink's setters assign these attributes at runtime; readers pick the
    new values up on their next operation.
    """

    directory: str = ""
    filename: str = DEFAULT_FILENAME
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    max_file_count: int = 0

    @property
    def active_path(self) -> Path:
        return Path(self.directory or ".") / self.filename

    def rotated_name(self, when: datetime) -> str:
        return f"{self.filename}.{when.strftime(ROTATION_TIMESTAMP_FORMAT)}"

    def rotated_pattern(self) -> re.Pattern[str]:
        return re.compile(rf"{re.escape(self.filename)}\.\d{{14}}")


class WriteOutcome(str, Enum):
    APPENDED = "appended"  # data landed in the active file
    REFUSED = "refused"  # append would exceed max_file_size; nothing written
    ROTATED = "rotated"  # active file rotated and data written to a fresh one
    DROPPED = "dropped"  # an I/O error discarded the data for this cycle


class RotatingFileWriter:
    """Append byte payloads to the active file, rotating on overflow."""

    def __init__(
        self,
        target: SinkTarget,
        *,
        on_rotate: Callable[[], None] | None = None,
    ) -> None:
        self._target = target
        self._on_rotate = on_rotate

    @property
    def target(self) -> SinkTarget:
        return self._target

    def try_append(self, data: bytes | bytearray) -> bool:
        """Append ``data`` unless it would overflow the active file.

        Returns False only when the size check refuses the write. I/O errors
        drop the data and still return True: there is nothing to rotate.
        """
        return self._append(data, enforce_limit=True) is not WriteOutcome.REFUSED

    def must_write(self, data: bytes | bytearray) -> bool:
        """Append ``data`` with no size check; True when it was written."""
        return self._append(data, enforce_limit=False) is WriteOutcome.APPENDED

    def rename(self) -> bool:
        """Move the active file to its timestamped rotated name.

        Retries once after ``RENAME_RETRY_DELAY_SECONDS`` and then gives up.
        """
        src = self._target.active_path
        dst = src.with_name(self._target.rotated_name(datetime.now()))
        for attempt in range(2):
            try:
                os.rename(src, dst)
                return True
            except OSError as exc:
                diagnostics.warn(
                    "writer",
                    "rename failed",
                    path=str(src),
                    attempt=attempt + 1,
                    error=str(exc),
                    _rate_limit_key="rename",
                )
                if attempt == 0:
                    time.sleep(RENAME_RETRY_DELAY_SECONDS)
        return False

    def write_file(self, data: bytes | bytearray) -> WriteOutcome:
        """Append ``data``, rotating first when the active file is full.

        After a rotation the payload is written unconditionally, so a payload
        larger than ``max_file_size`` still lands whole in the fresh file. If
        the post-rotation write fails the data is dropped silently; the rename
        result is not checked for the same reason.
        """
        outcome = self._append(data, enforce_limit=True)
        if outcome is not WriteOutcome.REFUSED:
            return outcome
        self.rename()
        written = self.must_write(data)
        if self._on_rotate is not None:
            self._on_rotate()
        return WriteOutcome.ROTATED if written else WriteOutcome.DROPPED

    def _append(self, data: bytes | bytearray, *, enforce_limit: bool) -> WriteOutcome:
        path = self._target.active_path
        try:
            with open(path, "ab", buffering=0) as f:
                if enforce_limit:
                    size = os.fstat(f.fileno()).st_size
                    if size + len(data) > self._target.max_file_size:
                        return WriteOutcome.REFUSED
                _write_all(f, data)
        except OSError as exc:
            # Open, stat or a partial write failed; the rest of this payload is lost
            diagnostics.warn(
                "writer",
                "append failed",
                path=str(path),
                error_type=type(exc).__name__,
                error=str(exc),
                _rate_limit_key="append",
            )
            return WriteOutcome.DROPPED
        return WriteOutcome.APPENDED


def _write_all(f: Any, data: bytes | bytearray) -> None:
    with memoryview(data) as view:
        written = 0
        while written < len(view):
            written += f.write(view[written:])
