"""
Exception types raised by spoollog.

Only configuration and lifecycle problems are raised to callers. Transient
I/O failures inside the flush pipeline are contained and reported through
``spoollog.core.diagnostics`` instead.
"""

from __future__ import annotations


class SpoolLogError(Exception):
    """Base class for all spoollog errors."""


class SinkClosedError(SpoolLogError):
    """Raised when writing to a sink whose channel has been closed by drain()."""

    def __init__(self, message: str = "sink is closed") -> None:
        super().__init__(message)


class SinkDirectoryError(SpoolLogError, OSError):
    """Raised when the target log directory cannot be created.

    Subclasses ``OSError`` so callers that already handle filesystem errors
    keep working.
    """

    def __init__(self, directory: str, cause: OSError) -> None:
        super().__init__(f"cannot create log directory {directory!r}: {cause}")
        self.errno = cause.errno
        self.directory = directory
        self.cause = cause
