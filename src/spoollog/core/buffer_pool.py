"""
Reusable record buffers for the write path.

Producers borrow a ``bytearray`` with ``acquire()``, fill it and hand it to the
ingress channel; the flush pump copies it into its accumulation buffer and
gives it back with ``release()``. Pooling only saves allocations: nothing
depends on a buffer being recycled, and a pool with ``max_size=0`` simply
allocates every time.

Both producer threads and the pump thread touch the pool, so access to the
idle stack is serialised with a ``threading.Lock``.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass


@dataclass
class PoolStats:
    created: int = 0
    reused: int = 0
    idle: int = 0
    discarded: int = 0


class BufferPool:
    """Thread-safe pool of empty ``bytearray`` buffers."""

    __slots__ = ("_discarded", "_idle", "_lock", "_max_size", "_created", "_reused")

    def __init__(self, *, max_size: int = 1024) -> None:
        if max_size < 0:
            raise ValueError("max_size must be >= 0")
        self._max_size = max_size
        self._idle: deque[bytearray] = deque()
        self._lock = threading.Lock()
        self._created = 0
        self._reused = 0
        self._discarded = 0

    @property
    def max_size(self) -> int:
        return self._max_size

    def acquire(self) -> bytearray:
        """Return a zero-length buffer, recycled when one is idle."""
        with self._lock:
            if self._idle:
                self._reused += 1
                buf = self._idle.pop()
            else:
                self._created += 1
                buf = None
        if buf is None:
            return bytearray()
        # Released buffers are already cleared; clear again in case a caller
        # returned one through another path.
        buf.clear()
        return buf

    def release(self, buf: bytearray) -> None:
        """Clear ``buf`` and keep it for reuse if the pool has room."""
        buf.clear()
        with self._lock:
            if len(self._idle) < self._max_size:
                self._idle.append(buf)
            else:
                self._discarded += 1

    def stats(self) -> PoolStats:
        with self._lock:
            return PoolStats(
                created=self._created,
                reused=self._reused,
                idle=len(self._idle),
                discarded=self._discarded,
            )
