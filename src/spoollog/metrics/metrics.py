"""
Async metrics collection for the spool sink.

Implements a small set of Prometheus-compatible counters for the flush
pipeline.

Design goals:
- Recorded from the sink's event loop thread only; guarded by an asyncio lock
- Zero global state; each sink owns an isolated registry
- In-memory counters are always kept so tests can assert on ``snapshot()``;
  Prometheus export happens only when enabled
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Any

from prometheus_client import CollectorRegistry, Counter

FLUSH_TRIGGERS = ("interval", "size", "drain")


@dataclass
class SinkMetrics:
    """Captured runtime counters for quick assertions in tests."""

    records_accepted: int = 0
    bytes_flushed: int = 0
    flushes: int = 0
    rotations: int = 0
    dropped_flushes: int = 0
    files_pruned: int = 0
    pump_restarts: int = 0


class MetricsCollector:
    """Sink-scoped async metrics collector."""

    def __init__(self, *, enabled: bool = False) -> None:
        self._enabled = bool(enabled)
        self._lock = asyncio.Lock()
        self._state = SinkMetrics()

        self._c_records: Any | None = None
        self._c_bytes: Any | None = None
        self._c_flushes: Any | None = None
        self._c_rotations: Any | None = None
        self._c_dropped: Any | None = None
        self._c_pruned: Any | None = None
        self._c_restarts: Any | None = None
        self._registry: CollectorRegistry | None = None

        if self._enabled:
            self._registry = CollectorRegistry()
            self._c_records = Counter(
                "spoollog_records_accepted_total",
                "Records taken off the ingress channel by the flush pump",
                registry=self._registry,
            )
            self._c_bytes = Counter(
                "spoollog_bytes_flushed_total",
                "Bytes handed to the file writer",
                registry=self._registry,
            )
            self._c_flushes = Counter(
                "spoollog_flushes_total",
                "Flushes of the accumulation buffer",
                ["trigger"],
                registry=self._registry,
            )
            for trigger in FLUSH_TRIGGERS:
                self._c_flushes.labels(trigger=trigger)
            self._c_rotations = Counter(
                "spoollog_rotations_total",
                "Active file rotations",
                registry=self._registry,
            )
            self._c_dropped = Counter(
                "spoollog_dropped_flushes_total",
                "Flushes whose data was lost to an I/O error",
                registry=self._registry,
            )
            self._c_pruned = Counter(
                "spoollog_files_pruned_total",
                "Rotated files removed by the retention sweeper",
                registry=self._registry,
            )
            self._c_restarts = Counter(
                "spoollog_pump_restarts_total",
                "Flush pump restarts after an unexpected fault",
                registry=self._registry,
            )

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def registry(self) -> CollectorRegistry | None:
        """Expose the isolated Prometheus registry when enabled."""
        return self._registry

    async def record_records_accepted(self, count: int = 1) -> None:
        async with self._lock:
            self._state.records_accepted += count
        if self._c_records is not None:
            self._c_records.inc(count)

    async def record_flush(
        self,
        *,
        trigger: str,
        nbytes: int,
        rotated: bool = False,
        dropped: bool = False,
    ) -> None:
        async with self._lock:
            self._state.flushes += 1
            self._state.bytes_flushed += nbytes
            if rotated:
                self._state.rotations += 1
            if dropped:
                self._state.dropped_flushes += 1
        if not self._enabled:
            return
        if self._c_flushes is not None:
            self._c_flushes.labels(trigger=trigger).inc()
        if self._c_bytes is not None:
            self._c_bytes.inc(nbytes)
        if rotated and self._c_rotations is not None:
            self._c_rotations.inc()
        if dropped and self._c_dropped is not None:
            self._c_dropped.inc()

    async def record_files_pruned(self, count: int) -> None:
        async with self._lock:
            self._state.files_pruned += count
        if self._c_pruned is not None:
            self._c_pruned.inc(count)

    async def record_pump_restart(self) -> None:
        async with self._lock:
            self._state.pump_restarts += 1
        if self._c_restarts is not None:
            self._c_restarts.inc()

    async def snapshot(self) -> SinkMetrics:
        async with self._lock:
            return replace(self._state)

    def snapshot_nowait(self) -> SinkMetrics:
        """Copy the counters without the lock; use once the sink loop is stopped."""
        return replace(self._state)
