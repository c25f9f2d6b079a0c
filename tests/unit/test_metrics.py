from __future__ import annotations

import pytest

from spoollog.metrics import MetricsCollector, SinkMetrics


@pytest.mark.asyncio
async def test_disabled_collector_keeps_in_memory_counters() -> None:
    metrics = MetricsCollector()

    await metrics.record_records_accepted(3)
    await metrics.record_flush(trigger="interval", nbytes=42)
    await metrics.record_flush(trigger="size", nbytes=8, rotated=True)
    await metrics.record_flush(trigger="drain", nbytes=1, dropped=True)
    await metrics.record_files_pruned(2)
    await metrics.record_pump_restart()

    assert metrics.registry is None
    assert await metrics.snapshot() == SinkMetrics(
        records_accepted=3,
        bytes_flushed=51,
        flushes=3,
        rotations=1,
        dropped_flushes=1,
        files_pruned=2,
        pump_restarts=1,
    )


@pytest.mark.asyncio
async def test_enabled_collector_exports_prometheus_counters() -> None:
    metrics = MetricsCollector(enabled=True)
    registry = metrics.registry
    assert registry is not None

    await metrics.record_records_accepted()
    await metrics.record_flush(trigger="size", nbytes=1024, rotated=True)
    await metrics.record_files_pruned(4)

    assert registry.get_sample_value("spoollog_records_accepted_total") == 1.0
    assert registry.get_sample_value("spoollog_bytes_flushed_total") == 1024.0
    assert (
        registry.get_sample_value("spoollog_flushes_total", {"trigger": "size"}) == 1.0
    )
    # Trigger labels exist before their first flush
    assert (
        registry.get_sample_value("spoollog_flushes_total", {"trigger": "drain"})
        == 0.0
    )
    assert registry.get_sample_value("spoollog_rotations_total") == 1.0
    assert registry.get_sample_value("spoollog_files_pruned_total") == 4.0


def test_registries_are_isolated_per_collector() -> None:
    a = MetricsCollector(enabled=True)
    b = MetricsCollector(enabled=True)

    assert a.registry is not b.registry


@pytest.mark.asyncio
async def test_snapshot_is_a_copy() -> None:
    metrics = MetricsCollector()
    snap = await metrics.snapshot()

    await metrics.record_pump_restart()

    assert snap.pump_restarts == 0
    assert metrics.snapshot_nowait().pump_restarts == 1
