from __future__ import annotations

from pathlib import Path

import pytest

import spoollog
from spoollog import Settings, SinkDirectoryError, SinkSettings, get_sink
from spoollog.core import diagnostics
from spoollog.core.defaults import MIB


def _settings(tmp_path: Path, **overrides: object) -> Settings:
    return Settings(sink=SinkSettings(directory=str(tmp_path), **overrides))


def test_get_sink_is_cached_per_name(tmp_path: Path) -> None:
    settings = _settings(tmp_path)

    a = get_sink(settings=settings)
    b = get_sink()
    other = get_sink("audit", settings=settings)

    assert a is b
    assert other is not a


def test_closed_sink_is_replaced(tmp_path: Path) -> None:
    first = get_sink(settings=_settings(tmp_path))
    first.drain(timeout=5.0)

    second = get_sink(settings=_settings(tmp_path))

    assert second is not first
    assert not second.closed


def test_clear_sink_cache_drains(tmp_path: Path) -> None:
    sink = get_sink(settings=_settings(tmp_path, filename="cache.log"))
    sink.write(b"cached\n")

    spoollog.clear_sink_cache()

    assert sink.closed
    assert (tmp_path / "cache.log").read_bytes() == b"cached\n"


def test_from_settings_applies_configuration(tmp_path: Path) -> None:
    target = tmp_path / "nested"
    settings = Settings(
        sink=SinkSettings(
            directory=str(target),
            filename="svc.log",
            max_file_size=2 * MIB,
            max_file_count=4,
            enable_metrics=True,
            internal_logging_enabled=True,
            atexit_drain_enabled=False,
        )
    )

    sink = spoollog.LogSink.from_settings(settings)
    try:
        assert target.is_dir()
        assert sink.active_path == target / "svc.log"
        assert sink.max_file_size == 2 * MIB
        assert sink.max_file_count == 4
        assert sink.metrics.is_enabled
        assert diagnostics._is_enabled() is True
    finally:
        sink.drain(timeout=5.0)


def test_from_settings_bad_directory_raises(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_bytes(b"")

    with pytest.raises(SinkDirectoryError):
        spoollog.LogSink.from_settings(_settings(blocker / "sub"))
