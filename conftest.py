"""
Root pytest configuration.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable, Generator

import pytest


def get_test_timeout(base: float, max_multiplier: float = 5.0) -> float:
    """Apply CI timeout multiplier to a base timeout value.

    Args:
        base: Base timeout in seconds
        max_multiplier: Maximum allowed multiplier (default 5x)

    Returns:
        Scaled timeout value

    Environment:
        CI_TIMEOUT_MULTIPLIER: Multiplier for CI environments (default: 1.0)
    """
    raw = os.getenv("CI_TIMEOUT_MULTIPLIER", "1.0")
    try:
        multiplier = float(raw) if raw else 1.0
        multiplier = min(multiplier, max_multiplier)
    except ValueError:
        multiplier = 1.0
    return base * multiplier


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "critical: Tests that must never fail - core functionality",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests that run a live sink against the filesystem",
    )
    config.addinivalue_line(
        "markers",
        "slow: Tests that take >1 second",
    )
    config.addinivalue_line(
        "markers",
        "asyncio: Async tests",
    )
    config.addinivalue_line(
        "markers",
        "property: Property-based tests (may be slow)",
    )


@pytest.fixture(autouse=True)
def reset_diagnostics_cache() -> Generator[None, None, None]:
    """Reset the diagnostics enable cache and rate limits around each test.

    ``internal_logging_enabled`` is cached at first access, so a test that
    enables diagnostics would otherwise leak that state into later tests.
    """
    import spoollog.core.diagnostics as diag

    diag._internal_logging_enabled = None
    diag.reset_rate_limits()
    yield
    diag._internal_logging_enabled = None
    diag.reset_rate_limits()


@pytest.fixture(autouse=True)
def _clear_sink_cache() -> Generator[None, None, None]:
    """Drain cached sinks so each test gets fresh ones from get_sink()."""
    from spoollog import clear_sink_cache

    clear_sink_cache()
    yield
    clear_sink_cache()


@pytest.fixture
def wait_until() -> Callable[..., bool]:
    """Poll a predicate until it holds or a (CI-scaled) timeout elapses.

    Example:
        def test_flush(wait_until, tmp_path):
            ...
            assert wait_until(lambda: path.exists())
    """

    def _wait(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
        deadline = time.monotonic() + get_test_timeout(timeout)
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(0.01)
        return predicate()

    return _wait
