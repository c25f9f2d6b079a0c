"""
Retention sweeper for rotated log files.

The sweeper is a long-running task woken by a ``SweepTrigger``. The trigger
holds at most one pending wake-up: any number of rotations notified before
the sweeper runs collapse into a single sweep.

A sweep lists ``<filename>.<14 digits>`` files in the target directory,
sorts them by name (the fixed-width timestamp makes that chronological) and
removes the oldest ones so that ``count + 1 <= max_file_count``. The ``+ 1``
counts the active file that the rotation just started. ``max_file_count <= 0``
disables deletion.
"""

from __future__ import annotations

import asyncio
import os
from typing import TYPE_CHECKING

from . import diagnostics

if TYPE_CHECKING:
    from ..metrics.metrics import MetricsCollector
    from ..sinks.rotating_file import SinkTarget


class SweepTrigger:
    """Single-slot, non-blocking wake-up signal.

    ``notify()`` may be called from any thread. When called off the event
    loop thread the flag is set through ``call_soon_threadsafe``.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._loop: asyncio.AbstractEventLoop | None = None

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    @property
    def pending(self) -> bool:
        return self._event.is_set()

    def notify(self) -> None:
        loop = self._loop
        if loop is None or _running_loop() is loop:
            self._event.set()
            return
        try:
            loop.call_soon_threadsafe(self._event.set)
        except RuntimeError:
            # Loop already closed; nothing left to sweep for
            return

    async def wait(self) -> None:
        """Wait for a pending notification and consume it."""
        await self._event.wait()
        self._event.clear()


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class RetentionSweeper:
    """Delete the oldest rotated files beyond the retention count."""

    def __init__(
        self,
        target: SinkTarget,
        trigger: SweepTrigger,
        *,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._target = target
        self._trigger = trigger
        self._metrics = metrics
        self._sweeps = 0

    @property
    def sweeps(self) -> int:
        """Number of sweep passes started so far."""
        return self._sweeps

    def list_rotated(self) -> list[str]:
        """Return rotated file names in the target directory, oldest first."""
        pattern = self._target.rotated_pattern()
        names: list[str] = []
        with os.scandir(self._target.directory or ".") as it:
            for entry in it:
                try:
                    if not entry.is_file():
                        continue
                except OSError:
                    continue
                if pattern.fullmatch(entry.name):
                    names.append(entry.name)
        names.sort()
        return names

    def sweep(self) -> int:
        """Run one retention pass; return the number of files removed."""
        max_count = self._target.max_file_count
        if max_count <= 0:
            return 0
        try:
            names = self.list_rotated()
        except OSError as exc:
            diagnostics.warn(
                "retention",
                "listing failed",
                directory=self._target.directory,
                error=str(exc),
                _rate_limit_key="retention-list",
            )
            return 0
        excess = len(names) + 1 - max_count
        if excess <= 0:
            return 0
        directory = self._target.directory or "."
        removed = 0
        for name in names[:excess]:
            try:
                os.remove(os.path.join(directory, name))
                removed += 1
            except OSError as exc:
                # Left for the next sweep
                diagnostics.warn(
                    "retention",
                    "delete failed",
                    file=name,
                    error=str(exc),
                    _rate_limit_key="retention-delete",
                )
        return removed

    async def run(self) -> None:
        """Sweep once per trigger wake-up until cancelled."""
        while True:
            await self._trigger.wait()
            self._sweeps += 1
            try:
                removed = await asyncio.to_thread(self.sweep)
            except Exception as exc:
                diagnostics.warn(
                    "retention",
                    "sweep error",
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
                continue
            if removed and self._metrics is not None:
                await self._metrics.record_files_pruned(removed)
