"""
Flush pump: the single consumer of the ingress channel.

The pump drains record buffers into a local accumulation buffer and hands
it to the file writer when either

- the periodic tick fires and the buffer is non-empty, or
- the buffer grows past ``min(max_file_size, 1 MiB)`` (eager size flush).

Only the pump touches the accumulation buffer, so it needs no lock; the
channel is the sole synchronisation point with producers.

Fault handling: ``run()`` supervises ``_serve()``. An unexpected exception in
an iteration is reported and the loop restarts with a fresh, empty
accumulation buffer. Bytes accumulated but not yet flushed by the faulted run
are lost. Writer I/O errors do not count as faults; the writer contains them.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from ..metrics.metrics import MetricsCollector
from ..sinks.rotating_file import SinkTarget, WriteOutcome
from .buffer_pool import BufferPool
from .defaults import max_cache_size
from .diagnostics import warn

# Pushed by LogSink.drain() behind every accepted record; ends the pump
CLOSE = None


class FlushPump:
    """Background task that turns queued records into file appends."""

    def __init__(
        self,
        *,
        queue: asyncio.Queue[bytearray | None],
        pool: BufferPool,
        target: SinkTarget,
        flush_interval: float,
        sink_write: Callable[[bytearray], Awaitable[WriteOutcome]],
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._queue = queue
        self._pool = pool
        self._target = target
        self._flush_interval = flush_interval
        self._sink_write = sink_write
        self._metrics = metrics
        self._closed = False
        self._restarts = 0

    @property
    def restarts(self) -> int:
        return self._restarts

    @property
    def closed(self) -> bool:
        return self._closed

    async def run(self) -> None:
        while True:
            try:
                await self._serve()
                return
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                # Accumulated bytes of the faulted run are dropped here
                self._restarts += 1
                self._emit_pump_error(exc)
                if self._metrics is not None:
                    await self._metrics.record_pump_restart()
                if self._closed:
                    return
                await asyncio.sleep(0)

    async def _serve(self) -> None:
        loop = asyncio.get_running_loop()
        data = bytearray()
        cache_limit = max_cache_size(self._target.max_file_size)
        next_tick = loop.time() + self._flush_interval

        while True:
            now = loop.time()
            if now >= next_tick:
                next_tick += self._flush_interval
                if next_tick <= now:
                    # Missed ticks are not replayed
                    next_tick = now + self._flush_interval
                if data:
                    await self._flush(data, trigger="interval")
                cache_limit = max_cache_size(self._target.max_file_size)
            else:
                try:
                    item = self._queue.get_nowait()
                except asyncio.QueueEmpty:
                    try:
                        item = await asyncio.wait_for(
                            self._queue.get(), timeout=next_tick - now
                        )
                    except asyncio.TimeoutError:
                        continue
                if item is CLOSE:
                    self._closed = True
                    if data:
                        await self._flush(data, trigger="drain")
                    return
                data += item
                self._pool.release(item)
                if self._metrics is not None:
                    await self._metrics.record_records_accepted()

            if len(data) > cache_limit:
                await self._flush(data, trigger="size")

    async def _flush(self, data: bytearray, *, trigger: str) -> None:
        nbytes = len(data)
        outcome = await self._sink_write(data)
        data.clear()
        if self._metrics is not None:
            await self._metrics.record_flush(
                trigger=trigger,
                nbytes=nbytes,
                rotated=outcome is WriteOutcome.ROTATED,
                dropped=outcome is WriteOutcome.DROPPED,
            )

    def _emit_pump_error(self, exc: Exception) -> None:
        try:
            warn(
                "pump",
                "flush pump fault; restarting with an empty buffer",
                error_type=type(exc).__name__,
                error=str(exc),
            )
        except Exception:
            pass
