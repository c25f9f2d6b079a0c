"""
LogSink: the producer-facing spool sink.

A sink owns a private daemon thread running an asyncio event loop. The loop
hosts two long-running tasks:

- the ``FlushPump``, single consumer of the bounded ingress channel;
- the ``RetentionSweeper``, woken after each rotation.

``write()`` may be called from any thread. It copies the payload into a
pooled buffer and puts it on the channel with ``run_coroutine_threadsafe``,
blocking while the channel is full. Records are never dropped on the way in;
persistence failures downstream are contained and invisible to producers.

File appends run on a worker thread via ``asyncio.to_thread`` so that a slow
disk (or the rename retry delay) does not stall producers whose records still
fit in the channel.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..metrics.metrics import MetricsCollector, SinkMetrics
from ..sinks import ByteWriter, RotatingFileWriter, SinkTarget, WriteOutcome
from . import diagnostics
from .buffer_pool import BufferPool, PoolStats
from .defaults import (
    DEFAULT_CHANNEL_CAPACITY,
    DEFAULT_FLUSH_INTERVAL_SECONDS,
    DEFAULT_POOL_MAX_SIZE,
    clamp_channel_capacity,
    clamp_flush_interval,
    clamp_max_file_count,
    clamp_max_file_size,
)
from .errors import SinkClosedError, SinkDirectoryError
from .retention import RetentionSweeper, SweepTrigger
from .shutdown import register_sink, unregister_sink
from .worker import CLOSE, FlushPump

if TYPE_CHECKING:
    from .settings import Settings


class LogSink:
    """Buffered, rotating file sink for raw byte records.

    Usage:
        sink = LogSink(channel_capacity=1000, flush_interval=0.1)
        sink.set_dir("/var/log/myapp", "app.log")
        sink.set_max_file_size(8 * 1024 * 1024)
        sink.set_max_file_count(5)
        sink.write(b"hello\\n")
    """

    def __init__(
        self,
        channel_capacity: int = DEFAULT_CHANNEL_CAPACITY,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL_SECONDS,
        *,
        pool_max_size: int = DEFAULT_POOL_MAX_SIZE,
        metrics: MetricsCollector | None = None,
        register_atexit: bool = True,
        atexit_drain_timeout: float = 2.0,
    ) -> None:
        self._channel_capacity = clamp_channel_capacity(channel_capacity)
        self._flush_interval = clamp_flush_interval(flush_interval)
        self._target = SinkTarget()
        self._pool = BufferPool(max_size=pool_max_size)
        self._metrics = metrics if metrics is not None else MetricsCollector()
        self._queue: asyncio.Queue[bytearray | None] = asyncio.Queue(
            maxsize=self._channel_capacity
        )
        self._trigger = SweepTrigger()
        self._writer: ByteWriter = RotatingFileWriter(
            self._target, on_rotate=self._trigger.notify
        )
        self._sweeper = RetentionSweeper(
            self._target, self._trigger, metrics=self._metrics
        )
        self._pump = FlushPump(
            queue=self._queue,
            pool=self._pool,
            target=self._target,
            flush_interval=self._flush_interval,
            sink_write=self._write_to_file,
            metrics=self._metrics,
        )
        self.atexit_drain_timeout = atexit_drain_timeout

        self._closed = False
        self._close_lock = threading.Lock()
        # Loop-side view of the channel; only touched on the loop thread
        self._accepting = True
        self._inflight = 0
        self._puts_settled = asyncio.Event()
        self._pump_task: asyncio.Task[None] | None = None
        self._sweeper_task: asyncio.Task[None] | None = None

        self._loop = asyncio.new_event_loop()
        self._trigger.bind(self._loop)
        self._ready = threading.Event()
        self._thread = threading.Thread(
            target=self._run_loop, name="spoollog-sink", daemon=True
        )
        self._thread.start()
        self._ready.wait()

        if register_atexit:
            register_sink(self)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> LogSink:
        """Build a sink from ``Settings`` (environment when omitted)."""
        from .settings import Settings as _Settings

        cfg = (settings or _Settings()).sink
        diagnostics.set_enabled(cfg.internal_logging_enabled)
        sink = cls(
            cfg.channel_capacity,
            cfg.flush_interval_seconds,
            pool_max_size=cfg.pool_max_size,
            metrics=MetricsCollector(enabled=cfg.enable_metrics),
            register_atexit=cfg.atexit_drain_enabled,
            atexit_drain_timeout=cfg.atexit_drain_timeout_seconds,
        )
        try:
            sink.set_dir(cfg.directory, cfg.filename)
        except Exception:
            sink.drain()
            raise
        sink.set_max_file_size(cfg.max_file_size)
        sink.set_max_file_count(cfg.max_file_count)
        return sink

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def directory(self) -> str:
        return self._target.directory

    @property
    def filename(self) -> str:
        return self._target.filename

    @property
    def active_path(self) -> Path:
        return self._target.active_path

    @property
    def max_file_size(self) -> int:
        return self._target.max_file_size

    @property
    def max_file_count(self) -> int:
        return self._target.max_file_count

    @property
    def flush_interval(self) -> float:
        return self._flush_interval

    @property
    def channel_capacity(self) -> int:
        return self._channel_capacity

    @property
    def closed(self) -> bool:
        return self._closed

    def set_dir(self, directory: str | Path, filename: str) -> None:
        """Set where logs are stored and the active file's name.

        Creates ``directory`` (and parents) when missing; raises
        ``SinkDirectoryError`` if that fails.
        """
        if not filename or "/" in filename or "\\" in filename:
            raise ValueError("filename must be a plain, non-empty file name")
        directory = str(directory)
        if directory:
            try:
                Path(directory).mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise SinkDirectoryError(directory, exc) from exc
        self._target.directory = directory
        self._target.filename = filename

    def set_max_file_size(self, max_file_size: int) -> None:
        """Set the rotation threshold in bytes (at least 1 MiB)."""
        self._target.max_file_size = clamp_max_file_size(max_file_size)

    def set_max_file_count(self, max_file_count: int) -> None:
        """Set how many rotated files to keep; 0 keeps all of them."""
        self._target.max_file_count = clamp_max_file_count(max_file_count)

    # ------------------------------------------------------------------
    # Data plane
    # ------------------------------------------------------------------

    def write(self, data: bytes | bytearray | memoryview) -> int:
        """Queue ``data`` for the next flush; return the number of bytes copied.

        Blocks while the ingress channel is full. Raises ``TypeError`` for
        non bytes-like input and ``SinkClosedError`` once the sink is drained.

        Called from the sink's own loop thread (e.g. a bridged ``asyncio``
        log record) it never blocks: the record is dropped and 0 returned
        when the channel is full.
        """
        buf = self._acquire(data)
        # The pump owns buf once it is queued
        n = len(buf)
        if threading.get_ident() == self._thread.ident:
            return self._enqueue_nowait(buf, n)
        fut = self._submit(buf)
        try:
            fut.result()
        except concurrent.futures.CancelledError as exc:
            raise SinkClosedError() from exc
        return n

    async def awrite(self, data: bytes | bytearray | memoryview) -> int:
        """Coroutine form of ``write()`` for callers on another event loop."""
        buf = self._acquire(data)
        n = len(buf)
        fut = self._submit(buf)
        try:
            await asyncio.wrap_future(fut)
        except asyncio.CancelledError:
            if self._closed and fut.cancelled():
                raise SinkClosedError() from None
            raise
        return n

    def flush(self) -> None:
        """No-op; records are persisted by the background pump."""
        return None

    def _acquire(self, data: bytes | bytearray | memoryview) -> bytearray:
        if self._closed:
            raise SinkClosedError()
        buf = self._pool.acquire()
        try:
            buf += data
        except TypeError:
            self._pool.release(buf)
            raise
        return buf

    def _submit(self, buf: bytearray) -> concurrent.futures.Future[None]:
        coro = self._enqueue(buf)
        try:
            return asyncio.run_coroutine_threadsafe(coro, self._loop)
        except RuntimeError as exc:
            # Loop already closed by drain()
            coro.close()
            raise SinkClosedError() from exc

    async def _enqueue(self, buf: bytearray) -> None:
        if not self._accepting:
            self._pool.release(buf)
            raise SinkClosedError()
        self._inflight += 1
        try:
            await self._queue.put(buf)
        finally:
            self._inflight -= 1
            if not self._inflight:
                self._puts_settled.set()

    def _enqueue_nowait(self, buf: bytearray, n: int) -> int:
        if not self._accepting:
            self._pool.release(buf)
            raise SinkClosedError()
        try:
            self._queue.put_nowait(buf)
        except asyncio.QueueFull:
            # Blocking here would stall the pump on this same loop
            self._pool.release(buf)
            diagnostics.warn(
                "sink",
                "record dropped: channel full on the sink loop thread",
                _rate_limit_key="loop-thread-drop",
            )
            return 0
        return n

    async def _write_to_file(self, data: bytearray) -> WriteOutcome:
        if self._closed:
            # The default executor may already be shut down at interpreter exit
            return self._writer.write_file(data)
        return await asyncio.to_thread(self._writer.write_file, data)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _run_loop(self) -> None:
        loop = self._loop
        asyncio.set_event_loop(loop)
        self._pump_task = loop.create_task(self._pump.run())
        self._sweeper_task = loop.create_task(self._sweeper.run())
        self._ready.set()
        try:
            loop.run_forever()
        finally:
            pending = [t for t in asyncio.all_tasks(loop) if not t.done()]
            for task in pending:
                task.cancel()
            loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.run_until_complete(loop.shutdown_default_executor())
            loop.close()

    async def _shutdown(self) -> None:
        self._accepting = False
        # Puts already waiting for room finish before CLOSE goes in
        while self._inflight:
            self._puts_settled.clear()
            await self._puts_settled.wait()
        # CLOSE lands behind every record already accepted by the channel
        await self._queue.put(CLOSE)
        if self._pump_task is not None:
            await asyncio.gather(self._pump_task, return_exceptions=True)
        if self._sweeper_task is not None:
            self._sweeper_task.cancel()
            await asyncio.gather(self._sweeper_task, return_exceptions=True)
        if self._trigger.pending:
            removed = self._sweeper.sweep()
            if removed:
                await self._metrics.record_files_pruned(removed)

    def drain(self, timeout: float | None = None) -> bool:
        """Flush every accepted record, then stop the background loop.

        Returns True when everything was flushed within ``timeout``. Later
        writes raise ``SinkClosedError``. Safe to call more than once.
        """
        with self._close_lock:
            first = not self._closed
            self._closed = True
        unregister_sink(self)
        drained = True
        if first and self._thread.is_alive():
            fut = asyncio.run_coroutine_threadsafe(self._shutdown(), self._loop)
            try:
                fut.result(timeout)
            except concurrent.futures.TimeoutError:
                drained = False
                diagnostics.warn("sink", "drain timed out", timeout=timeout)
            except concurrent.futures.CancelledError:
                drained = False
            try:
                self._loop.call_soon_threadsafe(self._loop.stop)
            except RuntimeError:
                pass
        self._thread.join(timeout)
        return drained and not self._thread.is_alive()

    async def adrain(self, timeout: float | None = None) -> bool:
        return await asyncio.to_thread(self.drain, timeout)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def pump_restarts(self) -> int:
        return self._pump.restarts

    @property
    def sweeps(self) -> int:
        return self._sweeper.sweeps

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    def pool_stats(self) -> PoolStats:
        return self._pool.stats()

    def metrics_snapshot(self) -> SinkMetrics:
        if self._thread.is_alive() and not self._loop.is_closed():
            fut = asyncio.run_coroutine_threadsafe(
                self._metrics.snapshot(), self._loop
            )
            try:
                return fut.result(timeout=5.0)
            except (concurrent.futures.TimeoutError, concurrent.futures.CancelledError):
                pass
        return self._metrics.snapshot_nowait()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<LogSink {str(self.active_path)!r} {state}>"

    def __enter__(self) -> LogSink:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.drain()
