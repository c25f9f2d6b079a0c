from __future__ import annotations

import threading

import pytest

from spoollog.core.buffer_pool import BufferPool


def test_acquire_returns_empty_buffer() -> None:
    pool = BufferPool(max_size=4)
    buf = pool.acquire()
    assert isinstance(buf, bytearray)
    assert len(buf) == 0


def test_released_buffer_is_cleared_and_reused() -> None:
    pool = BufferPool(max_size=4)
    buf = pool.acquire()
    buf += b"payload"

    pool.release(buf)
    again = pool.acquire()

    assert again is buf
    assert again == bytearray()
    stats = pool.stats()
    assert stats.created == 1
    assert stats.reused == 1
    assert stats.idle == 0


def test_release_beyond_max_size_discards() -> None:
    pool = BufferPool(max_size=2)
    bufs = [pool.acquire() for _ in range(3)]
    for b in bufs:
        pool.release(b)

    stats = pool.stats()
    assert stats.idle == 2
    assert stats.discarded == 1


def test_zero_sized_pool_always_allocates() -> None:
    pool = BufferPool(max_size=0)
    first = pool.acquire()
    pool.release(first)
    second = pool.acquire()

    assert second is not first
    assert pool.stats().created == 2


def test_negative_max_size_rejected() -> None:
    with pytest.raises(ValueError):
        BufferPool(max_size=-1)


def test_concurrent_acquire_release_keeps_counts_consistent() -> None:
    pool = BufferPool(max_size=8)
    rounds = 500

    def worker() -> None:
        for i in range(rounds):
            buf = pool.acquire()
            buf += i.to_bytes(4, "little")
            pool.release(buf)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stats = pool.stats()
    assert stats.created + stats.reused == 4 * rounds
    assert stats.idle <= pool.max_size
    assert stats.created == stats.idle + stats.discarded
