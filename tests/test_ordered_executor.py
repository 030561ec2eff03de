"""Tests for the FIFO chunk executor."""

from __future__ import annotations

import asyncio
import random
import threading

import pytest

from livescribe.core.pipeline.ordered import OrderedChunkExecutor


@pytest.mark.asyncio
async def test_chunks_are_processed_in_submission_order() -> None:
    seen = []
    rng = random.Random(7)

    async def handler(chunk: bytes) -> None:
        await asyncio.sleep(rng.random() / 1000)
        seen.append(chunk)

    executor = OrderedChunkExecutor(handler)
    executor.start()
    chunks = [bytes([index]) * (index + 1) for index in range(50)]
    for chunk in chunks:
        assert executor.submit(chunk)

    stats = await executor.drain()

    assert seen == chunks
    assert stats.submitted_chunks == 50
    assert stats.submitted_bytes == sum(len(chunk) for chunk in chunks)
    assert stats.dropped_chunks == 0


@pytest.mark.asyncio
async def test_submit_does_not_wait_for_processing() -> None:
    release = asyncio.Event()
    processed = []

    async def handler(chunk: bytes) -> None:
        await release.wait()
        processed.append(chunk)

    executor = OrderedChunkExecutor(handler)
    executor.start()
    executor.submit(b"a")
    executor.submit(b"b")

    assert executor.stats.submitted_chunks == 2
    assert processed == []

    release.set()
    await executor.drain()
    assert processed == [b"a", b"b"]


@pytest.mark.asyncio
async def test_submissions_from_threads_keep_per_thread_order() -> None:
    seen = []

    async def handler(chunk: bytes) -> None:
        seen.append(chunk)

    executor = OrderedChunkExecutor(handler)
    executor.start()

    def produce(tag: bytes) -> None:
        for index in range(100):
            executor.submit(tag + bytes([index]))

    threads = [threading.Thread(target=produce, args=(tag,)) for tag in (b"x", b"y")]
    for thread in threads:
        thread.start()
    await asyncio.get_running_loop().run_in_executor(None, lambda: [t.join() for t in threads])

    stats = await executor.drain()

    assert stats.submitted_chunks == 200
    for tag in (b"x", b"y"):
        indexes = [chunk[1] for chunk in seen if chunk[:1] == tag]
        assert indexes == list(range(100))


@pytest.mark.asyncio
async def test_submissions_after_close_are_dropped() -> None:
    seen = []

    async def handler(chunk: bytes) -> None:
        seen.append(chunk)

    executor = OrderedChunkExecutor(handler)
    executor.start()
    executor.submit(b"kept")
    executor.close()

    assert executor.closed
    assert executor.submit(b"late") is False

    stats = await executor.drain()
    assert seen == [b"kept"]
    assert stats.submitted_chunks == 1
    assert stats.dropped_chunks == 1


@pytest.mark.asyncio
async def test_empty_chunks_are_ignored() -> None:
    async def handler(chunk: bytes) -> None:
        raise AssertionError("handler should not run")

    executor = OrderedChunkExecutor(handler)
    executor.start()

    assert executor.submit(b"") is False
    stats = await executor.drain()
    assert stats.submitted_chunks == 0


@pytest.mark.asyncio
async def test_first_error_is_reraised_after_all_items_run() -> None:
    seen = []

    async def handler(chunk: bytes) -> None:
        seen.append(chunk)
        if chunk in (b"2", b"4"):
            raise ValueError(f"bad chunk {chunk!r}")

    executor = OrderedChunkExecutor(handler)
    executor.start()
    for index in range(6):
        executor.submit(str(index).encode())

    with pytest.raises(ValueError, match="bad chunk b'2'"):
        await executor.drain()
    assert seen == [str(index).encode() for index in range(6)]


@pytest.mark.asyncio
async def test_submit_auto_starts_inside_running_loop() -> None:
    seen = []

    async def handler(chunk: bytes) -> None:
        seen.append(chunk)

    executor = OrderedChunkExecutor(handler)
    executor.submit(b"x")

    await executor.drain()
    assert seen == [b"x"]


def test_submit_without_event_loop_raises() -> None:
    async def handler(chunk: bytes) -> None:  # pragma: no cover - never scheduled
        pass

    executor = OrderedChunkExecutor(handler)

    with pytest.raises(RuntimeError):
        executor.submit(b"x")
