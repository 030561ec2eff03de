"""FIFO execution of chunk handlers submitted from any number of producers."""

from __future__ import annotations

import asyncio
import threading
from typing import Awaitable, Callable, Optional

from ...data.models import DrainStats
from ...logging import get_logger

LOGGER = get_logger(__name__)

ChunkHandler = Callable[[bytes], Awaitable[None]]

_CLOSE = object()


class OrderedChunkExecutor:
    """Feed chunks to one handler strictly in submission order.

    Submissions never wait for processing: they are counted under a lock and
    handed to a single consumer task on the event loop. Submissions from other
    threads are allowed once the executor has been started on a loop. After
    :meth:`close`, further submissions are counted as dropped. The first
    exception raised by the handler is kept and re-raised by :meth:`drain`
    once every queued chunk has been processed.
    """

    def __init__(self, handler: ChunkHandler, name: str = "chunks") -> None:
        self._handler = handler
        self.name = name
        self._lock = threading.Lock()
        self._closed = False
        self._submitted_chunks = 0
        self._submitted_bytes = 0
        self._dropped_chunks = 0
        self._first_error: Optional[BaseException] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional["asyncio.Queue[object]"] = None
        self._worker: Optional["asyncio.Task[None]"] = None

    def start(self) -> None:
        """Bind to the running event loop and spawn the consumer."""

        with self._lock:
            self._start_locked(asyncio.get_running_loop())

    def _start_locked(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._loop is not None:
            return
        self._loop = loop
        self._queue = asyncio.Queue()
        self._worker = loop.create_task(self._run(), name=f"ordered-{self.name}")

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    @property
    def stats(self) -> DrainStats:
        with self._lock:
            return DrainStats(
                submitted_chunks=self._submitted_chunks,
                submitted_bytes=self._submitted_bytes,
                dropped_chunks=self._dropped_chunks,
            )

    def submit(self, chunk: bytes) -> bool:
        """Queue ``chunk``; returns ``False`` when it was empty or dropped."""

        if not chunk:
            return False
        with self._lock:
            if self._closed:
                self._dropped_chunks += 1
                return False
            if self._loop is None:
                try:
                    self._start_locked(asyncio.get_running_loop())
                except RuntimeError:
                    raise RuntimeError(
                        f"Executor '{self.name}' must be started on an event loop before "
                        "submitting from another thread"
                    ) from None
            self._submitted_chunks += 1
            self._submitted_bytes += len(chunk)
            # Enqueued while holding the lock so loop insertion order matches
            # the order in which producers acquired it.
            self._loop.call_soon_threadsafe(self._queue.put_nowait, bytes(chunk))
        return True

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._loop is not None:
                self._loop.call_soon_threadsafe(self._queue.put_nowait, _CLOSE)

    async def drain(self) -> DrainStats:
        """Close, wait for every queued chunk and return the final counters."""

        self.close()
        if self._worker is not None:
            await self._worker
        if self._first_error is not None:
            raise self._first_error
        return self.stats

    async def _run(self) -> None:
        assert self._queue is not None
        while True:
            item = await self._queue.get()
            if item is _CLOSE:
                return
            try:
                await self._handler(item)  # type: ignore[arg-type]
            except Exception as exc:
                with self._lock:
                    if self._first_error is None:
                        self._first_error = exc
                        LOGGER.warning("Chunk processing failed in '%s': %s", self.name, exc)
                    else:
                        LOGGER.debug("Ignoring subsequent chunk failure in '%s': %s", self.name, exc)


__all__ = ["ChunkHandler", "OrderedChunkExecutor"]
