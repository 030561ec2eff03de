"""Streaming session: ordered chunk intake feeding one segmentation engine."""

from __future__ import annotations

import time
import uuid
from typing import List, Optional

from ...data.models import Attempt, SessionResult
from ...logging import get_logger
from ...services.transcription.base import StreamingBackend
from .fallback import FallbackCoordinator
from .ordered import OrderedChunkExecutor
from .segmentation import SegmentationConfig, SegmentationEngine, SegmentCallback

LOGGER = get_logger(__name__)


class StreamingSession:
    """Own the lifecycle start -> submit* -> finish for one recording.

    ``submit`` may be called from any thread or task and never waits for
    processing; ``finish`` is the single point where every prior submission
    has been processed (or counted as dropped) before the last segment is
    committed.
    """

    def __init__(
        self,
        backend: StreamingBackend,
        coordinator: FallbackCoordinator,
        config: Optional[SegmentationConfig] = None,
        on_segment: Optional[SegmentCallback] = None,
        run_id: Optional[str] = None,
    ) -> None:
        self.run_id = run_id or uuid.uuid4().hex[:8]
        self.engine = SegmentationEngine(backend, coordinator, config, on_segment=on_segment)
        self.executor = OrderedChunkExecutor(self._process, name=self.run_id)
        self._captured = bytearray()
        self._finished = False

    @property
    def config(self) -> SegmentationConfig:
        return self.engine.config

    @property
    def captured_audio(self) -> bytes:
        """Audio processed so far, in processing order."""

        return bytes(self._captured)

    @property
    def segment_attempts(self) -> List[Attempt]:
        return self.engine.attempts

    async def start(self) -> None:
        self.executor.start()

    def submit(self, chunk: bytes) -> bool:
        return self.executor.submit(chunk)

    async def finish(self) -> SessionResult:
        if self._finished:
            raise RuntimeError(f"Streaming session {self.run_id} already finished")
        self._finished = True

        drain_started = time.monotonic()
        try:
            stats = await self.executor.drain()
        except Exception:
            await self.engine.abort()
            raise
        LOGGER.info(
            "Session %s drained %d chunks (%d bytes, %d dropped) in %.1fms",
            self.run_id,
            stats.submitted_chunks,
            stats.submitted_bytes,
            stats.dropped_chunks,
            (time.monotonic() - drain_started) * 1000,
        )
        result = await self.engine.finish()
        return result.model_copy(update={"drain_stats": stats})

    async def discard(self) -> None:
        """Stop intake and wait for the worker without committing anything."""

        if self._finished:
            return
        self._finished = True
        try:
            await self.executor.drain()
        finally:
            await self.engine.abort()

    async def _process(self, chunk: bytes) -> None:
        self._captured.extend(chunk)
        await self.engine.process(chunk)


__all__ = ["StreamingSession"]
