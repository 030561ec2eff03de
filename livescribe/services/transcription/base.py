"""Transcription backend abstractions.

Two call shapes exist: a long-lived streaming connection that is fed chunks
and then finalized, and a stateless synchronous request that transcribes a
complete buffer. Any provider implementing these plugs into the segmentation
and fallback logic unchanged.
"""

from __future__ import annotations

import abc
from typing import Optional, Tuple

from ...data.models import UsageInfo

TranscriptWithUsage = Tuple[str, Optional[UsageInfo]]


class TranscriptionError(RuntimeError):
    """Raised when a transcription backend fails."""


class TransportError(TranscriptionError):
    """Raised when a streaming connection or finalize call fails."""


class StreamingBackend(abc.ABC):
    """One remote streaming transcription connection."""

    provider: str = "streaming"

    @abc.abstractmethod
    async def start(self, sample_rate: int, language: Optional[str]) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def enqueue_chunk(self, chunk: bytes) -> None:
        """Forward audio; best effort, callers tolerate failures."""

        raise NotImplementedError

    @abc.abstractmethod
    async def finish(self) -> TranscriptWithUsage:
        """Request the final transcript and close the connection."""

        raise NotImplementedError


class SyncBackend(abc.ABC):
    """Stateless request/response transcription."""

    provider: str = "rest"

    @abc.abstractmethod
    async def transcribe(
        self,
        credential: Optional[str],
        sample_rate: int,
        audio: bytes,
        language: Optional[str],
    ) -> TranscriptWithUsage:
        raise NotImplementedError


__all__ = [
    "StreamingBackend",
    "SyncBackend",
    "TranscriptWithUsage",
    "TranscriptionError",
    "TransportError",
]
