"""Dummy transcription backends for testing or offline usage."""

from __future__ import annotations

from typing import Optional

from ...data.models import UsageInfo
from ...utils.audio import BYTES_PER_SAMPLE
from .base import StreamingBackend, SyncBackend, TranscriptWithUsage, TransportError


def _describe(byte_count: int, sample_rate: int) -> str:
    seconds = byte_count / BYTES_PER_SAMPLE / max(sample_rate, 1)
    return f"[dummy transcript of {seconds:.2f}s audio]"


class DummyStreamingBackend(StreamingBackend):
    provider = "dummy_stream"

    def __init__(self) -> None:
        self.sample_rate = 0
        self.language: Optional[str] = None
        self.started = False
        self.received_bytes = 0
        self.sessions = 0

    async def start(self, sample_rate: int, language: Optional[str]) -> None:
        self.sample_rate = sample_rate
        self.language = language
        self.started = True
        self.received_bytes = 0
        self.sessions += 1

    async def enqueue_chunk(self, chunk: bytes) -> None:
        if not self.started:
            raise TransportError("stream is not connected")
        self.received_bytes += len(chunk)

    async def finish(self) -> TranscriptWithUsage:
        if not self.started:
            raise TransportError("stream is not connected")
        self.started = False
        if self.received_bytes == 0:
            return "", None
        usage = UsageInfo(
            duration_seconds=self.received_bytes / BYTES_PER_SAMPLE / max(self.sample_rate, 1),
            provider=self.provider,
        )
        return _describe(self.received_bytes, self.sample_rate), usage


class DummySyncBackend(SyncBackend):
    provider = "dummy_rest"

    async def transcribe(
        self,
        credential: Optional[str],
        sample_rate: int,
        audio: bytes,
        language: Optional[str],
    ) -> TranscriptWithUsage:
        if not audio:
            return "", None
        usage = UsageInfo(
            duration_seconds=len(audio) / BYTES_PER_SAMPLE / max(sample_rate, 1),
            provider=self.provider,
        )
        return _describe(len(audio), sample_rate), usage


__all__ = ["DummyStreamingBackend", "DummySyncBackend"]
