"""Energy-based segmentation of a live PCM16 stream into committed segments."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional

from ...config import Settings
from ...data.models import (
    Attempt,
    FinalizeResult,
    Segment,
    SegmentReason,
    SessionResult,
    UsageInfo,
    VADInterval,
    VADKind,
)
from ...logging import get_logger
from ...services.transcription.base import StreamingBackend
from ...utils.audio import BYTES_PER_SAMPLE, SPEECH_RMS_THRESHOLD, chunk_duration_ms, is_speech
from .fallback import AttemptsExhaustedError, FallbackCoordinator

LOGGER = get_logger(__name__)

SegmentCallback = Callable[[Segment], None]


@dataclass
class SegmentationConfig:
    sample_rate: int = 16_000
    language: Optional[str] = None
    silence_ms: int = 700
    max_segment_ms: int = 25_000
    pre_roll_ms: int = 250
    vad_rms_threshold: float = SPEECH_RMS_THRESHOLD

    def __post_init__(self) -> None:
        self.sample_rate = max(self.sample_rate, 1)
        self.silence_ms = max(self.silence_ms, 1)
        self.max_segment_ms = max(self.max_segment_ms, 1)
        self.pre_roll_ms = max(self.pre_roll_ms, 0)

    @property
    def pre_roll_byte_limit(self) -> int:
        return (self.sample_rate * self.pre_roll_ms // 1000) * BYTES_PER_SAMPLE

    @classmethod
    def from_settings(cls, settings: Settings) -> "SegmentationConfig":
        return cls(
            sample_rate=settings.sample_rate,
            language=settings.language,
            silence_ms=settings.silence_ms,
            max_segment_ms=settings.max_segment_ms,
            pre_roll_ms=settings.pre_roll_ms,
            vad_rms_threshold=settings.vad_rms_threshold,
        )


class SegmentationEngine:
    """Turn chronologically ordered chunks into committed segments.

    The engine keeps its own timeline derived purely from chunk byte lengths,
    classifies each chunk as speech or silence by RMS energy and commits the
    open segment when it grows past ``max_segment_ms`` or when trailing
    silence after speech reaches ``silence_ms``. Each commit finalizes the
    streaming backend through the fallback coordinator.

    Not safe for concurrent use: exactly one consumer may call
    :meth:`process` and :meth:`finish`, one call at a time.
    """

    def __init__(
        self,
        backend: StreamingBackend,
        coordinator: FallbackCoordinator,
        config: Optional[SegmentationConfig] = None,
        on_segment: Optional[SegmentCallback] = None,
    ) -> None:
        self.backend = backend
        self.coordinator = coordinator
        self.config = config or SegmentationConfig()
        self.on_segment = on_segment

        self._timeline_ms = 0
        self._segment_started = False
        self._segment_has_speech = False
        self._segment_start_ms = 0
        self._segment_duration_ms = 0
        self._silence_accumulated_ms = 0
        self._stream_live = False
        self._segment_audio = bytearray()

        self._pre_roll = bytearray()
        self._pending_pre_roll = b""

        self._active_vad_kind: Optional[VADKind] = None
        self._active_vad_start_ms = 0

        self._segments: List[Segment] = []
        self._vad_intervals: List[VADInterval] = []
        self._attempts: List[Attempt] = []
        self.forward_failures = 0

    @property
    def timeline_ms(self) -> int:
        return self._timeline_ms

    @property
    def segments(self) -> List[Segment]:
        return list(self._segments)

    @property
    def vad_intervals(self) -> List[VADInterval]:
        return list(self._vad_intervals)

    @property
    def attempts(self) -> List[Attempt]:
        return list(self._attempts)

    @property
    def segment_open(self) -> bool:
        return self._segment_started

    async def process(self, chunk: bytes) -> None:
        if not chunk:
            return

        duration_ms = max(1, chunk_duration_ms(len(chunk), self.config.sample_rate))
        chunk_start_ms = self._timeline_ms
        self._timeline_ms += duration_ms

        self._append_pre_roll(chunk)
        await self._ensure_segment_started()
        await self._forward(chunk)
        self._segment_audio.extend(chunk)
        self._segment_duration_ms += duration_ms

        speech = is_speech(chunk, self.config.vad_rms_threshold)
        self._update_vad(VADKind.SPEECH if speech else VADKind.SILENCE, chunk_start_ms)
        if speech:
            self._segment_has_speech = True
            self._silence_accumulated_ms = 0
        else:
            self._silence_accumulated_ms += duration_ms

        if self._segment_duration_ms >= self.config.max_segment_ms:
            await self._commit(SegmentReason.MAX_SEGMENT, self._timeline_ms)
            return

        if (
            not speech
            and self._segment_has_speech
            and self._silence_accumulated_ms >= self.config.silence_ms
        ):
            await self._commit(SegmentReason.SILENCE, self._timeline_ms)

    async def finish(self) -> SessionResult:
        """Commit any open segment and close the VAD timeline."""

        if self._segment_started:
            await self._commit(SegmentReason.STOP, self._timeline_ms)
        self._close_vad(self._timeline_ms)

        usage = None
        if self._timeline_ms > 0:
            usage = UsageInfo(duration_seconds=self._timeline_ms / 1000, provider=self.backend.provider)
        return SessionResult(
            transcript="\n".join(segment.text for segment in self._segments),
            usage=usage,
            attempts=list(self._attempts),
            segments=list(self._segments),
            vad_intervals=list(self._vad_intervals),
            forward_failures=self.forward_failures,
        )

    async def abort(self) -> None:
        """Close a live stream for the open segment without committing it."""

        if not self._segment_started:
            return
        try:
            if self._stream_live:
                await self.backend.finish()
        except Exception as exc:
            LOGGER.warning("Closing stream on %s after abort failed: %s", self.backend.provider, exc)
        finally:
            LOGGER.info("Aborted open segment (%dms of audio)", self._segment_duration_ms)
            self._reset_segment()

    async def _ensure_segment_started(self) -> None:
        if self._segment_started:
            return

        try:
            await self.backend.start(self.config.sample_rate, self.config.language)
            self._stream_live = True
            LOGGER.info(
                "Streaming backend %s connected (sample_rate=%d, language=%s)",
                self.backend.provider,
                self.config.sample_rate,
                self.config.language or "auto",
            )
        except Exception as exc:
            self._stream_live = False
            LOGGER.warning(
                "Streaming backend %s failed to connect; segment will be transcribed synchronously: %s",
                self.backend.provider,
                exc,
            )

        rewind = min(self.config.pre_roll_ms, self._timeline_ms)
        self._segment_start_ms = max(0, self._timeline_ms - rewind)
        self._segment_started = True
        self._segment_has_speech = False
        self._segment_duration_ms = 0
        self._silence_accumulated_ms = 0
        self._segment_audio = bytearray(self._pending_pre_roll)

        if self._pending_pre_roll:
            await self._forward(self._pending_pre_roll)
            self._pending_pre_roll = b""

    async def _forward(self, data: bytes) -> None:
        if not self._stream_live:
            self.forward_failures += 1
            return
        try:
            await self.backend.enqueue_chunk(data)
        except Exception as exc:
            self.forward_failures += 1
            LOGGER.debug("Failed to forward %d bytes to %s: %s", len(data), self.backend.provider, exc)

    async def _finish_stream(self) -> FinalizeResult:
        transcript, usage = await self.backend.finish()
        return FinalizeResult(transcript=transcript, usage=usage)

    async def _commit(self, reason: SegmentReason, end_ms: int) -> None:
        if not self._segment_started:
            return
        if not self._segment_has_speech:
            await self._discard_segment(reason)
            return

        audio = bytes(self._segment_audio)
        stream_finish = self._finish_stream if self._stream_live else None
        try:
            outcome = await self.coordinator.finalize(
                stream_finish, audio, self.config.sample_rate, self.config.language
            )
        except AttemptsExhaustedError as exc:
            self._attempts.extend(exc.attempts)
            raise
        finally:
            self._reset_segment()

        self._attempts.extend(outcome.attempts)
        text = outcome.transcript.strip()
        if not text:
            LOGGER.debug("Segment ended (%s) without text", reason.value)
            return

        segment = Segment(
            index=len(self._segments),
            start_ms=self._segment_start_ms,
            end_ms=max(self._segment_start_ms, end_ms),
            text=text,
            reason=reason,
            attempts=outcome.attempts,
        )
        self._segments.append(segment)
        LOGGER.info(
            "Committed segment %d (%s) %d-%dms, %d chars",
            segment.index,
            reason.value,
            segment.start_ms,
            segment.end_ms,
            len(text),
        )
        if self.on_segment is not None:
            try:
                self.on_segment(segment)
            except Exception:  # pragma: no cover - callbacks should not break segmentation
                LOGGER.exception("Segment callback raised an exception")

    async def _discard_segment(self, reason: SegmentReason) -> None:
        """Close a segment that never contained speech without transcribing it."""

        try:
            if self._stream_live:
                await self.backend.finish()
        except Exception as exc:
            LOGGER.debug("Closing silent stream on %s failed: %s", self.backend.provider, exc)
        finally:
            LOGGER.debug(
                "Discarded segment without speech (%s, %dms)", reason.value, self._segment_duration_ms
            )
            self._reset_segment()

    def _reset_segment(self) -> None:
        self._segment_started = False
        self._stream_live = False
        self._pending_pre_roll = bytes(self._pre_roll)
        self._segment_audio = bytearray()
        self._segment_has_speech = False
        self._segment_duration_ms = 0
        self._silence_accumulated_ms = 0

    def _append_pre_roll(self, chunk: bytes) -> None:
        limit = self.config.pre_roll_byte_limit
        if limit <= 0:
            return
        self._pre_roll.extend(chunk)
        if len(self._pre_roll) > limit:
            del self._pre_roll[: len(self._pre_roll) - limit]

    def _update_vad(self, kind: VADKind, start_ms: int) -> None:
        if self._active_vad_kind is kind:
            return
        if self._active_vad_kind is not None:
            self._append_vad(self._active_vad_start_ms, start_ms, self._active_vad_kind)
        self._active_vad_kind = kind
        self._active_vad_start_ms = start_ms

    def _close_vad(self, end_ms: int) -> None:
        if self._active_vad_kind is None:
            return
        self._append_vad(self._active_vad_start_ms, end_ms, self._active_vad_kind)
        self._active_vad_kind = None

    def _append_vad(self, start_ms: int, end_ms: int, kind: VADKind) -> None:
        if end_ms > start_ms:
            self._vad_intervals.append(VADInterval(start_ms=start_ms, end_ms=end_ms, kind=kind))


__all__ = ["SegmentCallback", "SegmentationConfig", "SegmentationEngine"]
