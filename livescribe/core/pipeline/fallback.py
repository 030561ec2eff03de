"""Streaming finalize with transparent replay through a synchronous backend."""

from __future__ import annotations

from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional, Tuple

from ...data.models import (
    Attempt,
    AttemptKind,
    AttemptStatus,
    FinalizeOutcome,
    FinalizeResult,
    SessionResult,
    TranscriptionResult,
    UsageInfo,
)
from ...logging import get_logger
from ...services.transcription.base import SyncBackend, TranscriptionError
from ...utils.timing import epoch_ms

if TYPE_CHECKING:
    from .session import StreamingSession

LOGGER = get_logger(__name__)

StreamFinish = Callable[[], Awaitable[FinalizeResult]]


class AttemptsExhaustedError(TranscriptionError):
    """Raised when neither the stream nor the synchronous backend produced text."""

    def __init__(self, message: str, attempts: List[Attempt]) -> None:
        super().__init__(message)
        self.attempts = attempts


def describe_error(exc: BaseException) -> str:
    message = str(exc).strip()
    return message or type(exc).__name__


def _by_start(attempts: List[Attempt]) -> List[Attempt]:
    return sorted(attempts, key=lambda attempt: attempt.start_ms)


class FallbackCoordinator:
    """Prefer a live stream's final transcript; replay audio on failure.

    Every call yields an ordered attempt trace: a single ``rest`` or
    ``stream_finalize`` attempt on the direct paths, or
    ``[stream_finalize(error), rest_fallback(...)]`` when the stream failed.
    :meth:`transcribe` prefixes the trace with the session's segment-level
    attempts.
    """

    def __init__(self, sync_backend: SyncBackend, credential: Optional[str] = None) -> None:
        self.sync_backend = sync_backend
        self.credential = credential

    async def finalize(
        self,
        stream_finish: Optional[StreamFinish],
        audio: bytes,
        sample_rate: int,
        language: Optional[str],
    ) -> FinalizeOutcome:
        if stream_finish is None:
            return await self._sync_only(AttemptKind.REST, audio, sample_rate, language, [])

        started_ms = epoch_ms()
        try:
            result = await stream_finish()
        except Exception as exc:
            failed = Attempt(
                kind=AttemptKind.STREAM_FINALIZE,
                status=AttemptStatus.ERROR,
                start_ms=started_ms,
                end_ms=epoch_ms(),
                source="stream_finalize",
                error=describe_error(exc),
                sample_rate=sample_rate,
                audio_bytes=len(audio),
            )
            LOGGER.warning(
                "Streaming finalize failed; replaying %d bytes through %s: %s",
                len(audio),
                self.sync_backend.provider,
                failed.error,
            )
            return await self._sync_only(AttemptKind.REST_FALLBACK, audio, sample_rate, language, [failed])

        drain = result.drain_stats
        attempt = Attempt(
            kind=AttemptKind.STREAM_FINALIZE,
            status=AttemptStatus.OK,
            start_ms=started_ms,
            end_ms=epoch_ms(),
            source="stream_finalize",
            text_chars=len(result.transcript),
            sample_rate=sample_rate,
            audio_bytes=len(audio),
            submitted_chunks=drain.submitted_chunks if drain else None,
            submitted_bytes=drain.submitted_bytes if drain else None,
            dropped_chunks=drain.dropped_chunks if drain else None,
        )
        return FinalizeOutcome(transcript=result.transcript, usage=result.usage, attempts=[attempt])

    async def transcribe(
        self,
        audio: bytes,
        sample_rate: int,
        language: Optional[str],
        session: Optional["StreamingSession"] = None,
    ) -> TranscriptionResult:
        """Transcribe a whole recording, finishing ``session`` when one was used."""

        if session is None:
            outcome = await self.finalize(None, audio, sample_rate, language)
            return TranscriptionResult(
                transcript=outcome.transcript,
                usage=outcome.usage,
                attempts=outcome.attempts,
            )

        finished: List[SessionResult] = []

        async def finish_session() -> FinalizeResult:
            result = await session.finish()
            finished.append(result)
            return FinalizeResult(
                transcript=result.transcript,
                usage=result.usage,
                drain_stats=result.drain_stats,
            )

        try:
            outcome = await self.finalize(finish_session, audio, sample_rate, language)
        except AttemptsExhaustedError as exc:
            exc.attempts = [*_by_start(session.segment_attempts), *exc.attempts]
            raise

        attempts = [*_by_start(session.segment_attempts), *outcome.attempts]
        if finished and outcome.attempts[-1].kind is AttemptKind.STREAM_FINALIZE:
            return TranscriptionResult(
                transcript=outcome.transcript,
                usage=outcome.usage,
                attempts=attempts,
                segments=finished[0].segments,
                vad_intervals=finished[0].vad_intervals,
            )
        return TranscriptionResult(
            transcript=outcome.transcript,
            usage=outcome.usage,
            attempts=attempts,
        )

    async def _sync_only(
        self,
        kind: AttemptKind,
        audio: bytes,
        sample_rate: int,
        language: Optional[str],
        prior: List[Attempt],
    ) -> FinalizeOutcome:
        transcript, usage, attempt, error = await self._call_sync(kind, audio, sample_rate, language)
        attempts = [*prior, attempt]
        if error is not None:
            raise AttemptsExhaustedError(describe_error(error), attempts) from error
        LOGGER.info("%s transcription done (%d chars)", kind.value, len(transcript))
        return FinalizeOutcome(transcript=transcript, usage=usage, attempts=attempts)

    async def _call_sync(
        self,
        kind: AttemptKind,
        audio: bytes,
        sample_rate: int,
        language: Optional[str],
    ) -> Tuple[str, Optional[UsageInfo], Attempt, Optional[Exception]]:
        started_ms = epoch_ms()
        try:
            transcript, usage = await self.sync_backend.transcribe(
                self.credential, sample_rate, audio, language
            )
        except Exception as exc:
            attempt = Attempt(
                kind=kind,
                status=AttemptStatus.ERROR,
                start_ms=started_ms,
                end_ms=epoch_ms(),
                source=kind.value,
                error=describe_error(exc),
                sample_rate=sample_rate,
                audio_bytes=len(audio),
            )
            return "", None, attempt, exc
        attempt = Attempt(
            kind=kind,
            status=AttemptStatus.OK,
            start_ms=started_ms,
            end_ms=epoch_ms(),
            source=kind.value,
            text_chars=len(transcript),
            sample_rate=sample_rate,
            audio_bytes=len(audio),
        )
        return transcript, usage, attempt, None


__all__ = ["AttemptsExhaustedError", "FallbackCoordinator", "StreamFinish", "describe_error"]
