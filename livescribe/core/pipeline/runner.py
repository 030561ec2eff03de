"""Post-recording pipeline: transcription, formatting, insertion and stats."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from ...data.models import TranscriptionResult
from ...data.stats import RuntimeStatsEntry, RuntimeStatsOutcome
from ...data.storage import RuntimeStatsStore
from ...logging import get_logger
from ...services.output.base import DirectInput
from ...services.postprocess.base import PostProcessor
from ...utils.timing import utc_now
from .fallback import FallbackCoordinator, describe_error
from .readiness import DEFAULT_GRACE_SECONDS, await_if_ready
from .session import StreamingSession
from .state import PipelineEvent, PipelineStateMachine

LOGGER = get_logger(__name__)


class PipelineStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


class SkipReason(str, Enum):
    EMPTY_AUDIO = "empty_audio"
    EMPTY_STT = "empty_stt"
    EMPTY_OUTPUT = "empty_output"


@dataclass
class RunRequest:
    """Everything captured by the time recording stopped.

    ``stopped_at`` and ``enrichment_started_at`` are :func:`time.monotonic`
    readings. ``enrichment`` is an optional task computing extra context for
    post-processing (e.g. a screen description) that was started while
    recording.
    """

    audio: bytes
    sample_rate: int
    language: Optional[str] = None
    session: Optional[StreamingSession] = None
    enrichment: Optional["asyncio.Task[Optional[str]]"] = None
    enrichment_started_at: Optional[float] = None
    stopped_at: float = field(default_factory=time.monotonic)


@dataclass
class PipelineOutcome:
    status: PipelineStatus
    reason: Optional[SkipReason] = None
    stt_text: Optional[str] = None
    output_text: Optional[str] = None
    message: Optional[str] = None
    direct_input_succeeded: bool = False
    transcription: Optional[TranscriptionResult] = None


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 3)


class PipelineRunner:
    """Drive one run from ``sttStreaming`` to ``done``, ``idle`` or ``error``."""

    def __init__(
        self,
        coordinator: FallbackCoordinator,
        postprocessor: Optional[PostProcessor] = None,
        direct_input: Optional[DirectInput] = None,
        stats_store: Optional[RuntimeStatsStore] = None,
        enrichment_grace: float = DEFAULT_GRACE_SECONDS,
    ) -> None:
        self.coordinator = coordinator
        self.postprocessor = postprocessor
        self.direct_input = direct_input
        self.stats_store = stats_store
        self.enrichment_grace = enrichment_grace

    async def run(self, request: RunRequest, machine: PipelineStateMachine) -> PipelineOutcome:
        machine.apply(PipelineEvent.STOP_RECORDING)
        timings: Dict[str, float] = {}
        stt_text: Optional[str] = None
        output_text: Optional[str] = None
        transcription: Optional[TranscriptionResult] = None

        try:
            if not request.audio:
                if request.session is not None:
                    await request.session.discard()
                LOGGER.info("Recording produced no audio; skipping run")
                return await self._skip(machine, SkipReason.EMPTY_AUDIO, timings)

            started = time.monotonic()
            transcription = await self.coordinator.transcribe(
                request.audio, request.sample_rate, request.language, session=request.session
            )
            timings["stt_ms"] = _elapsed_ms(started)
            stt_text = transcription.transcript.strip()
            if not stt_text:
                LOGGER.info("Transcription returned no text; skipping run")
                return await self._skip(machine, SkipReason.EMPTY_STT, timings, transcription=transcription)

            machine.apply(PipelineEvent.START_POST_PROCESSING)
            context = await self._collect_enrichment(request, timings)

            if self.postprocessor is not None:
                started = time.monotonic()
                output_text = (await self.postprocessor.process(stt_text, context)).strip()
                timings["post_ms"] = _elapsed_ms(started)
            else:
                output_text = stt_text
            if not output_text:
                LOGGER.info("Post-processing returned no text; skipping run")
                return await self._skip(
                    machine,
                    SkipReason.EMPTY_OUTPUT,
                    timings,
                    stt_text=stt_text,
                    transcription=transcription,
                )

            machine.apply(PipelineEvent.START_DIRECT_INPUT)
            inserted = False
            if self.direct_input is not None:
                started = time.monotonic()
                inserted = await self.direct_input.insert(output_text)
                timings["direct_input_ms"] = _elapsed_ms(started)
                if not inserted:
                    LOGGER.warning("Direct input did not accept %d chars", len(output_text))
            machine.apply(PipelineEvent.FINISH)

            timings["total_after_stop_ms"] = _elapsed_ms(request.stopped_at)
            await self._record(RuntimeStatsOutcome.COMPLETED, timings)
            LOGGER.info(
                "Run completed in %.1fms after stop (%d chars)",
                timings["total_after_stop_ms"],
                len(output_text),
            )
            return PipelineOutcome(
                status=PipelineStatus.COMPLETED,
                stt_text=stt_text,
                output_text=output_text,
                direct_input_succeeded=inserted,
                transcription=transcription,
            )
        except Exception as exc:
            LOGGER.exception("Pipeline run failed: %s", exc)
            machine.apply(PipelineEvent.FAIL)
            await self._record(RuntimeStatsOutcome.FAILED, timings)
            return PipelineOutcome(
                status=PipelineStatus.FAILED,
                stt_text=stt_text,
                output_text=output_text,
                message=describe_error(exc),
                transcription=transcription,
            )
        finally:
            if request.enrichment is not None and not request.enrichment.done():
                request.enrichment.cancel()

    async def _collect_enrichment(self, request: RunRequest, timings: Dict[str, float]) -> Optional[str]:
        task = request.enrichment
        if task is None:
            return None
        try:
            readiness = await await_if_ready(task, self.enrichment_grace)
        except Exception as exc:
            LOGGER.warning("Context enrichment failed; continuing without it: %s", describe_error(exc))
            return None
        if not readiness.ready:
            LOGGER.info("Context enrichment not ready; cancelling it")
            task.cancel()
            return None
        if request.enrichment_started_at is not None:
            timings["vision_ms"] = _elapsed_ms(request.enrichment_started_at)
        return readiness.value or None

    async def _skip(
        self,
        machine: PipelineStateMachine,
        reason: SkipReason,
        timings: Dict[str, float],
        stt_text: Optional[str] = None,
        transcription: Optional[TranscriptionResult] = None,
    ) -> PipelineOutcome:
        await self._record(RuntimeStatsOutcome.SKIPPED, timings)
        machine.apply(PipelineEvent.RESET)
        return PipelineOutcome(
            status=PipelineStatus.SKIPPED,
            reason=reason,
            stt_text=stt_text,
            transcription=transcription,
        )

    async def _record(self, outcome: RuntimeStatsOutcome, timings: Dict[str, float]) -> None:
        if self.stats_store is None:
            return
        entry = RuntimeStatsEntry(recorded_at=utc_now(), outcome=outcome, **timings)
        try:
            await asyncio.to_thread(self.stats_store.record, entry)
        except OSError as exc:
            LOGGER.error("Failed to record runtime stats to %s: %s", self.stats_store.path, exc)


__all__ = ["PipelineOutcome", "PipelineRunner", "PipelineStatus", "RunRequest", "SkipReason"]
