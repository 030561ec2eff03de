"""Typer CLI entry point for livescribe."""

from __future__ import annotations

import asyncio
import time
import wave
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

import typer

from .config import (
    EnvironmentSettingError,
    Settings,
    clear_environment_setting,
    get_settings,
    list_environment_settings,
    update_environment_setting,
)
from .core.pipeline.fallback import FallbackCoordinator
from .core.pipeline.runner import PipelineOutcome, PipelineRunner, PipelineStatus, RunRequest
from .core.pipeline.segmentation import SegmentationConfig
from .core.pipeline.session import StreamingSession
from .core.pipeline.state import PipelineEvent, PipelineStateMachine
from .data.models import Segment
from .data.stats import RuntimeStatsWindow, WindowSummary
from .data.storage import RuntimeStatsStore
from .logging import configure_logging, get_logger
from .services.factory import (
    ServiceConfigurationError,
    resolve_direct_input,
    resolve_postprocessor,
    resolve_streaming_backend,
    resolve_sync_backend,
)
from .utils.audio import iter_pcm_chunks, read_wave_pcm16

app = typer.Typer(help="livescribe live dictation pipeline")
LOGGER = get_logger(__name__)

T = TypeVar("T")


def _resolve(resolver: Callable[[Optional[str]], T], name: Optional[str]) -> T:
    try:
        return resolver(name)
    except ServiceConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _format_env_value(value: Any, secret: bool = False) -> str:
    if value is None:
        return "(unset)"
    if secret:
        return "********"
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _is_secret(field: str) -> bool:
    return any(entry.secret for entry in list_environment_settings() if entry.field == field)


def _format_ms(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:.1f}ms"


def _format_summary(label: str, summary: WindowSummary) -> str:
    dominant = summary.dominant_stage.value if summary.dominant_stage else "-"
    return (
        f"{label:>4}: {summary.total_runs} runs "
        f"({summary.completed_runs} completed, {summary.skipped_runs} skipped, {summary.failed_runs} failed) | "
        f"stt {_format_ms(summary.avg_stt_ms)} | post {_format_ms(summary.avg_post_ms)} | "
        f"vision {_format_ms(summary.avg_vision_ms)} | input {_format_ms(summary.avg_direct_input_ms)} | "
        f"after stop {_format_ms(summary.avg_total_after_stop_ms)} | dominant {dominant}"
    )


def _echo_segment(segment: Segment) -> None:
    typer.echo(f"  [{segment.index}] {segment.start_ms}-{segment.end_ms}ms ({segment.reason.value}) {segment.text}")


async def _transcribe_file(
    settings: Settings,
    path: Path,
    chunk_ms: int,
    streaming: bool,
    sync_backend_name: str,
    language: Optional[str],
    record_stats: bool,
) -> PipelineOutcome:
    pcm, sample_rate = read_wave_pcm16(path)
    coordinator = FallbackCoordinator(_resolve(resolve_sync_backend, sync_backend_name), settings.openai_api_key)
    store = None
    if record_stats:
        store = RuntimeStatsStore(settings.stats_path, retention_hours=settings.stats_retention_hours)
    runner = PipelineRunner(
        coordinator,
        postprocessor=_resolve(resolve_postprocessor, settings.postprocess_backend),
        direct_input=_resolve(resolve_direct_input, "dummy"),
        stats_store=store,
        enrichment_grace=settings.readiness_grace_seconds,
    )

    machine = PipelineStateMachine()
    machine.apply(PipelineEvent.START_RECORDING)

    session: Optional[StreamingSession] = None
    backend = _resolve(resolve_streaming_backend, settings.streaming_backend) if streaming else None
    if backend is not None:
        config = SegmentationConfig.from_settings(settings)
        config.sample_rate = sample_rate
        config.language = language
        session = StreamingSession(backend, coordinator, config)
        await session.start()
        for chunk in iter_pcm_chunks(pcm, sample_rate, chunk_ms):
            session.submit(chunk)

    request = RunRequest(
        audio=pcm,
        sample_rate=sample_rate,
        language=language,
        session=session,
        stopped_at=time.monotonic(),
    )
    return await runner.run(request, machine)


@app.command()
def transcribe(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="PCM16 WAV file to transcribe"),
    chunk_ms: int = typer.Option(100, min=1, help="Chunk size fed to the streaming session"),
    streaming: bool = typer.Option(True, "--streaming/--no-streaming", help="Use the streaming backend"),
    sync_backend: Optional[str] = typer.Option(None, help="Synchronous backend: dummy/openai"),
    language: Optional[str] = typer.Option(None, help="Language hint, e.g. 'en'"),
    record_stats: bool = typer.Option(True, "--record-stats/--no-record-stats", help="Record runtime stats"),
) -> None:
    """Run a WAV file through the live transcription pipeline."""

    settings = get_settings()
    configure_logging(settings.log_level)
    try:
        outcome = asyncio.run(
            _transcribe_file(
                settings,
                path,
                chunk_ms,
                streaming,
                sync_backend or settings.sync_backend,
                language or settings.language,
                record_stats,
            )
        )
    except (ValueError, wave.Error) as exc:
        raise typer.BadParameter(str(exc)) from exc

    if outcome.status is PipelineStatus.SKIPPED:
        typer.echo(f"Skipped: {outcome.reason.value if outcome.reason else 'unknown'}")
        return
    if outcome.status is PipelineStatus.FAILED:
        typer.echo(f"Failed: {outcome.message}", err=True)
        raise typer.Exit(code=1)

    typer.echo(outcome.output_text or "")
    transcription = outcome.transcription
    if transcription is None:
        return
    if transcription.segments:
        typer.echo("Segments:")
        for segment in transcription.segments:
            _echo_segment(segment)
    typer.echo("Attempts:")
    for attempt in transcription.attempts:
        detail = f" ({attempt.error})" if attempt.error else ""
        typer.echo(f"  {attempt.kind.value}: {attempt.status.value}{detail}")


@app.command()
def stats(
    window: Optional[RuntimeStatsWindow] = typer.Option(None, help="Only show one window"),
) -> None:
    """Show rolling runtime statistics."""

    settings = get_settings()
    store = RuntimeStatsStore(settings.stats_path, retention_hours=settings.stats_retention_hours)
    snapshot = store.snapshot()
    typer.echo(f"Updated at {snapshot.updated_at}")
    windows = [window] if window is not None else list(RuntimeStatsWindow)
    for item in windows:
        typer.echo(_format_summary(item.value, snapshot.summary(item)))


@app.command("settings")
def show_settings() -> None:
    """List environment-backed settings."""

    for entry in list_environment_settings():
        typer.echo(
            f"{entry.env_name} = {_format_env_value(entry.value, entry.secret)}"
            f" (default: {_format_env_value(entry.default, entry.secret)})"
            + (" *" if entry.overridden else "")
        )


@app.command("set")
def set_setting(field: str = typer.Argument(...), value: str = typer.Argument(...)) -> None:
    """Persist a setting override to the .env file."""

    try:
        updated = update_environment_setting(field, value)
    except EnvironmentSettingError as exc:
        typer.echo(f"Failed to update {field}: {exc}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"{field} updated. Current value: {_format_env_value(getattr(updated, field), _is_secret(field))}.")


@app.command("unset")
def unset_setting(field: str = typer.Argument(...)) -> None:
    """Remove a setting override and fall back to the default."""

    try:
        updated = clear_environment_setting(field)
    except EnvironmentSettingError as exc:
        typer.echo(f"Failed to reset {field}: {exc}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"{field} reset. Current value: {_format_env_value(getattr(updated, field), _is_secret(field))}.")


if __name__ == "__main__":  # pragma: no cover
    app()
