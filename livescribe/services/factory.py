"""Factories for runtime service selection."""

from __future__ import annotations

from typing import Optional

from .output.base import DirectInput
from .output.memory import RecordingDirectInput
from .postprocess.base import PostProcessor
from .postprocess.dummy import DummyPostProcessor
from .transcription.base import StreamingBackend, SyncBackend
from .transcription.dummy import DummyStreamingBackend, DummySyncBackend

_DISABLED = {"", "none", "off"}


class ServiceConfigurationError(ValueError):
    """Raised when an unknown backend is requested."""


def _normalise(name: Optional[str]) -> str:
    if not name:
        return "none"
    return name.strip().lower()


def resolve_streaming_backend(name: Optional[str]) -> Optional[StreamingBackend]:
    backend = _normalise(name)
    if backend in _DISABLED:
        return None
    if backend == "dummy":
        return DummyStreamingBackend()
    raise ServiceConfigurationError(f"Unknown streaming backend: {name}")


def resolve_sync_backend(name: Optional[str]) -> SyncBackend:
    backend = _normalise(name)
    if backend == "dummy":
        return DummySyncBackend()
    if backend == "openai":
        from .transcription.openai_client import OpenAISyncBackend

        return OpenAISyncBackend()
    raise ServiceConfigurationError(f"Unknown synchronous transcription backend: {name}")


def resolve_postprocessor(name: Optional[str]) -> Optional[PostProcessor]:
    backend = _normalise(name)
    if backend in _DISABLED:
        return None
    if backend == "dummy":
        return DummyPostProcessor()
    if backend == "openai":
        from .postprocess.openai_client import OpenAIPostProcessor

        return OpenAIPostProcessor()
    raise ServiceConfigurationError(f"Unknown post-processing backend: {name}")


def resolve_direct_input(name: Optional[str]) -> Optional[DirectInput]:
    backend = _normalise(name)
    if backend in _DISABLED:
        return None
    if backend in {"dummy", "memory"}:
        return RecordingDirectInput()
    raise ServiceConfigurationError(f"Unknown direct input backend: {name}")


__all__ = [
    "ServiceConfigurationError",
    "resolve_direct_input",
    "resolve_postprocessor",
    "resolve_streaming_backend",
    "resolve_sync_backend",
]
