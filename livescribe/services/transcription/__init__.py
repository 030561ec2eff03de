"""Transcription backends."""

from .base import StreamingBackend, SyncBackend, TranscriptionError, TransportError
from .dummy import DummyStreamingBackend, DummySyncBackend

__all__ = [
    "DummyStreamingBackend",
    "DummySyncBackend",
    "StreamingBackend",
    "SyncBackend",
    "TranscriptionError",
    "TransportError",
]
