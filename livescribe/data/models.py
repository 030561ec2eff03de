"""Data models produced by the streaming transcription core."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class SegmentReason(str, Enum):
    SILENCE = "silence"
    MAX_SEGMENT = "max_segment"
    STOP = "stop"


class VADKind(str, Enum):
    SPEECH = "speech"
    SILENCE = "silence"


class AttemptKind(str, Enum):
    STREAM_FINALIZE = "stream_finalize"
    REST_FALLBACK = "rest_fallback"
    REST = "rest"


class AttemptStatus(str, Enum):
    OK = "ok"
    ERROR = "error"
    CANCELLED = "cancelled"


class UsageInfo(BaseModel):
    duration_seconds: float
    request_id: Optional[str] = None
    provider: Optional[str] = None


class DrainStats(BaseModel):
    """Submission-time counters of an ordered chunk executor."""

    submitted_chunks: int = 0
    submitted_bytes: int = 0
    dropped_chunks: int = 0


class Attempt(BaseModel):
    """One remote transcription call recorded for diagnostics."""

    kind: AttemptKind
    status: AttemptStatus
    start_ms: int
    end_ms: int
    source: str
    error: Optional[str] = None
    text_chars: Optional[int] = None
    sample_rate: Optional[int] = None
    audio_bytes: Optional[int] = None
    submitted_chunks: Optional[int] = None
    submitted_bytes: Optional[int] = None
    dropped_chunks: Optional[int] = None


class Segment(BaseModel):
    index: int
    start_ms: int
    end_ms: int
    text: str
    reason: SegmentReason
    attempts: List[Attempt] = Field(default_factory=list)


class VADInterval(BaseModel):
    start_ms: int
    end_ms: int
    kind: VADKind


class FinalizeResult(BaseModel):
    """What a streaming finalize call hands back to the fallback coordinator."""

    transcript: str
    usage: Optional[UsageInfo] = None
    drain_stats: Optional[DrainStats] = None


class FinalizeOutcome(BaseModel):
    transcript: str
    usage: Optional[UsageInfo] = None
    attempts: List[Attempt] = Field(default_factory=list)


class SessionResult(BaseModel):
    """Everything a streaming session knows once it has been finished."""

    transcript: str
    usage: Optional[UsageInfo] = None
    attempts: List[Attempt] = Field(default_factory=list)
    segments: List[Segment] = Field(default_factory=list)
    vad_intervals: List[VADInterval] = Field(default_factory=list)
    drain_stats: DrainStats = Field(default_factory=DrainStats)
    forward_failures: int = 0


class TranscriptionResult(BaseModel):
    """Transcript of a whole recording together with its attempt trace."""

    transcript: str
    usage: Optional[UsageInfo] = None
    attempts: List[Attempt] = Field(default_factory=list)
    segments: List[Segment] = Field(default_factory=list)
    vad_intervals: List[VADInterval] = Field(default_factory=list)


__all__ = [
    "Attempt",
    "AttemptKind",
    "AttemptStatus",
    "DrainStats",
    "FinalizeOutcome",
    "FinalizeResult",
    "Segment",
    "SegmentReason",
    "SessionResult",
    "TranscriptionResult",
    "UsageInfo",
    "VADInterval",
    "VADKind",
]
