"""Live transcription pipeline: ordered intake, segmentation, fallback and the run driver."""

from .fallback import AttemptsExhaustedError, FallbackCoordinator
from .ordered import OrderedChunkExecutor
from .readiness import Readiness, await_if_ready
from .runner import PipelineOutcome, PipelineRunner, PipelineStatus, RunRequest, SkipReason
from .segmentation import SegmentationConfig, SegmentationEngine
from .session import StreamingSession
from .state import PipelineEvent, PipelineState, PipelineStateMachine

__all__ = [
    "AttemptsExhaustedError",
    "FallbackCoordinator",
    "OrderedChunkExecutor",
    "PipelineEvent",
    "PipelineOutcome",
    "PipelineRunner",
    "PipelineState",
    "PipelineStateMachine",
    "PipelineStatus",
    "Readiness",
    "RunRequest",
    "SegmentationConfig",
    "SegmentationEngine",
    "SkipReason",
    "StreamingSession",
    "await_if_ready",
]
