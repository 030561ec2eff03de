"""Pipeline state machine ordering one run's asynchronous steps."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PipelineState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    STT_STREAMING = "sttStreaming"
    POST_PROCESSING = "postProcessing"
    DIRECT_INPUT = "directInput"
    DONE = "done"
    ERROR = "error"

    @property
    def is_busy(self) -> bool:
        return self in _BUSY_STATES


_BUSY_STATES = frozenset(
    {
        PipelineState.RECORDING,
        PipelineState.STT_STREAMING,
        PipelineState.POST_PROCESSING,
        PipelineState.DIRECT_INPUT,
    }
)


class PipelineEvent(str, Enum):
    START_RECORDING = "startRecording"
    STOP_RECORDING = "stopRecording"
    START_POST_PROCESSING = "startPostProcessing"
    START_DIRECT_INPUT = "startDirectInput"
    FINISH = "finish"
    FAIL = "fail"
    RESET = "reset"


# event -> (required source state, target state)
TRANSITIONS = {
    PipelineEvent.START_RECORDING: (PipelineState.IDLE, PipelineState.RECORDING),
    PipelineEvent.STOP_RECORDING: (PipelineState.RECORDING, PipelineState.STT_STREAMING),
    PipelineEvent.START_POST_PROCESSING: (PipelineState.STT_STREAMING, PipelineState.POST_PROCESSING),
    PipelineEvent.START_DIRECT_INPUT: (PipelineState.POST_PROCESSING, PipelineState.DIRECT_INPUT),
    PipelineEvent.FINISH: (PipelineState.DIRECT_INPUT, PipelineState.DONE),
}


@dataclass
class PipelineStateMachine:
    """Single-owner state value; mutate only through :meth:`apply`.

    An event arriving in the wrong state is a no-op that returns the current
    state. ``fail`` and ``reset`` are accepted from every state.
    """

    current: PipelineState = PipelineState.IDLE

    def apply(self, event: PipelineEvent) -> PipelineState:
        if event is PipelineEvent.FAIL:
            self.current = PipelineState.ERROR
        elif event is PipelineEvent.RESET:
            self.current = PipelineState.IDLE
        else:
            source, target = TRANSITIONS[event]
            if self.current is source:
                self.current = target
        return self.current


__all__ = ["PipelineEvent", "PipelineState", "PipelineStateMachine", "TRANSITIONS"]
