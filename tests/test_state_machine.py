"""Tests for the pipeline state machine."""

from __future__ import annotations

import itertools

import pytest

from livescribe.core.pipeline.state import (
    TRANSITIONS,
    PipelineEvent,
    PipelineState,
    PipelineStateMachine,
)


def test_happy_path_reaches_done() -> None:
    machine = PipelineStateMachine()

    assert machine.apply(PipelineEvent.START_RECORDING) is PipelineState.RECORDING
    assert machine.apply(PipelineEvent.STOP_RECORDING) is PipelineState.STT_STREAMING
    assert machine.apply(PipelineEvent.START_POST_PROCESSING) is PipelineState.POST_PROCESSING
    assert machine.apply(PipelineEvent.START_DIRECT_INPUT) is PipelineState.DIRECT_INPUT
    assert machine.apply(PipelineEvent.FINISH) is PipelineState.DONE
    assert not machine.current.is_busy


@pytest.mark.parametrize(
    "state,event",
    [
        (state, event)
        for state, event in itertools.product(PipelineState, TRANSITIONS)
        if TRANSITIONS[event][0] is not state
    ],
)
def test_invalid_events_leave_state_unchanged(state: PipelineState, event: PipelineEvent) -> None:
    machine = PipelineStateMachine(current=state)

    assert machine.apply(event) is state
    assert machine.current is state


@pytest.mark.parametrize("state", list(PipelineState))
def test_fail_and_reset_are_valid_from_every_state(state: PipelineState) -> None:
    machine = PipelineStateMachine(current=state)
    assert machine.apply(PipelineEvent.FAIL) is PipelineState.ERROR

    machine = PipelineStateMachine(current=state)
    assert machine.apply(PipelineEvent.RESET) is PipelineState.IDLE


def test_busy_states() -> None:
    busy = {state for state in PipelineState if state.is_busy}

    assert busy == {
        PipelineState.RECORDING,
        PipelineState.STT_STREAMING,
        PipelineState.POST_PROCESSING,
        PipelineState.DIRECT_INPUT,
    }
