"""Tests for service selection and the offline collaborators."""

from __future__ import annotations

import pytest

from livescribe.services.factory import (
    ServiceConfigurationError,
    resolve_direct_input,
    resolve_postprocessor,
    resolve_streaming_backend,
    resolve_sync_backend,
)
from livescribe.services.output.memory import RecordingDirectInput
from livescribe.services.postprocess.dummy import DummyPostProcessor
from livescribe.services.transcription.base import TransportError
from livescribe.services.transcription.dummy import DummyStreamingBackend, DummySyncBackend


def test_resolvers_map_names() -> None:
    assert isinstance(resolve_streaming_backend(" Dummy "), DummyStreamingBackend)
    assert resolve_streaming_backend("none") is None
    assert resolve_streaming_backend(None) is None
    assert isinstance(resolve_sync_backend("dummy"), DummySyncBackend)
    assert isinstance(resolve_postprocessor("DUMMY"), DummyPostProcessor)
    assert resolve_postprocessor("off") is None
    assert isinstance(resolve_direct_input("memory"), RecordingDirectInput)
    assert resolve_direct_input("") is None


@pytest.mark.parametrize(
    "resolver",
    [resolve_streaming_backend, resolve_sync_backend, resolve_postprocessor, resolve_direct_input],
)
def test_unknown_names_raise(resolver) -> None:
    with pytest.raises(ServiceConfigurationError):
        resolver("carrier-pigeon")


def test_sync_backend_is_required() -> None:
    with pytest.raises(ServiceConfigurationError):
        resolve_sync_backend("none")


@pytest.mark.asyncio
async def test_dummy_postprocessor_normalises_whitespace() -> None:
    text = await DummyPostProcessor().process("  hello   there \n\n  second\tline ")

    assert text == "hello there\nsecond line"


@pytest.mark.asyncio
async def test_dummy_streaming_backend_lifecycle() -> None:
    backend = DummyStreamingBackend()

    with pytest.raises(TransportError):
        await backend.enqueue_chunk(b"\x00\x00")

    await backend.start(16_000, "en")
    await backend.enqueue_chunk(b"\x00\x00" * 8_000)
    text, usage = await backend.finish()

    assert text == "[dummy transcript of 0.50s audio]"
    assert usage.duration_seconds == pytest.approx(0.5)
    assert backend.sessions == 1
    with pytest.raises(TransportError):
        await backend.finish()


@pytest.mark.asyncio
async def test_recording_direct_input_collects_text() -> None:
    output = RecordingDirectInput()

    assert await output.insert("first")
    assert await output.insert("second")
    assert output.inserted == ["first", "second"]


@pytest.mark.asyncio
async def test_openai_postprocessor_sends_context() -> None:
    from types import SimpleNamespace

    from livescribe.services.postprocess.openai_client import OpenAIPostProcessor

    requests = []

    async def create(model, input):
        requests.append((model, input))
        return SimpleNamespace(output_text="  Fixed text.\n")

    processor = object.__new__(OpenAIPostProcessor)
    processor.model = "test-model"
    processor.client = SimpleNamespace(responses=SimpleNamespace(create=create))

    text = await processor.process("fixed text", context="mail client")

    assert text == "Fixed text."
    model, messages = requests[0]
    assert model == "test-model"
    assert messages[0]["role"] == "system"
    assert messages[1]["content"] == "Context:\nmail client\n\nTranscript:\nfixed text"
