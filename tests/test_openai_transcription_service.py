from __future__ import annotations

import io
import wave
from types import SimpleNamespace

import pytest

from livescribe.services.transcription.base import TranscriptionError
from livescribe.services.transcription.openai_client import OpenAISyncBackend


class DummyOpenAIError(Exception):
    """Fake error raised by the mocked OpenAI client."""


def _make_backend(create) -> OpenAISyncBackend:
    backend = object.__new__(OpenAISyncBackend)
    backend.model = "test-model"
    backend.default_api_key = None
    backend._openai_error_cls = DummyOpenAIError
    backend._client_cls = None
    backend._clients = {
        None: SimpleNamespace(audio=SimpleNamespace(transcriptions=SimpleNamespace(create=create)))
    }
    return backend


@pytest.mark.asyncio
async def test_transcribe_falls_back_to_text() -> None:
    calls = []

    async def create(model, file, response_format, **kwargs):
        calls.append(response_format)
        if response_format != "text":
            raise DummyOpenAIError(f"response_format '{response_format}' unsupported")
        return "  Mock transcript from text response\n"

    backend = _make_backend(create)

    text, usage = await backend.transcribe(None, 16_000, b"\x00\x00" * 16_000, None)

    assert calls == ["json", "text"]
    assert text == "Mock transcript from text response"
    assert usage.duration_seconds == pytest.approx(1.0)
    assert usage.provider == "openai"


@pytest.mark.asyncio
async def test_transcribe_uploads_wav_and_language() -> None:
    requests = []

    async def create(model, file, response_format, **kwargs):
        requests.append((model, file, response_format, kwargs))
        return {"text": "hola"}

    backend = _make_backend(create)
    pcm = b"\x01\x00" * 800

    text, _usage = await backend.transcribe(None, 8_000, pcm, "es")

    assert text == "hola"
    model, file, response_format, kwargs = requests[0]
    assert model == "test-model"
    assert response_format == "json"
    assert kwargs == {"language": "es"}
    name, payload, mime = file
    assert (name, mime) == ("audio.wav", "audio/wav")
    with wave.open(io.BytesIO(payload), "rb") as wf:
        assert wf.getframerate() == 8_000
        assert wf.getnchannels() == 1
        assert wf.readframes(wf.getnframes()) == pcm


@pytest.mark.asyncio
async def test_transcribe_reads_model_objects_and_request_id() -> None:
    class Response:
        _request_id = "req_123"

        def model_dump(self):
            return {"text": " from model "}

    async def create(model, file, response_format, **kwargs):
        return Response()

    backend = _make_backend(create)

    text, usage = await backend.transcribe(None, 16_000, b"\x00\x00", None)

    assert text == "from model"
    assert usage.request_id == "req_123"


@pytest.mark.asyncio
async def test_transcribe_wraps_provider_errors() -> None:
    async def create(model, file, response_format, **kwargs):
        raise DummyOpenAIError("rate limited")

    backend = _make_backend(create)

    with pytest.raises(TranscriptionError, match="rate limited"):
        await backend.transcribe(None, 16_000, b"\x00\x00", None)


@pytest.mark.asyncio
async def test_empty_audio_skips_request() -> None:
    async def create(model, file, response_format, **kwargs):  # pragma: no cover - must not run
        raise AssertionError("no request expected")

    backend = _make_backend(create)

    assert await backend.transcribe(None, 16_000, b"", None) == ("", None)


def test_clients_are_cached_per_credential() -> None:
    created = []

    class FakeClient:
        def __init__(self, **kwargs):
            created.append(kwargs)

    backend = _make_backend(None)
    backend._clients = {}
    backend._client_cls = FakeClient

    first = backend._client_for("sk-a")
    assert backend._client_for("sk-a") is first
    backend._client_for("sk-b")

    assert created == [{"api_key": "sk-a"}, {"api_key": "sk-b"}]
