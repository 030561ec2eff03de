"""OpenAI powered synchronous transcription backend."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ...config import get_settings
from ...data.models import UsageInfo
from ...logging import get_logger
from ...utils.audio import BYTES_PER_SAMPLE, pcm16_to_wav_bytes
from .base import SyncBackend, TranscriptionError, TranscriptWithUsage

LOGGER = get_logger(__name__)


class OpenAISyncBackend(SyncBackend):
    provider = "openai"

    def __init__(self, model: Optional[str] = None) -> None:
        settings = get_settings()
        self.model = model or settings.openai_transcription_model
        self.default_api_key = settings.openai_api_key
        try:
            from openai import AsyncOpenAI, OpenAIError  # type: ignore
        except ImportError as exc:  # pragma: no cover - runtime dependency guard
            raise RuntimeError("openai package is required for OpenAISyncBackend") from exc
        self._client_cls = AsyncOpenAI
        self._openai_error_cls = OpenAIError
        self._clients: Dict[Optional[str], Any] = {}

    def _client_for(self, credential: Optional[str]) -> Any:
        key = credential or self.default_api_key
        client = self._clients.get(key)
        if client is not None:
            return client
        client_kwargs = {}
        if key:
            client_kwargs["api_key"] = key
        try:
            client = self._client_cls(**client_kwargs)
        except self._openai_error_cls as exc:
            message = str(exc)
            if "api_key" in message.lower():
                raise TranscriptionError(
                    "OpenAI API key not configured. Set the OPENAI_API_KEY environment variable "
                    "or LIVESCRIBE_OPENAI_API_KEY."
                ) from exc
            raise TranscriptionError(f"Failed to initialise OpenAI transcription client: {message}") from exc
        self._clients[key] = client
        return client

    async def transcribe(
        self,
        credential: Optional[str],
        sample_rate: int,
        audio: bytes,
        language: Optional[str],
    ) -> TranscriptWithUsage:
        if not audio:
            return "", None
        client = self._client_for(credential)
        wav = pcm16_to_wav_bytes(audio, sample_rate)
        LOGGER.info("Requesting OpenAI transcription for %d bytes of audio", len(audio))

        request: Dict[str, Any] = {"model": self.model}
        if language:
            request["language"] = language

        response: Any = None
        formats = self._candidate_response_formats()
        for index, response_format in enumerate(formats):
            try:
                response = await client.audio.transcriptions.create(
                    file=("audio.wav", wav, "audio/wav"),
                    response_format=response_format,
                    **request,
                )
                break
            except self._openai_error_cls as exc:
                if self._is_response_format_error(exc) and index < len(formats) - 1:
                    LOGGER.info(
                        "Response format '%s' is not supported by model '%s'; retrying with '%s'",
                        response_format,
                        self.model,
                        formats[index + 1],
                    )
                    continue
                raise TranscriptionError(str(exc)) from exc

        text, request_id = self._parse_transcription_response(response)
        usage = UsageInfo(
            duration_seconds=len(audio) / BYTES_PER_SAMPLE / max(sample_rate, 1),
            request_id=request_id,
            provider=self.provider,
        )
        return text, usage

    def _candidate_response_formats(self) -> List[str]:
        return ["json", "text"]

    def _is_response_format_error(self, exc: Exception) -> bool:
        message = str(getattr(exc, "message", None) or exc)
        return "response_format" in message and "unsupported" in message.lower()

    def _parse_transcription_response(self, response: Any) -> tuple[str, Optional[str]]:
        if response is None:
            return "", None
        if isinstance(response, str):
            return response.strip(), None

        data: Optional[Dict[str, Any]] = None
        if isinstance(response, dict):
            data = response
        elif hasattr(response, "model_dump"):
            data = response.model_dump()

        request_id = getattr(response, "_request_id", None)
        if data is not None:
            return str(data.get("text", "") or "").strip(), request_id
        return str(getattr(response, "text", "") or "").strip(), request_id


__all__ = ["OpenAISyncBackend"]
