"""OpenAI-powered transcript formatting."""

from __future__ import annotations

from typing import Optional

from ...config import get_settings
from ...logging import get_logger
from .base import PostProcessor

LOGGER = get_logger(__name__)

_INSTRUCTIONS = (
    "Clean up the dictated transcript: fix punctuation and obvious recognition errors, "
    "keep the wording and language, and return only the corrected text."
)


class OpenAIPostProcessor(PostProcessor):
    def __init__(self, model: Optional[str] = None) -> None:
        settings = get_settings()
        self.model = model or settings.openai_postprocess_model
        try:
            from openai import AsyncOpenAI, OpenAIError  # type: ignore
        except ImportError as exc:  # pragma: no cover - runtime dependency guard
            raise RuntimeError("openai package is required for OpenAIPostProcessor") from exc
        client_kwargs = {}
        if settings.openai_api_key:
            client_kwargs["api_key"] = settings.openai_api_key

        try:
            self.client = AsyncOpenAI(**client_kwargs)
        except OpenAIError as exc:
            message = str(exc)
            if "api_key" in message.lower():
                raise RuntimeError(
                    "OpenAI API key not configured. Set the OPENAI_API_KEY environment variable "
                    "or LIVESCRIBE_OPENAI_API_KEY."
                ) from exc
            raise RuntimeError(f"Failed to initialise OpenAI post-processing client: {message}") from exc

    async def process(self, transcript: str, context: Optional[str] = None) -> str:
        user_content = transcript
        if context:
            user_content = f"Context:\n{context}\n\nTranscript:\n{transcript}"
        LOGGER.info("Requesting OpenAI post-processing for %d chars", len(transcript))
        response = await self.client.responses.create(
            model=self.model,
            input=[
                {"role": "system", "content": _INSTRUCTIONS},
                {"role": "user", "content": user_content},
            ],
        )
        return (response.output_text or "").strip()


__all__ = ["OpenAIPostProcessor"]
