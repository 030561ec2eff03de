"""Offline post-processor that only normalises whitespace."""

from __future__ import annotations

from typing import Optional

from .base import PostProcessor


class DummyPostProcessor(PostProcessor):
    async def process(self, transcript: str, context: Optional[str] = None) -> str:
        lines = (" ".join(line.split()) for line in transcript.splitlines())
        return "\n".join(line for line in lines if line)


__all__ = ["DummyPostProcessor"]
