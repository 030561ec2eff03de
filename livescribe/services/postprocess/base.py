"""Post-processing (text formatting) service abstractions."""

from __future__ import annotations

import abc
from typing import Optional


class PostProcessor(abc.ABC):
    """Turn a raw transcript into the text that will be inserted."""

    @abc.abstractmethod
    async def process(self, transcript: str, context: Optional[str] = None) -> str:
        raise NotImplementedError


__all__ = ["PostProcessor"]
