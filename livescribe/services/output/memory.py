"""Direct input that records texts instead of typing them."""

from __future__ import annotations

from typing import List

from .base import DirectInput


class RecordingDirectInput(DirectInput):
    def __init__(self) -> None:
        self.inserted: List[str] = []

    async def insert(self, text: str) -> bool:
        self.inserted.append(text)
        return True


__all__ = ["RecordingDirectInput"]
