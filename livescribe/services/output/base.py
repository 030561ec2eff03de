"""Direct text input abstractions."""

from __future__ import annotations

import abc


class DirectInput(abc.ABC):
    """Deliver final text to wherever the user is typing."""

    @abc.abstractmethod
    async def insert(self, text: str) -> bool:
        """Return ``True`` when the text was delivered."""

        raise NotImplementedError


__all__ = ["DirectInput"]
