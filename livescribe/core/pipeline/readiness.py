"""Bounded wait on an already-running task."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")

DEFAULT_GRACE_SECONDS = 0.001


@dataclass(frozen=True)
class Readiness(Generic[T]):
    ready: bool
    value: Optional[T]


async def await_if_ready(
    task: "asyncio.Future[T]",
    grace: float = DEFAULT_GRACE_SECONDS,
) -> Readiness[T]:
    """Return the task's value if it completes within ``grace`` seconds.

    The task is never cancelled here; when it is not ready the caller decides
    whether to cancel it or let it finish in the background. A task that
    finished with an exception re-raises it, and a cancelled task counts as
    not ready.
    """

    if not task.done():
        await asyncio.wait({task}, timeout=max(grace, 0.0))
    if not task.done() or task.cancelled():
        return Readiness(False, None)
    return Readiness(True, task.result())


__all__ = ["DEFAULT_GRACE_SECONDS", "Readiness", "await_if_ready"]
