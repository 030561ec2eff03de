"""Wall-clock helpers shared by traces and statistics."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def epoch_ms(moment: Optional[datetime] = None) -> int:
    moment = moment or utc_now()
    return int(round(moment.timestamp() * 1000))


def iso_timestamp(moment: Optional[datetime] = None) -> str:
    moment = moment or utc_now()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")


__all__ = ["epoch_ms", "iso_timestamp", "utc_now"]
