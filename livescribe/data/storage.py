"""JSON-file storage for hour-bucketed runtime statistics."""

from __future__ import annotations

import os
import tempfile
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

from ..logging import get_logger
from ..utils.timing import epoch_ms, iso_timestamp, utc_now
from .stats import (
    RuntimeStatsEntry,
    RuntimeStatsFile,
    RuntimeStatsSnapshot,
    RuntimeStatsWindow,
    StatsAggregate,
    StatsBucket,
    hour_start_ms,
)

LOGGER = get_logger(__name__)

DEFAULT_RETENTION_HOURS = 24 * 45


class RuntimeStatsStore:
    """Persistent rolling statistics backed by a single JSON file.

    Every :meth:`record` lands in the bucket of the entry's hour and in the
    unbounded running total, prunes buckets older than the retention horizon
    and atomically rewrites the file.
    """

    def __init__(
        self,
        path: Path,
        now: Callable[[], datetime] = utc_now,
        retention_hours: int = DEFAULT_RETENTION_HOURS,
    ) -> None:
        self.path = Path(path)
        self._now = now
        self.retention_hours = max(retention_hours, 1)
        self._lock = threading.Lock()
        self._stats = self._load()

    def _load(self) -> RuntimeStatsFile:
        if not self.path.exists():
            return RuntimeStatsFile(updated_at=iso_timestamp(self._now()))
        return RuntimeStatsFile.model_validate_json(self.path.read_text(encoding="utf-8"))

    def record(self, entry: RuntimeStatsEntry) -> None:
        with self._lock:
            current = self._now()
            key = hour_start_ms(epoch_ms(entry.recorded_at))
            bucket = next((b for b in self._stats.buckets if b.hour_start_ms == key), None)
            if bucket is None:
                bucket = StatsBucket(hour_start_ms=key)
                self._stats.buckets.append(bucket)
            bucket.aggregate.apply(entry)
            self._stats.total.apply(entry)
            self._prune(current)
            self._stats.updated_at = iso_timestamp(current)
            self._save()

    def snapshot(self, now: Optional[datetime] = None) -> RuntimeStatsSnapshot:
        with self._lock:
            reference = now or self._now()
            return RuntimeStatsSnapshot(
                updated_at=self._stats.updated_at,
                last_24h=self._aggregate(RuntimeStatsWindow.LAST_24_HOURS, reference).to_summary(),
                last_7d=self._aggregate(RuntimeStatsWindow.LAST_7_DAYS, reference).to_summary(),
                last_30d=self._aggregate(RuntimeStatsWindow.LAST_30_DAYS, reference).to_summary(),
                all=self._stats.total.to_summary(),
            )

    @property
    def bucket_count(self) -> int:
        with self._lock:
            return len(self._stats.buckets)

    def _aggregate(self, window: RuntimeStatsWindow, reference: datetime) -> StatsAggregate:
        span = window.span
        if span is None:
            return self._stats.total.model_copy(deep=True)
        cutoff = hour_start_ms(epoch_ms(reference - span))
        aggregate = StatsAggregate()
        for bucket in self._stats.buckets:
            if bucket.hour_start_ms >= cutoff:
                aggregate.merge(bucket.aggregate)
        return aggregate

    def _prune(self, reference: datetime) -> None:
        cutoff = hour_start_ms(epoch_ms(reference - timedelta(hours=self.retention_hours)))
        kept = [bucket for bucket in self._stats.buckets if bucket.hour_start_ms >= cutoff]
        dropped = len(self._stats.buckets) - len(kept)
        if dropped:
            LOGGER.debug("Pruned %d expired stats buckets", dropped)
        self._stats.buckets = sorted(kept, key=lambda bucket: bucket.hour_start_ms)

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = self._stats.model_dump_json(by_alias=True, indent=2)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


__all__ = ["DEFAULT_RETENTION_HOURS", "RuntimeStatsStore"]
