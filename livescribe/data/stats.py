"""Runtime statistics models: per-run samples and mergeable aggregates."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

HOUR_MS = 3_600_000


class RuntimeStatsOutcome(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


class RuntimeStatsStage(str, Enum):
    STT = "stt"
    POST = "post"
    VISION = "vision"
    DIRECT_INPUT = "direct_input"


# Tie-break order for dominant stage selection; earlier wins.
STAGE_ORDER = (
    RuntimeStatsStage.STT,
    RuntimeStatsStage.POST,
    RuntimeStatsStage.VISION,
    RuntimeStatsStage.DIRECT_INPUT,
)


class RuntimeStatsWindow(str, Enum):
    LAST_24_HOURS = "24h"
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    ALL = "all"

    @property
    def span(self) -> Optional[timedelta]:
        return _WINDOW_SPANS.get(self)


_WINDOW_SPANS = {
    RuntimeStatsWindow.LAST_24_HOURS: timedelta(hours=24),
    RuntimeStatsWindow.LAST_7_DAYS: timedelta(days=7),
    RuntimeStatsWindow.LAST_30_DAYS: timedelta(days=30),
}


class RuntimeStatsEntry(BaseModel):
    """One immutable sample describing a finished run."""

    model_config = ConfigDict(frozen=True)

    recorded_at: datetime
    outcome: RuntimeStatsOutcome
    stt_ms: Optional[float] = None
    post_ms: Optional[float] = None
    vision_ms: Optional[float] = None
    direct_input_ms: Optional[float] = None
    total_after_stop_ms: Optional[float] = None

    def stage_latencies(self) -> Dict[RuntimeStatsStage, Optional[float]]:
        return {
            RuntimeStatsStage.STT: self.stt_ms,
            RuntimeStatsStage.POST: self.post_ms,
            RuntimeStatsStage.VISION: self.vision_ms,
            RuntimeStatsStage.DIRECT_INPUT: self.direct_input_ms,
        }

    def dominant_stage(self) -> Optional[RuntimeStatsStage]:
        """Return the slowest stage, or ``None`` when no latency was measured."""

        winner: Optional[RuntimeStatsStage] = None
        winner_ms = -1.0
        for stage in STAGE_ORDER:
            value = _usable(self.stage_latencies()[stage])
            if value is not None and value > winner_ms:
                winner = stage
                winner_ms = value
        return winner


def _usable(value: Optional[float]) -> Optional[float]:
    if value is None or value < 0:
        return None
    return value


def _average(total: float, count: int) -> Optional[float]:
    if count <= 0:
        return None
    return total / count


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WindowSummary(_CamelModel):
    total_runs: int = 0
    completed_runs: int = 0
    skipped_runs: int = 0
    failed_runs: int = 0
    avg_stt_ms: Optional[float] = None
    avg_post_ms: Optional[float] = None
    avg_vision_ms: Optional[float] = None
    avg_direct_input_ms: Optional[float] = None
    avg_total_after_stop_ms: Optional[float] = None
    dominant_stage: Optional[RuntimeStatsStage] = None


class StatsAggregate(_CamelModel):
    """Running counters that can absorb entries and merge with each other.

    Both :meth:`apply` and :meth:`merge` are associative and commutative, so a
    windowed summary is just a fold over the buckets that fall in the window.
    """

    total_runs: int = 0
    completed_runs: int = 0
    skipped_runs: int = 0
    failed_runs: int = 0
    stt_sum_ms: float = 0.0
    stt_count: int = 0
    post_sum_ms: float = 0.0
    post_count: int = 0
    vision_sum_ms: float = 0.0
    vision_count: int = 0
    direct_input_sum_ms: float = 0.0
    direct_input_count: int = 0
    total_after_stop_sum_ms: float = 0.0
    total_after_stop_count: int = 0
    dominant_stage_counts: Dict[str, int] = Field(default_factory=dict)

    def apply(self, entry: RuntimeStatsEntry) -> None:
        self.total_runs += 1
        if entry.outcome is RuntimeStatsOutcome.COMPLETED:
            self.completed_runs += 1
        elif entry.outcome is RuntimeStatsOutcome.SKIPPED:
            self.skipped_runs += 1
        else:
            self.failed_runs += 1

        self._add("stt", entry.stt_ms)
        self._add("post", entry.post_ms)
        self._add("vision", entry.vision_ms)
        self._add("direct_input", entry.direct_input_ms)
        self._add("total_after_stop", entry.total_after_stop_ms)

        dominant = entry.dominant_stage()
        if dominant is not None:
            key = dominant.value
            self.dominant_stage_counts[key] = self.dominant_stage_counts.get(key, 0) + 1

    def merge(self, other: "StatsAggregate") -> None:
        self.total_runs += other.total_runs
        self.completed_runs += other.completed_runs
        self.skipped_runs += other.skipped_runs
        self.failed_runs += other.failed_runs
        for prefix in ("stt", "post", "vision", "direct_input", "total_after_stop"):
            setattr(
                self,
                f"{prefix}_sum_ms",
                getattr(self, f"{prefix}_sum_ms") + getattr(other, f"{prefix}_sum_ms"),
            )
            setattr(
                self,
                f"{prefix}_count",
                getattr(self, f"{prefix}_count") + getattr(other, f"{prefix}_count"),
            )
        for key, value in other.dominant_stage_counts.items():
            self.dominant_stage_counts[key] = self.dominant_stage_counts.get(key, 0) + value

    def to_summary(self) -> WindowSummary:
        return WindowSummary(
            total_runs=self.total_runs,
            completed_runs=self.completed_runs,
            skipped_runs=self.skipped_runs,
            failed_runs=self.failed_runs,
            avg_stt_ms=_average(self.stt_sum_ms, self.stt_count),
            avg_post_ms=_average(self.post_sum_ms, self.post_count),
            avg_vision_ms=_average(self.vision_sum_ms, self.vision_count),
            avg_direct_input_ms=_average(self.direct_input_sum_ms, self.direct_input_count),
            avg_total_after_stop_ms=_average(self.total_after_stop_sum_ms, self.total_after_stop_count),
            dominant_stage=self._dominant_from_counts(),
        )

    def _add(self, prefix: str, value: Optional[float]) -> None:
        usable = _usable(value)
        if usable is None:
            return
        setattr(self, f"{prefix}_sum_ms", getattr(self, f"{prefix}_sum_ms") + usable)
        setattr(self, f"{prefix}_count", getattr(self, f"{prefix}_count") + 1)

    def _dominant_from_counts(self) -> Optional[RuntimeStatsStage]:
        winner: Optional[RuntimeStatsStage] = None
        winner_count = 0
        for stage in STAGE_ORDER:
            count = self.dominant_stage_counts.get(stage.value, 0)
            if count > winner_count:
                winner = stage
                winner_count = count
        return winner


class StatsBucket(_CamelModel):
    hour_start_ms: int
    aggregate: StatsAggregate = Field(default_factory=StatsAggregate)


class RuntimeStatsFile(_CamelModel):
    """On-disk shape of the runtime statistics file."""

    schema_version: int = 1
    updated_at: str
    total: StatsAggregate = Field(default_factory=StatsAggregate)
    buckets: List[StatsBucket] = Field(default_factory=list)


class RuntimeStatsSnapshot(_CamelModel):
    updated_at: str
    last_24h: WindowSummary
    last_7d: WindowSummary
    last_30d: WindowSummary
    all: WindowSummary

    def summary(self, window: RuntimeStatsWindow) -> WindowSummary:
        if window is RuntimeStatsWindow.LAST_24_HOURS:
            return self.last_24h
        if window is RuntimeStatsWindow.LAST_7_DAYS:
            return self.last_7d
        if window is RuntimeStatsWindow.LAST_30_DAYS:
            return self.last_30d
        return self.all


def hour_start_ms(epoch_ms: int) -> int:
    return (epoch_ms // HOUR_MS) * HOUR_MS


__all__ = [
    "HOUR_MS",
    "RuntimeStatsEntry",
    "RuntimeStatsFile",
    "RuntimeStatsOutcome",
    "RuntimeStatsSnapshot",
    "RuntimeStatsStage",
    "RuntimeStatsWindow",
    "STAGE_ORDER",
    "StatsAggregate",
    "StatsBucket",
    "WindowSummary",
    "hour_start_ms",
]
