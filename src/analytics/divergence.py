"""Divergence between the subjective rating and the objective index."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from analytics.point_in_time import DateLike, PointInTimeCache
from constants import (
    DEFAULT_ALERT_THRESHOLD,
    DEFAULT_CAUTION_THRESHOLD,
    DEFAULT_RECENT_DAYS,
    STATUS_ALERT,
    STATUS_CAUTION,
    STATUS_HARMONY,
)


@dataclass(frozen=True)
class DivergenceResult:
    """gap > 0 means the day felt better than the numbers say."""

    gap: float
    divergence: float
    status: str
    overall_z: float
    index_z: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gap": self.gap,
            "divergence": self.divergence,
            "status": self.status,
            "overall_z": self.overall_z,
            "index_z": self.index_z,
        }


@dataclass(frozen=True)
class DivergenceSummary:
    date: str
    latest: DivergenceResult
    last_harmony_date: Optional[str]
    recent_average: Optional[float]
    recent_days: int
    peak_date: Optional[str]
    peak: Optional[DivergenceResult]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "latest": self.latest.to_dict(),
            "last_harmony_date": self.last_harmony_date,
            "recent_average": self.recent_average,
            "recent_days": self.recent_days,
            "peak_date": self.peak_date,
            "peak": self.peak.to_dict() if self.peak else None,
        }


def check_thresholds(caution_threshold: float, alert_threshold: float) -> None:
    if not caution_threshold < alert_threshold:
        raise ValueError(
            f"caution threshold ({caution_threshold}) must be below alert threshold ({alert_threshold})"
        )


def divergence_status(divergence: float, caution_threshold: float, alert_threshold: float) -> str:
    if divergence >= alert_threshold:
        return STATUS_ALERT
    if divergence >= caution_threshold:
        return STATUS_CAUTION
    return STATUS_HARMONY


def classify_divergence(
    cache: PointInTimeCache,
    day: DateLike,
    caution_threshold: float = DEFAULT_CAUTION_THRESHOLD,
    alert_threshold: float = DEFAULT_ALERT_THRESHOLD,
) -> Optional[DivergenceResult]:
    """Classify one day's overall-vs-index gap.

    Returns None when the day is unknown or either z-score is missing
    (insufficient history). None is "not enough data", never harmony.
    """
    check_thresholds(caution_threshold, alert_threshold)
    entry = cache.get(day)
    if entry is None or entry.index_z is None or entry.overall_z is None:
        return None

    gap = entry.overall_z - entry.index_z
    divergence = abs(gap)
    return DivergenceResult(
        gap=gap,
        divergence=divergence,
        status=divergence_status(divergence, caution_threshold, alert_threshold),
        overall_z=entry.overall_z,
        index_z=entry.index_z,
    )


def summarize_divergence(
    cache: PointInTimeCache,
    caution_threshold: float = DEFAULT_CAUTION_THRESHOLD,
    alert_threshold: float = DEFAULT_ALERT_THRESHOLD,
    recent_days: int = DEFAULT_RECENT_DAYS,
) -> Optional[DivergenceSummary]:
    """Overview anchored on the most recent day in the cache.

    Days without a result are skipped everywhere, including the recent
    average. Returns None when the latest day itself has no result.
    """
    check_thresholds(caution_threshold, alert_threshold)
    latest_date = cache.latest_date
    if latest_date is None:
        return None
    latest = classify_divergence(cache, latest_date, caution_threshold, alert_threshold)
    if latest is None:
        return None

    dates = cache.dates
    results = {d: classify_divergence(cache, d, caution_threshold, alert_threshold) for d in dates}

    last_harmony = None
    for d in reversed(dates):
        res = results[d]
        if res is not None and res.status == STATUS_HARMONY:
            last_harmony = d
            break

    recent: List[float] = [
        results[d].divergence for d in dates[-max(recent_days, 1):] if results[d] is not None
    ]
    recent_average = sum(recent) / len(recent) if recent else None

    peak_date = None
    peak = None
    for d in dates:
        res = results[d]
        if res is not None and (peak is None or res.divergence > peak.divergence):
            peak_date, peak = d, res

    return DivergenceSummary(
        date=latest_date,
        latest=latest,
        last_harmony_date=last_harmony,
        recent_average=recent_average,
        recent_days=recent_days,
        peak_date=peak_date,
        peak=peak,
    )
