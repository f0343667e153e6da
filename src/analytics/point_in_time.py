"""
Point-in-time statistics cache.

Every statistic stored for day *i* is computed from records ``[0..i]`` only,
so adding, removing or editing later days never changes an earlier entry.

Per day:
  * z_scores  - each category's value against its own history
  * ranks     - 1 = most negative z-score, K = most positive
  * raw_avg   - mean of the categories present that day
  * index_z   - z-score of raw_avg against the history of raw daily averages
                (NOT the mean of the per-category z-scores)
  * overall_z - the subjective rating against its own history

The whole cache is rebuilt on every load. For N days and M categories this
is O(N^2 * M): each day re-reduces its full prefix.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from constants import MIN_HISTORY, ZERO_STD_FALLBACK

log = logging.getLogger("point_in_time")

DateLike = Union[str, date]


def date_key(day: DateLike) -> str:
    """Normalise a date or ISO string to the cache's key format."""
    if isinstance(day, datetime):
        day = day.date()
    if isinstance(day, date):
        return day.isoformat()
    return str(day).strip()


def _present(value: Any) -> Optional[float]:
    """Return the value as float, or None when it is missing (None/NaN)."""
    if value is None:
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(num):
        return None
    return num


# ─── Types ────────────────────────────────────────────────────


@dataclass(frozen=True)
class DayRecord:
    """One ingested day. ``values`` maps category -> number or None (missing)."""

    date: date
    overall: float
    values: Mapping[str, Optional[float]] = field(default_factory=dict)
    note: str = ""

    @property
    def key(self) -> str:
        return date_key(self.date)

    def value(self, category: str) -> Optional[float]:
        return _present(self.values.get(category))


@dataclass(frozen=True)
class CacheEntry:
    z_scores: Mapping[str, float]
    ranks: Mapping[str, int]
    index_z: Optional[float]
    overall_z: Optional[float]
    raw_avg: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "z_scores": dict(self.z_scores),
            "ranks": dict(self.ranks),
            "index_z": self.index_z,
            "overall_z": self.overall_z,
            "raw_avg": self.raw_avg,
        }


class PointInTimeCache(Mapping):
    """Read-only date -> CacheEntry mapping, in chronological order.

    Lookups accept either ISO date strings or ``datetime.date`` objects.
    """

    def __init__(self, entries: Dict[str, CacheEntry], categories: Sequence[str]):
        self._entries = MappingProxyType(dict(entries))
        self.categories: Tuple[str, ...] = tuple(categories)

    def __getitem__(self, day: DateLike) -> CacheEntry:
        return self._entries[date_key(day)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"PointInTimeCache(days={len(self)}, categories={len(self.categories)})"

    @property
    def dates(self) -> Tuple[str, ...]:
        return tuple(self._entries)

    @property
    def latest_date(self) -> Optional[str]:
        return self.dates[-1] if self._entries else None


# ─── Window statistics ────────────────────────────────────────


def _window_stats(history: Sequence[float]) -> Optional[Tuple[float, float]]:
    """Population mean/std of a history window, or None if too short.

    A std of exactly zero is replaced by ZERO_STD_FALLBACK.
    """
    if len(history) < MIN_HISTORY:
        return None
    arr = np.asarray(history, dtype=np.float64)
    mean = float(arr.mean())
    std = float(arr.std())
    if std == 0.0:
        std = ZERO_STD_FALLBACK
    return mean, std


def _standardize(value: Optional[float], history: Sequence[float]) -> Optional[float]:
    if value is None:
        return None
    stats = _window_stats(history)
    if stats is None:
        return None
    mean, std = stats
    return (value - mean) / std


def _rank_ascending(z_scores: Mapping[str, float]) -> Dict[str, int]:
    # sorted() is stable: equal z-scores keep category order
    ordered = sorted(z_scores.items(), key=lambda kv: kv[1])
    return {cat: i for i, (cat, _) in enumerate(ordered, start=1)}


def _check_chronological(records: Sequence[DayRecord]) -> None:
    for prev, cur in zip(records, records[1:]):
        if cur.date <= prev.date:
            raise ValueError(
                "Records must be sorted ascending by date with no duplicates: "
                f"{date_key(cur.date)} follows {date_key(prev.date)}"
            )


# ─── Builder ──────────────────────────────────────────────────


def build_cache(records: Sequence[DayRecord], categories: Sequence[str]) -> PointInTimeCache:
    """Build one CacheEntry per record using only that day and earlier ones."""
    cats = list(categories)
    if not records:
        log.warning("No records supplied - point-in-time cache is empty")
        return PointInTimeCache({}, cats)
    _check_chronological(records)

    cat_history: Dict[str, List[float]] = {c: [] for c in cats}
    avg_history: List[float] = []
    overall_history: List[float] = []
    entries: Dict[str, CacheEntry] = {}

    for rec in records:
        todays = {c: rec.value(c) for c in cats}

        # Step 1: per-category z-scores
        z_scores: Dict[str, float] = {}
        for cat, val in todays.items():
            if val is not None:
                cat_history[cat].append(val)
            z = _standardize(val, cat_history[cat])
            if z is not None:
                z_scores[cat] = z

        # Step 2: ranks over the standardized categories
        ranks = _rank_ascending(z_scores)

        # Step 3: index = z-score of today's raw average
        present = [v for v in todays.values() if v is not None]
        raw_avg = float(np.mean(present)) if present else None
        if raw_avg is not None:
            avg_history.append(raw_avg)
        index_z = _standardize(raw_avg, avg_history)

        # Step 4: subjective rating
        overall = _present(rec.overall)
        if overall is not None:
            overall_history.append(overall)
        overall_z = _standardize(overall, overall_history)

        if not z_scores:
            log.debug("%s: no category has enough history yet", rec.key)

        entries[rec.key] = CacheEntry(
            z_scores=MappingProxyType(z_scores),
            ranks=MappingProxyType(ranks),
            index_z=index_z,
            overall_z=overall_z,
            raw_avg=raw_avg,
        )

    log.info("Point-in-time cache built: %d days x %d categories", len(entries), len(cats))
    return PointInTimeCache(entries, cats)
