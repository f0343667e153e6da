"""
Profile similarity search - "when have I felt like this before?"

Compares the standardized category profile of a reference day against every
other day using an RMS z-score distance, then maps distance to a percentage:

    similarity = clamp(100 - distance / 3 * 100, 0, 100)

so identical profiles score 100% and profiles 3 pooled sigmas apart score 0%.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from analytics.point_in_time import CacheEntry, DateLike, DayRecord, PointInTimeCache, date_key
from constants import DEFAULT_EXCLUDE_WINDOW_DAYS, DEFAULT_TOP_N, SIMILARITY_SPAN_SIGMA

log = logging.getLogger("similarity")


@dataclass(frozen=True)
class ProfileDistance:
    distance: float
    similarity: float
    categories_compared: int


@dataclass(frozen=True)
class SimilarityMatch:
    date: str
    similarity: float
    distance: float
    categories_compared: int
    overall: float
    note: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "similarity": self.similarity,
            "distance": self.distance,
            "categories_compared": self.categories_compared,
            "overall": self.overall,
            "note": self.note,
        }


def distance_to_similarity(distance: float) -> float:
    raw = 100.0 - (distance / SIMILARITY_SPAN_SIGMA) * 100.0
    return max(0.0, min(100.0, raw))


def profile_distance(a: CacheEntry, b: CacheEntry, categories: Sequence[str]) -> Optional[ProfileDistance]:
    """RMS z-score difference over categories standardized on BOTH days.

    Categories missing on either side are skipped; no overlap -> None.
    """
    sum_sq = 0.0
    count = 0
    for cat in categories:
        z1 = a.z_scores.get(cat)
        z2 = b.z_scores.get(cat)
        if z1 is None or z2 is None:
            continue
        sum_sq += (z1 - z2) ** 2
        count += 1
    if count == 0:
        return None

    distance = math.sqrt(sum_sq / count)
    return ProfileDistance(
        distance=distance,
        similarity=distance_to_similarity(distance),
        categories_compared=count,
    )


def _as_date(day: DateLike) -> date:
    if isinstance(day, date):
        return day
    return date.fromisoformat(date_key(day))


def find_similar_days(
    cache: PointInTimeCache,
    records: Sequence[DayRecord],
    reference_date: DateLike,
    categories: Sequence[str],
    exclude_window_days: int = DEFAULT_EXCLUDE_WINDOW_DAYS,
    top_n: int = DEFAULT_TOP_N,
) -> Optional[List[SimilarityMatch]]:
    """Top-N historical days whose profile is closest to ``reference_date``.

    Days fewer than ``exclude_window_days`` calendar days from the reference
    are skipped. Results are ordered by similarity descending, then date
    ascending. Returns None if the reference day has no cache entry.
    """
    ref_key = date_key(reference_date)
    ref_entry = cache.get(ref_key)
    if ref_entry is None:
        log.debug("No cache entry for reference date %s", ref_key)
        return None
    cats = list(categories)
    if not cats or top_n <= 0:
        return []

    ref_day = _as_date(ref_key)
    matches: List[SimilarityMatch] = []
    for rec in records:
        if rec.key == ref_key:
            continue
        if abs((rec.date - ref_day).days) < exclude_window_days:
            continue
        entry = cache.get(rec.key)
        if entry is None:
            continue
        result = profile_distance(ref_entry, entry, cats)
        if result is None:
            continue
        matches.append(
            SimilarityMatch(
                date=rec.key,
                similarity=result.similarity,
                distance=result.distance,
                categories_compared=result.categories_compared,
                overall=rec.overall,
                note=rec.note or "",
            )
        )

    matches.sort(key=lambda m: (-m.similarity, m.date))
    return matches[:top_n]
