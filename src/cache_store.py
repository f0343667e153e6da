"""Owner of the currently loaded dataset and its point-in-time cache.

``load`` builds the new cache completely before swapping a single reference
under the lock, so a concurrent ``snapshot()`` sees either the previous
dataset or the new one, never a half-built cache.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, Optional, Sequence, Tuple

from analytics.point_in_time import DayRecord, PointInTimeCache, build_cache

log = logging.getLogger("cache_store")


@dataclass(frozen=True)
class Snapshot:
    records: Tuple[DayRecord, ...]
    categories: Tuple[str, ...]
    cache: PointInTimeCache


@dataclass(frozen=True)
class LoadSummary:
    row_count: int
    category_count: int
    date_from: str
    date_to: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row_count": self.row_count,
            "category_count": self.category_count,
            "date_range": {"from": self.date_from, "to": self.date_to},
        }


@dataclass
class CacheStore:
    _snapshot: Optional[Snapshot] = None
    _lock: Lock = field(default_factory=Lock)

    def load(self, records: Sequence[DayRecord], categories: Sequence[str]) -> LoadSummary:
        """Rebuild from scratch and publish; the old snapshot stays on failure."""
        if not records:
            raise ValueError("Cannot load an empty dataset.")
        new = Snapshot(
            records=tuple(records),
            categories=tuple(categories),
            cache=build_cache(records, categories),
        )
        with self._lock:
            self._snapshot = new
        log.info("Loaded %d entries, %d categories", len(new.records), len(new.categories))
        return LoadSummary(
            row_count=len(new.records),
            category_count=len(new.categories),
            date_from=new.records[0].key,
            date_to=new.records[-1].key,
        )

    def snapshot(self) -> Optional[Snapshot]:
        with self._lock:
            return self._snapshot

    def clear(self) -> None:
        with self._lock:
            self._snapshot = None
