"""
Shared helpers for API routes.
Contains: snapshot access, query parsing, payload shaping.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

from fastapi import HTTPException

from analytics.point_in_time import date_key
from cache_store import CacheStore, Snapshot

log = logging.getLogger("api")


# ─── Snapshot access ───────────────────────────────────────

def _require_snapshot(store: CacheStore) -> Snapshot:
    snap = store.snapshot()
    if snap is None:
        raise HTTPException(status_code=503, detail="No dataset loaded.")
    return snap


def _record_for(snap: Snapshot, day: str):
    key = date_key(day)
    for rec in snap.records:
        if rec.key == key:
            return rec
    return None


# ─── Type coercion ─────────────────────────────────────────

def _to_jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, dict):
        return {k: _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    return value


def _parse_categories(raw: Optional[str], available: Sequence[str]) -> List[str]:
    """Comma list -> category names; empty means all. Unknown names raise."""
    if raw is None or not raw.strip():
        return list(available)
    requested = list(dict.fromkeys(c.strip() for c in raw.split(",") if c.strip()))
    unknown = [c for c in requested if c not in available]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown categories: {', '.join(unknown)}")
    return requested


# ─── Payloads ──────────────────────────────────────────────

def _day_payload(snap: Snapshot, day: str) -> Dict[str, Any]:
    key = date_key(day)
    entry = snap.cache.get(key)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"No data found for {key}.")
    rec = _record_for(snap, key)
    payload: Dict[str, Any] = {"date": key, **entry.to_dict()}
    if rec is not None:
        payload["overall"] = rec.overall
        payload["values"] = dict(rec.values)
        payload["note"] = rec.note
    return _to_jsonable(payload)
