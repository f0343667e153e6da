"""
FastAPI read surface over the loaded daily tracking dataset.

Route handlers are defined here; shared utilities live in routes/helpers.py.
Thresholds and search defaults come from config.Settings and are passed
explicitly into the analytics calls.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from analytics.divergence import classify_divergence, summarize_divergence
from analytics.point_in_time import date_key
from analytics.similarity import find_similar_days
from cache_store import CacheStore
from config import load_settings
from ingest import IngestError, load_csv, parse_csv
from routes.helpers import _day_payload, _parse_categories, _require_snapshot, _to_jsonable

log = logging.getLogger("api")

settings = load_settings()
store = CacheStore()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    if settings.data_path:
        try:
            parsed = load_csv(settings.data_path)
            store.load(parsed.records, parsed.categories)
        except (OSError, IngestError) as e:
            log.error("Initial dataset %s not loaded: %s", settings.data_path, e)
    yield


# ─── App setup ─────────────────────────────────────────────

app = FastAPI(title="IMLADRIS API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.frontend_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


class DatasetRequest(BaseModel):
    csv_text: str


def _thresholds(caution: Optional[float], alert: Optional[float]):
    c = settings.caution_threshold if caution is None else caution
    a = settings.alert_threshold if alert is None else alert
    if not c < a:
        raise HTTPException(status_code=400, detail="caution must be below alert.")
    return c, a


# ─── Routes ────────────────────────────────────────────────

@app.get("/")
def root() -> Dict[str, Any]:
    return {"service": "imladris-api", "status": "ok"}


@app.get("/health-check")
def health_check() -> Dict[str, Any]:
    snap = store.snapshot()
    return {
        "status": "Online",
        "dataset_loaded": snap is not None,
        "days": len(snap.records) if snap else 0,
    }


@app.post("/api/v1/dataset")
def load_dataset(req: DatasetRequest) -> Dict[str, Any]:
    try:
        parsed = parse_csv(req.csv_text)
        summary = store.load(parsed.records, parsed.categories)
        return summary.to_dict()
    except IngestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        log.error("Dataset load failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/v1/days/{day}")
def day_entry(day: str) -> Dict[str, Any]:
    snap = _require_snapshot(store)
    return _day_payload(snap, day)


@app.get("/api/v1/divergence/{day}")
def divergence(
    day: str,
    caution: Optional[float] = Query(default=None, ge=0),
    alert: Optional[float] = Query(default=None, ge=0),
) -> Dict[str, Any]:
    snap = _require_snapshot(store)
    key = date_key(day)
    if key not in snap.cache:
        raise HTTPException(status_code=404, detail=f"No data found for {key}.")
    c, a = _thresholds(caution, alert)
    result = classify_divergence(snap.cache, key, c, a)
    if result is None:
        return {"date": key, "status": "insufficient_data"}
    return _to_jsonable({"date": key, **result.to_dict()})


@app.get("/api/v1/divergence-summary")
def divergence_summary(
    recent_days: Optional[int] = Query(default=None, ge=1, le=3650),
    caution: Optional[float] = Query(default=None, ge=0),
    alert: Optional[float] = Query(default=None, ge=0),
) -> Dict[str, Any]:
    snap = _require_snapshot(store)
    c, a = _thresholds(caution, alert)
    summary = summarize_divergence(
        snap.cache, c, a, recent_days=recent_days or settings.recent_days,
    )
    if summary is None:
        return {"date": snap.cache.latest_date, "status": "insufficient_data"}
    return _to_jsonable(summary.to_dict())


@app.get("/api/v1/similar/{day}")
def similar_days(
    day: str,
    categories: Optional[str] = Query(default=None),
    exclude_window: Optional[int] = Query(default=None, ge=0, le=3650),
    top_n: Optional[int] = Query(default=None, ge=1, le=365),
) -> Dict[str, Any]:
    snap = _require_snapshot(store)
    key = date_key(day)
    cats = _parse_categories(categories, snap.categories)
    matches = find_similar_days(
        snap.cache,
        snap.records,
        key,
        cats,
        exclude_window_days=settings.exclude_window_days if exclude_window is None else exclude_window,
        top_n=top_n or settings.top_n,
    )
    if matches is None:
        raise HTTPException(status_code=404, detail=f"No data found for {key}.")
    return _to_jsonable({
        "reference_date": key,
        "categories": cats,
        "matches": [m.to_dict() for m in matches],
    })
