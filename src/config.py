"""Configuration loaded from .env / environment.

Settings are resolved once at the edges (API, CLI) and passed explicitly
into the analytics functions; nothing under analytics/ reads the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from constants import (
    DEFAULT_ALERT_THRESHOLD,
    DEFAULT_CAUTION_THRESHOLD,
    DEFAULT_EXCLUDE_WINDOW_DAYS,
    DEFAULT_RECENT_DAYS,
    DEFAULT_TOP_N,
)

load_dotenv()

DEFAULT_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


@dataclass(frozen=True)
class Settings:
    caution_threshold: float = DEFAULT_CAUTION_THRESHOLD
    alert_threshold: float = DEFAULT_ALERT_THRESHOLD
    exclude_window_days: int = DEFAULT_EXCLUDE_WINDOW_DAYS
    top_n: int = DEFAULT_TOP_N
    recent_days: int = DEFAULT_RECENT_DAYS
    data_path: Optional[Path] = None
    frontend_origins: List[str] = field(default_factory=lambda: list(DEFAULT_ORIGINS))


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else default


def load_settings() -> Settings:
    """Read IMLADRIS_* variables; raise ValueError on inconsistent thresholds."""
    caution = _env_float("IMLADRIS_CAUTION_THRESHOLD", DEFAULT_CAUTION_THRESHOLD)
    alert = _env_float("IMLADRIS_ALERT_THRESHOLD", DEFAULT_ALERT_THRESHOLD)
    if not caution < alert:
        raise ValueError(
            f"IMLADRIS_CAUTION_THRESHOLD ({caution}) must be below IMLADRIS_ALERT_THRESHOLD ({alert})"
        )

    data_path = os.getenv("IMLADRIS_DATA_PATH", "").strip()
    origins = [o.strip() for o in os.getenv("FRONTEND_ORIGINS", "").split(",") if o.strip()]

    return Settings(
        caution_threshold=caution,
        alert_threshold=alert,
        exclude_window_days=_env_int("IMLADRIS_EXCLUDE_WINDOW_DAYS", DEFAULT_EXCLUDE_WINDOW_DAYS),
        top_n=_env_int("IMLADRIS_TOP_N", DEFAULT_TOP_N),
        recent_days=_env_int("IMLADRIS_RECENT_DAYS", DEFAULT_RECENT_DAYS),
        data_path=Path(data_path) if data_path else None,
        frontend_origins=origins or list(DEFAULT_ORIGINS),
    )
