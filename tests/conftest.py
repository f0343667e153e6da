"""
Shared test configuration.

Adds src/ to sys.path so the flat modules (ingest, cache_store, api ...) and
the analytics/routes packages import the same way they do at runtime, and
provides a small record factory used across the test modules.
"""

import os
import sys
from datetime import date, timedelta

import pytest

_project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_src_dir = os.path.join(_project_root, "src")

if _src_dir not in sys.path:
    sys.path.insert(0, _src_dir)

from analytics.point_in_time import DayRecord  # noqa: E402


def make_records(rows, start=date(2025, 1, 1), notes=None):
    """rows: list of (overall, {category: value}) -> consecutive-day records."""
    records = []
    for i, (overall, values) in enumerate(rows):
        records.append(
            DayRecord(
                date=start + timedelta(days=i),
                overall=overall,
                values=dict(values),
                note=(notes or {}).get(i, ""),
            )
        )
    return records


@pytest.fixture
def record_factory():
    return make_records


@pytest.fixture
def ramp_records():
    """10 days, one category A = 1..10, OVERALL constant at 5."""
    return make_records([(5.0, {"A": float(v)}) for v in range(1, 11)])


@pytest.fixture
def mixed_records():
    """Three categories with different scales, gaps and a varying rating."""
    a = [3, 5, 4, 6, 2, 7, 5, 4, 8, 6, 5, 3, 6, 7, 4, 5, 9, 2, 6, 5]
    b = [100, 140, None, 90, 160, 120, 80, 150, 110, None, 170, 60, 130, 100, 145, 95, 115, 125, None, 135]
    c = [None, None, None, 1, 1, 2, 1, 3, 2, 1, 2, 2, 3, 1, 1, 2, 3, 2, 1, 2]
    overall = [50, 60, 55, 70, 40, 65, 45, 75, 60, 50, 80, 35, 65, 55, 60, 50, 85, 30, 60, 55]
    rows = [
        (float(o), {"A": float(x), "B": None if y is None else float(y), "C": None if z is None else float(z)})
        for o, x, y, z in zip(overall, a, b, c)
    ]
    return make_records(rows, notes={3: "slept badly", 11: "travel"})
