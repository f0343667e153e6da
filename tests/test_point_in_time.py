"""
Tests for the point-in-time statistics cache.

Covers: causality (no lookahead), rank validity and tie-breaking,
index-vs-mean-of-z, missing values, zero-variance guard, and the
10-day ramp scenario.
"""

import math
from datetime import date

import numpy as np
import pytest

from analytics.point_in_time import (
    CacheEntry,
    DayRecord,
    PointInTimeCache,
    build_cache,
    date_key,
)
from conftest import make_records


CATS = ["A", "B", "C"]


# ─── Scenario ─────────────────────────────────────────────────


class TestRampScenario:
    """One category A = 1..10, OVERALL constant at 5."""

    def test_day10_category_z(self, ramp_records):
        cache = build_cache(ramp_records, ["A"])
        entry = cache["2025-01-10"]
        mean = 5.5
        std = math.sqrt(sum((v - mean) ** 2 for v in range(1, 11)) / 10)
        assert abs(std - 2.8723) < 1e-3
        assert entry.z_scores["A"] == pytest.approx((10 - mean) / std)
        assert entry.z_scores["A"] == pytest.approx(1.567, abs=1e-3)

    def test_overall_z_zero_with_zero_variance(self, ramp_records):
        cache = build_cache(ramp_records, ["A"])
        assert cache["2025-01-10"].overall_z == 0.0

    def test_single_category_index_equals_category_z(self, ramp_records):
        cache = build_cache(ramp_records, ["A"])
        entry = cache["2025-01-10"]
        assert entry.index_z == entry.z_scores["A"]
        assert entry.raw_avg == 10.0

    def test_first_day_has_no_statistics(self, ramp_records):
        entry = build_cache(ramp_records, ["A"])["2025-01-01"]
        assert dict(entry.z_scores) == {}
        assert dict(entry.ranks) == {}
        assert entry.index_z is None
        assert entry.overall_z is None
        assert entry.raw_avg == 1.0

    def test_second_day_is_first_with_statistics(self, ramp_records):
        entry = build_cache(ramp_records, ["A"])["2025-01-02"]
        # history [1, 2]: mean 1.5, std 0.5
        assert entry.z_scores["A"] == pytest.approx(1.0)
        assert entry.overall_z == 0.0


# ─── Causality ────────────────────────────────────────────────


class TestCausality:
    """Statistics for day i depend only on records [0..i]."""

    def test_prefix_rebuild_is_identical(self, mixed_records):
        full = build_cache(mixed_records, CATS)
        for k in (1, 2, 5, 11, len(mixed_records)):
            prefix = build_cache(mixed_records[:k], CATS)
            assert len(prefix) == k
            for rec in mixed_records[:k]:
                assert prefix[rec.key] == full[rec.key]

    def test_changing_future_days_does_not_change_past(self, mixed_records):
        full = build_cache(mixed_records, CATS)
        altered = list(mixed_records[:10]) + [
            DayRecord(date=r.date, overall=999.0, values={c: 1e6 for c in CATS}, note=r.note)
            for r in mixed_records[10:]
        ]
        rebuilt = build_cache(altered, CATS)
        for rec in mixed_records[:10]:
            assert rebuilt[rec.key] == full[rec.key]
        assert rebuilt[mixed_records[10].key] != full[mixed_records[10].key]


# ─── Ranks ────────────────────────────────────────────────────


class TestRanks:

    def test_ranks_are_contiguous_and_ordered(self, mixed_records):
        cache = build_cache(mixed_records, CATS)
        for key, entry in cache.items():
            k = len(entry.z_scores)
            assert set(entry.ranks) == set(entry.z_scores), key
            assert sorted(entry.ranks.values()) == list(range(1, k + 1)), key
            if k:
                worst = min(entry.ranks, key=entry.ranks.get)
                assert all(entry.z_scores[worst] <= z for z in entry.z_scores.values())
                ordered = sorted(entry.ranks, key=entry.ranks.get)
                zs = [entry.z_scores[c] for c in ordered]
                assert zs == sorted(zs)

    def test_ties_keep_category_order(self, record_factory):
        # X and Y move identically -> identical z-scores every day
        rows = [(5.0, {"Y": float(v), "X": float(v), "Z": float(10 - v)}) for v in (1, 3, 2, 4)]
        cache = build_cache(record_factory(rows), ["Y", "X", "Z"])
        entry = cache["2025-01-04"]
        assert entry.z_scores["X"] == entry.z_scores["Y"]
        assert entry.ranks["Z"] == 1
        assert entry.ranks["Y"] == 2
        assert entry.ranks["X"] == 3

        flipped = build_cache(record_factory(rows), ["X", "Y", "Z"])["2025-01-04"]
        assert flipped.ranks["X"] == 2
        assert flipped.ranks["Y"] == 3


# ─── Index ────────────────────────────────────────────────────


class TestIndex:

    def test_index_differs_from_mean_of_z(self, record_factory):
        # A has small variance, B has large variance
        a = [1, 2, 1, 2, 1, 2, 3]
        b = [10, 50, 20, 80, 0, 60, 30]
        rows = [(5.0, {"A": float(x), "B": float(y)}) for x, y in zip(a, b)]
        cache = build_cache(record_factory(rows), ["A", "B"])
        diffs = []
        for entry in cache.values():
            if entry.index_z is None or len(entry.z_scores) < 2:
                continue
            diffs.append(abs(entry.index_z - np.mean(list(entry.z_scores.values()))))
        assert max(diffs) > 1e-6

    def test_missing_values_excluded_from_raw_average(self, record_factory):
        rows = [
            (5.0, {"A": 2.0, "B": 4.0}),
            (5.0, {"A": 6.0, "B": None}),
            (5.0, {"A": None, "B": None}),
        ]
        cache = build_cache(record_factory(rows), ["A", "B"])
        assert cache["2025-01-01"].raw_avg == 3.0
        assert cache["2025-01-02"].raw_avg == 6.0  # not (6 + 0) / 2
        assert cache["2025-01-03"].raw_avg is None
        assert cache["2025-01-03"].index_z is None

    def test_days_without_average_skipped_in_index_history(self, record_factory):
        rows = [
            (5.0, {"A": 2.0}),
            (5.0, {"A": None}),
            (5.0, {"A": 4.0}),
        ]
        cache = build_cache(record_factory(rows), ["A"])
        assert cache["2025-01-02"].index_z is None
        # history of averages [2, 4]: mean 3, std 1
        assert cache["2025-01-03"].index_z == pytest.approx(1.0)


# ─── Missing values & degenerate variance ─────────────────────


class TestMissingAndDegenerate:

    def test_missing_day_value_has_no_z_or_rank(self, mixed_records):
        cache = build_cache(mixed_records, CATS)
        entry = cache[mixed_records[2].key]  # B missing on day 3
        assert "B" not in entry.z_scores
        assert "B" not in entry.ranks

    def test_category_needs_two_observations(self, mixed_records):
        cache = build_cache(mixed_records, CATS)
        assert "C" not in cache[mixed_records[3].key].z_scores  # first C value
        assert "C" in cache[mixed_records[4].key].z_scores

    def test_nan_is_treated_as_missing(self, record_factory):
        rows = [(5.0, {"A": 1.0}), (5.0, {"A": float("nan")}), (5.0, {"A": 3.0})]
        cache = build_cache(record_factory(rows), ["A"])
        assert "A" not in cache["2025-01-02"].z_scores
        assert cache["2025-01-03"].z_scores["A"] == pytest.approx(1.0)

    def test_zero_variance_uses_unit_std(self, record_factory):
        rows = [(5.0, {"A": 4.0}), (5.0, {"A": 4.0}), (5.0, {"A": 4.0})]
        cache = build_cache(record_factory(rows), ["A"])
        assert cache["2025-01-03"].z_scores["A"] == 0.0

    def test_zero_is_a_real_value(self, record_factory):
        rows = [(5.0, {"A": 0.0}), (5.0, {"A": 2.0})]
        cache = build_cache(record_factory(rows), ["A"])
        assert cache["2025-01-02"].z_scores["A"] == pytest.approx(1.0)


# ─── Contract ─────────────────────────────────────────────────


class TestContract:

    def test_empty_records_give_empty_cache(self):
        cache = build_cache([], CATS)
        assert len(cache) == 0
        assert cache.latest_date is None
        assert cache.categories == tuple(CATS)

    def test_unsorted_records_raise(self, mixed_records):
        shuffled = [mixed_records[1], mixed_records[0]] + list(mixed_records[2:])
        with pytest.raises(ValueError, match="sorted"):
            build_cache(shuffled, CATS)

    def test_duplicate_dates_raise(self, mixed_records):
        with pytest.raises(ValueError):
            build_cache([mixed_records[0], mixed_records[0]], CATS)

    def test_one_entry_per_record_in_order(self, mixed_records):
        cache = build_cache(mixed_records, CATS)
        assert cache.dates == tuple(r.key for r in mixed_records)
        assert cache.latest_date == mixed_records[-1].key

    def test_lookup_by_date_object(self, ramp_records):
        cache = build_cache(ramp_records, ["A"])
        assert cache[date(2025, 1, 5)] is cache["2025-01-05"]
        assert date(2030, 1, 1) not in cache

    def test_entries_are_read_only(self, ramp_records):
        entry = build_cache(ramp_records, ["A"])["2025-01-05"]
        assert isinstance(entry, CacheEntry)
        with pytest.raises(TypeError):
            entry.z_scores["A"] = 0.0
        with pytest.raises(AttributeError):
            entry.index_z = 0.0

    def test_unknown_categories_in_values_are_ignored(self, record_factory):
        rows = [(5.0, {"A": 1.0, "junk": 9.0}), (5.0, {"A": 3.0, "junk": 1.0})]
        cache = build_cache(record_factory(rows), ["A"])
        assert set(cache["2025-01-02"].z_scores) == {"A"}
        assert cache["2025-01-02"].raw_avg == 3.0


def test_date_key_normalises():
    assert date_key(date(2025, 9, 17)) == "2025-09-17"
    assert date_key(" 2025-09-17 ") == "2025-09-17"
    assert isinstance(build_cache([], []), PointInTimeCache)
