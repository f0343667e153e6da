"""
IMLADRIS Daily Report
=====================
Loads a daily tracking CSV, builds the point-in-time cache and logs:
  1. Divergence status for the latest (or a chosen) day
  2. The divergence overview (last harmony, recent average, peak)
  3. Optionally, the most similar historical days

Usage:
    python daily_report.py data.csv
    python daily_report.py data.csv --date 2025-09-17 --similar
    python daily_report.py data.csv --similar --categories .pro,.fit --top-n 5
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger("daily_report")

from analytics.divergence import classify_divergence, summarize_divergence
from analytics.point_in_time import build_cache, date_key
from analytics.similarity import find_similar_days
from config import Settings, load_settings
from ingest import IngestError, load_csv


def _fmt_sigma(value: float, signed: bool = False) -> str:
    return f"{value:+.2f}σ" if signed else f"{value:.2f}σ"


def run_report(
    path: str,
    settings: Settings,
    day: Optional[str] = None,
    similar: bool = False,
    categories: Optional[List[str]] = None,
) -> bool:
    try:
        parsed = load_csv(path)
    except (OSError, IngestError) as e:
        log.error("Could not load %s: %s", path, e)
        return False

    cache = build_cache(parsed.records, parsed.categories)
    target = date_key(day) if day else cache.latest_date
    if target not in cache:
        log.error("No data found for %s", target)
        return False

    log.info("=" * 60)
    log.info("  IMLADRIS REPORT  %s", target)
    log.info("=" * 60)

    result = classify_divergence(cache, target, settings.caution_threshold, settings.alert_threshold)
    if result is None:
        log.info("Insufficient data for divergence analysis.")
    else:
        log.info("Status:      %s", result.status.capitalize())
        log.info("Divergence:  %s", _fmt_sigma(result.divergence))
        log.info("Gap (OVR − IDX): %s", _fmt_sigma(result.gap, signed=True))

    summary = summarize_divergence(
        cache, settings.caution_threshold, settings.alert_threshold, settings.recent_days,
    )
    if summary is not None:
        log.info("Last harmony: %s", summary.last_harmony_date or "None found")
        if summary.recent_average is not None:
            log.info("%d-day avg:   %s", summary.recent_days, _fmt_sigma(summary.recent_average))
        if summary.peak is not None:
            log.info("Peak:        %s on %s", _fmt_sigma(summary.peak.divergence), summary.peak_date)

    if similar:
        cats = categories or parsed.categories
        unknown = [c for c in cats if c not in parsed.categories]
        if unknown:
            log.error("Unknown categories: %s", ", ".join(unknown))
            return False
        matches = find_similar_days(
            cache, parsed.records, target, cats,
            exclude_window_days=settings.exclude_window_days,
            top_n=settings.top_n,
        ) or []
        log.info("-" * 60)
        if not matches:
            log.info("No matches found.")
        for i, m in enumerate(matches, start=1):
            log.info("#%-2d %s  %5.1f%%  OVR: %s  %s", i, m.date, m.similarity, m.overall, m.note)

    return True


# ═══════════════════════════════════════════════════════════════
#  CLI
# ═══════════════════════════════════════════════════════════════

def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="IMLADRIS daily divergence report")
    parser.add_argument("csv", help="Daily tracking CSV (date, categories..., OVERALL, NOTE)")
    parser.add_argument("--date", help="Report day (YYYY-MM-DD, default: latest)")
    parser.add_argument("--similar", action="store_true",
                        help="Also list the most similar historical days")
    parser.add_argument("--categories",
                        help="Comma-separated categories to compare (default: all)")
    parser.add_argument("--top-n", type=int, help="Number of matches to list")
    parser.add_argument("--exclude-window", type=int,
                        help="Skip days closer than this many days to the report day")
    args = parser.parse_args(argv)

    settings = load_settings()
    overrides = {}
    if args.top_n is not None:
        overrides["top_n"] = args.top_n
    if args.exclude_window is not None:
        overrides["exclude_window_days"] = args.exclude_window
    if overrides:
        settings = replace(settings, **overrides)

    cats = [c.strip() for c in args.categories.split(",") if c.strip()] if args.categories else None
    ok = run_report(args.csv, settings, day=args.date, similar=args.similar, categories=cats)
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
