"""
Daily tracking CSV → DayRecord list.

Expected columns:
    <date>, [categories...], OVERALL, NOTE (optional), IDX_* (optional)

  * First column is always the date (ISO or M/D/YYYY, normalised to a day).
  * OVERALL is the subjective rating and is required on every kept row.
  * IDX_* columns are user-defined sheet indices, kept aside, not categories.
  * Every other column is a category; non-numeric cells become None.

Rows with an unparseable date or OVERALL are dropped. Output is sorted by
date with one row per date (last one wins).
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from analytics.point_in_time import DayRecord

log = logging.getLogger("ingest")

OVERALL_COL = "OVERALL"
NOTE_COL = "NOTE"
INDEX_PREFIX = "IDX_"


class IngestError(ValueError):
    """The CSV cannot be turned into a usable dataset."""


@dataclass(frozen=True)
class ParsedDataset:
    records: List[DayRecord]
    categories: List[str]
    indices: Dict[str, Dict[str, Optional[float]]] = field(default_factory=dict)

    @property
    def date_range(self) -> Dict[str, str]:
        return {"from": self.records[0].key, "to": self.records[-1].key}


# ─── helpers ──────────────────────────────────────────────────

def _cell(value: Any) -> Optional[float]:
    return float(value) if pd.notna(value) else None


def _read(buffer: Union[io.StringIO, Path], encoding: str = "utf-8") -> pd.DataFrame:
    try:
        df = pd.read_csv(
            buffer,
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
            on_bad_lines="skip",
            encoding=encoding if isinstance(buffer, Path) else None,
        )
    except pd.errors.EmptyDataError as e:
        raise IngestError("CSV must contain a header row and at least one data row.") from e
    except pd.errors.ParserError as e:
        raise IngestError(f"CSV could not be parsed: {e}") from e
    df.columns = [str(c).strip() for c in df.columns]
    return df


def _split_columns(columns: List[str]):
    if OVERALL_COL not in columns:
        raise IngestError("CSV must include an OVERALL column.")
    date_col = columns[0]
    note_col = next((c for c in columns if c.upper() == NOTE_COL), None)
    index_cols = [c for c in columns if c.startswith(INDEX_PREFIX)]
    reserved = {date_col, OVERALL_COL, note_col, *index_cols}
    cat_cols = [c for c in columns if c not in reserved]
    if not cat_cols:
        raise IngestError("CSV must include at least one category column.")
    return date_col, note_col, index_cols, cat_cols


# ─── parsing ──────────────────────────────────────────────────

def parse_frame(df: pd.DataFrame) -> ParsedDataset:
    """Validate and convert a raw (all-string) frame."""
    if df.empty:
        raise IngestError("CSV must contain a header row and at least one data row.")
    date_col, note_col, index_cols, cat_cols = _split_columns(list(df.columns))

    dates = pd.to_datetime(df[date_col].astype(str).str.strip(), errors="coerce", format="mixed")
    overall = pd.to_numeric(df[OVERALL_COL], errors="coerce")
    keep = dates.notna() & overall.notna()
    dropped = int((~keep).sum())
    if dropped:
        log.warning("Dropped %d row(s) with an invalid date or OVERALL", dropped)

    frame = pd.DataFrame({"__date": dates.dt.date, "__overall": overall})
    for col in cat_cols + index_cols:
        frame[col] = pd.to_numeric(df[col], errors="coerce")
    frame["__note"] = df[note_col].fillna("").astype(str).str.strip() if note_col else ""
    frame = frame[keep]

    if frame.empty:
        raise IngestError("No valid data rows found.")

    before = len(frame)
    frame = frame.sort_values("__date", kind="stable").drop_duplicates("__date", keep="last")
    if len(frame) < before:
        log.warning("Collapsed %d duplicate date row(s), keeping the last", before - len(frame))

    records: List[DayRecord] = []
    indices: Dict[str, Dict[str, Optional[float]]] = {}
    for row in frame.to_dict("records"):
        rec = DayRecord(
            date=row["__date"],
            overall=float(row["__overall"]),
            values={c: _cell(row[c]) for c in cat_cols},
            note=row["__note"],
        )
        records.append(rec)
        if index_cols:
            indices[rec.key] = {c: _cell(row[c]) for c in index_cols}

    log.info(
        "Parsed %d day(s), %d categor%s (%s → %s)",
        len(records), len(cat_cols), "y" if len(cat_cols) == 1 else "ies",
        records[0].key, records[-1].key,
    )
    return ParsedDataset(records=records, categories=cat_cols, indices=indices)


def parse_csv(text: str) -> ParsedDataset:
    """Parse CSV text already in memory."""
    if not text or not text.strip():
        raise IngestError("CSV must contain a header row and at least one data row.")
    return parse_frame(_read(io.StringIO(text.strip())))


def load_csv(path: Union[str, Path], encoding: str = "utf-8") -> ParsedDataset:
    """Read and parse a CSV file from disk."""
    return parse_frame(_read(Path(path), encoding=encoding))
