"""Record ingestion: read the state CSV, validate rows, derive per-capita rates.

Rows whose population or violent-crime total is blank or parses to zero cannot
carry a rate and are rejected (returned separately, never raised). Everything
downstream of process_dataset() sees only validated Record objects, in file order.
"""

from __future__ import annotations

import math
from dataclasses import asdict, replace
from pathlib import Path

import polars as pl

from incarceration_analysis.config import RATE_SCALE, REQUIRED_COLUMNS
from incarceration_analysis.models import RawRecord, Record

RECORD_SCHEMA = {
    "jurisdiction": pl.Utf8,
    "year": pl.Int64,
    "incarceration_rate": pl.Float64,
    "crime_rate": pl.Float64,
    "prisoner_count": pl.Int64,
    "state_population": pl.Int64,
    "violent_crime_total": pl.Int64,
}


class IngestError(ValueError):
    """The input file could not be read as a jurisdiction CSV."""


def _parse_year(field: str) -> int | None:
    """'"2001"' -> 2001. None when unparsable."""
    try:
        year = int(field.strip().strip('"'))
    except ValueError:
        return None
    return year if year >= 0 else None


def _parse_count(field: str) -> int | None:
    """Parse an integer count that may carry thousands separators ("27,710")."""
    try:
        count = int(field.strip().replace(",", ""))
    except ValueError:
        return None
    return count if count >= 0 else None


def _parse_rounded(field: str) -> int:
    """Parse a possibly fractional total and round half away from zero.

    Unparsable, negative and non-finite values all become 0, which the caller
    treats as missing.
    """
    try:
        value = float(field.strip().replace(",", ""))
    except ValueError:
        return 0
    if not math.isfinite(value) or value <= 0:
        return 0
    return int(math.floor(value + 0.5))


def load_raw_records(path: Path) -> list[RawRecord]:
    """Read every row of the CSV as strings, keeping only the required columns."""
    try:
        df = pl.read_csv(path, infer_schema_length=0)
    except (OSError, pl.exceptions.PolarsError) as e:
        raise IngestError(f"Cannot read {path}: {e}") from e

    df = df.rename({c: c.strip().lower() for c in df.columns})
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise IngestError(f"{path} is missing required column(s): {', '.join(missing)}")

    df = df.select(list(REQUIRED_COLUMNS)).fill_null("")
    return [RawRecord(**row) for row in df.iter_rows(named=True)]


def clean_record(raw: RawRecord) -> Record | None:
    """Validate one raw row and derive its rates. None means the row is rejected.

    Blank or zero population/crime totals reject the row. An unparsable year or
    prisoner count is kept as 0 with a warning, matching how the dataset marks
    unknown counts.
    """
    if not raw.state_population.strip() or not raw.violent_crime_total.strip():
        return None

    year = _parse_year(raw.year)
    if year is None:
        print(f"  Warning: invalid year {raw.year!r} for {raw.jurisdiction}")
        year = 0

    prisoners = _parse_count(raw.prisoner_count)
    if prisoners is None:
        print(f"  Warning: invalid prisoner_count {raw.prisoner_count!r} for {raw.jurisdiction}")
        prisoners = 0

    population = _parse_rounded(raw.state_population)
    crimes = _parse_rounded(raw.violent_crime_total)
    if population == 0 or crimes == 0:
        return None

    return Record(
        jurisdiction=raw.jurisdiction,
        year=year,
        incarceration_rate=prisoners / population * RATE_SCALE,
        crime_rate=crimes / population * RATE_SCALE,
        prisoner_count=prisoners,
        state_population=population,
        violent_crime_total=crimes,
    )


def _rejection_reason(raw: RawRecord) -> str:
    if not raw.state_population.strip() or not raw.violent_crime_total.strip():
        return "missing state_population or violent_crime_total"
    return "zero or unparsable state_population or violent_crime_total"


def process_dataset(path: Path) -> tuple[list[Record], list[RawRecord]]:
    """Load and clean a CSV. Returns (valid records, rejected raw rows)."""
    valid: list[Record] = []
    invalid: list[RawRecord] = []
    for raw in load_raw_records(path):
        record = clean_record(raw)
        if record is None:
            invalid.append(replace(raw, reason=_rejection_reason(raw)))
        else:
            valid.append(record)
    return valid, invalid


def filter_by_state(records: list[Record], state: str) -> list[Record]:
    """Records for one jurisdiction, matched case-insensitively."""
    target = state.lower()
    return [r for r in records if r.jurisdiction.lower() == target]


def compare_states(
    records: list[Record], state1: str, state2: str
) -> tuple[list[Record], list[Record]]:
    return filter_by_state(records, state1), filter_by_state(records, state2)


def records_to_frame(records: list[Record]) -> pl.DataFrame:
    """Convert records to a polars DataFrame (empty input keeps the schema)."""
    if not records:
        return pl.DataFrame(schema=RECORD_SCHEMA)
    return pl.DataFrame([asdict(r) for r in records], schema=RECORD_SCHEMA)
