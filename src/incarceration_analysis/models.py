"""Data classes for jurisdiction-year records."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RawRecord:
    """One CSV row as read from disk, before any parsing."""

    jurisdiction: str
    year: str
    prisoner_count: str
    state_population: str
    violent_crime_total: str
    reason: str = ""  # why the row was rejected, empty while unjudged


@dataclass(frozen=True)
class Record:
    """A validated jurisdiction-year with its derived rates (per 100k residents)."""

    jurisdiction: str
    year: int
    incarceration_rate: float
    crime_rate: float
    prisoner_count: int = 0
    state_population: int = 0
    violent_crime_total: int = 0
