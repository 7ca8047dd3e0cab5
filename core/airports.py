"""Utilities for loading the airport directory used by the flight board."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd

AIRPORTS_FILENAME = "airports.csv"
DEFAULT_SUGGESTION_LIMIT = 8


@dataclass(frozen=True)
class AirportOption:
    name: str
    code: str
    city: str
    timezone: str

    @property
    def label(self) -> str:
        return f"{self.code} — {self.name} ({self.city})"


def load_airports(path: str | Path) -> Tuple[AirportOption, ...]:
    """Load airport names, cities and IANA time zones.

    Parameters
    ----------
    path:
        Path to a CSV file exposing ``iata``, ``name``, ``city`` and ``tz``
        columns. Rows without a three-letter code or a time zone are skipped,
        and the first row wins when a code appears twice.

    Returns
    -------
    tuple
        Immutable sequence of :class:`AirportOption` in file order.
    """

    df = pd.read_csv(Path(path), dtype=str).fillna("")
    df["iata"] = df["iata"].str.upper().str.strip()

    airports: List[AirportOption] = []
    seen = set()
    for _, row in df.iterrows():
        code = row["iata"]
        tz = str(row.get("tz") or "").strip()
        if len(code) != 3 or not code.isalpha() or not tz or code in seen:
            continue
        seen.add(code)
        airports.append(
            AirportOption(
                name=str(row.get("name") or "").strip() or code,
                code=code,
                city=str(row.get("city") or "").strip(),
                timezone=tz,
            )
        )
    return tuple(airports)


@lru_cache(maxsize=1)
def airport_directory() -> Tuple[AirportOption, ...]:
    """Return the bundled airport directory, loaded once per process."""

    return load_airports(Path(__file__).with_name(AIRPORTS_FILENAME))


def search_airports(
    query: str,
    airports: Optional[Tuple[AirportOption, ...]] = None,
    *,
    limit: int = DEFAULT_SUGGESTION_LIMIT,
) -> List[AirportOption]:
    """Match *query* against airport names, codes and cities.

    An empty query returns the first ``limit`` airports.
    """

    directory = airport_directory() if airports is None else airports
    needle = (query or "").strip().lower()
    if not needle:
        return list(directory[:limit])
    return [
        airport
        for airport in directory
        if needle in airport.name.lower()
        or needle in airport.code.lower()
        or needle in airport.city.lower()
    ]
