"""Partition, filter and sort departures/arrivals for the flight board."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Literal, Optional, Sequence, Tuple

import pandas as pd

from flight_records import Direction, NormalizedFlight, status_label
from time_utils import PLACEHOLDER, format_in_timezone, start_of_today_in_timezone

StatusFilterOption = Literal["all", "delayed", "on_time", "scheduled", "cancelled", "in_flight"]
SortOption = Literal["scheduled", "estimated", "status"]

STATUS_FILTER_OPTIONS: Tuple[StatusFilterOption, ...] = (
    "all",
    "delayed",
    "on_time",
    "scheduled",
    "cancelled",
    "in_flight",
)
STATUS_FILTER_LABELS: Dict[str, str] = {
    "all": "All statuses",
    "delayed": "Delayed",
    "on_time": "On time",
    "scheduled": "Scheduled",
    "cancelled": "Cancelled",
    "in_flight": "In flight",
}
SORT_OPTIONS: Tuple[SortOption, ...] = ("scheduled", "estimated", "status")
SORT_LABELS: Dict[str, str] = {
    "scheduled": "Scheduled time",
    "estimated": "Estimated time",
    "status": "Status",
}

# Lower sorts first when ordering by status.
STATUS_ORDER: Dict[str, int] = {
    "active": 0,
    "scheduled": 1,
    "landed": 2,
    "diverted": 3,
    "incident": 4,
    "cancelled": 5,
}
UNKNOWN_STATUS_RANK = len(STATUS_ORDER)
ON_TIME_STATUSES = frozenset({"scheduled", "landed"})


@dataclass(frozen=True)
class FilterCriteria:
    """User selections applied to a departures or arrivals list."""

    upcoming: bool = True
    airline: str = ""
    place: str = ""
    status: StatusFilterOption = "all"
    sort_by: SortOption = "scheduled"


@dataclass(frozen=True)
class BoardView:
    flights: List[NormalizedFlight]
    airline_options: List[str] = field(default_factory=list)
    place_options: List[Tuple[str, str]] = field(default_factory=list)
    cutoff: Optional[datetime] = None
    window_total: int = 0


def bucket_time(flight: NormalizedFlight) -> Optional[datetime]:
    """Instant used to place a flight in the upcoming/historical window."""

    return flight.effective_time


def filter_by_upcoming_or_historical(
    flights: Sequence[NormalizedFlight],
    upcoming: bool,
    airport_timezone: str,
    *,
    now: Optional[datetime] = None,
) -> List[NormalizedFlight]:
    """Split flights on local midnight at the airport.

    Upcoming keeps flights at or after the start of today in
    *airport_timezone*; historical keeps the rest, including flights with no
    usable time.
    """

    cutoff = start_of_today_in_timezone(airport_timezone, now)
    selected: List[NormalizedFlight] = []
    for flight in flights:
        moment = bucket_time(flight)
        is_upcoming = moment is not None and moment >= cutoff
        if is_upcoming == upcoming:
            selected.append(flight)
    return selected


def filter_by_airline(
    flights: Sequence[NormalizedFlight], airline: Optional[str]
) -> List[NormalizedFlight]:
    if not airline:
        return list(flights)
    return [flight for flight in flights if flight.airline == airline]


def filter_by_place(
    flights: Sequence[NormalizedFlight],
    place_iata: Optional[str],
    direction: Direction,
) -> List[NormalizedFlight]:
    """Match the destination on departures and the origin on arrivals."""

    if not place_iata:
        return list(flights)
    if direction == "departure":
        return [flight for flight in flights if flight.destination_iata == place_iata]
    return [flight for flight in flights if flight.origin_iata == place_iata]


def _matches_status_option(flight: NormalizedFlight, option: str) -> bool:
    delay = flight.delay_minutes or 0
    if option == "delayed":
        return delay > 0
    if option == "on_time":
        return delay == 0 and flight.status in ON_TIME_STATUSES
    if option == "scheduled":
        return flight.status == "scheduled"
    if option == "cancelled":
        return flight.status == "cancelled"
    if option == "in_flight":
        return flight.status == "active"
    return True


def filter_by_status_option(
    flights: Sequence[NormalizedFlight], option: StatusFilterOption
) -> List[NormalizedFlight]:
    if option == "all":
        return list(flights)
    return [flight for flight in flights if _matches_status_option(flight, option)]


def _time_sort_key(moment: Optional[datetime]) -> Tuple[int, float]:
    if moment is None:
        return (1, 0.0)
    return (0, moment.timestamp())


def sort_flights(
    flights: Sequence[NormalizedFlight], sort_by: SortOption
) -> List[NormalizedFlight]:
    """Stable sort; soonest first for time keys, precedence table for status.

    Flights without a usable time sort after every timed flight.
    """

    if sort_by == "scheduled":
        return sorted(flights, key=lambda flight: _time_sort_key(flight.scheduled))
    if sort_by == "estimated":
        return sorted(flights, key=lambda flight: _time_sort_key(flight.effective_time))
    if sort_by == "status":
        return sorted(
            flights,
            key=lambda flight: STATUS_ORDER.get(flight.status, UNKNOWN_STATUS_RANK),
        )
    raise ValueError(f"Unsupported sort option: {sort_by!r}")


def available_airlines(flights: Sequence[NormalizedFlight]) -> List[str]:
    return sorted({flight.airline for flight in flights if flight.airline})


def available_places(
    flights: Sequence[NormalizedFlight], direction: Direction
) -> List[Tuple[str, str]]:
    """Return ``(iata, name)`` pairs for the place filter, sorted by code."""

    places: Dict[str, str] = {}
    for flight in flights:
        if direction == "departure":
            code, name = flight.destination_iata, flight.destination
        else:
            code, name = flight.origin_iata, flight.origin
        if code and code not in places:
            places[code] = name
    return sorted(places.items())


def apply_filters(
    flights: Sequence[NormalizedFlight],
    criteria: FilterCriteria,
    direction: Direction,
) -> List[NormalizedFlight]:
    """Apply airline, place and status filters then sort."""

    selected = filter_by_airline(flights, criteria.airline)
    selected = filter_by_place(selected, criteria.place, direction)
    selected = filter_by_status_option(selected, criteria.status)
    return sort_flights(selected, criteria.sort_by)


def build_board_view(
    flights: Sequence[NormalizedFlight],
    criteria: FilterCriteria,
    airport_timezone: str,
    direction: Direction,
    *,
    now: Optional[datetime] = None,
) -> BoardView:
    """Run the full pipeline and derive the dropdown options.

    Options come from the time-partitioned list so a choice never yields an
    empty board for the current window.
    """

    windowed = filter_by_upcoming_or_historical(
        flights, criteria.upcoming, airport_timezone, now=now
    )
    return BoardView(
        flights=apply_filters(windowed, criteria, direction),
        airline_options=available_airlines(windowed),
        place_options=available_places(windowed, direction),
        cutoff=start_of_today_in_timezone(airport_timezone, now),
        window_total=len(windowed),
    )


BOARD_COLUMNS = ("Flight", "Airline", "From/To", "Scheduled", "Estimated", "Delay", "Status")


def flights_to_dataframe(
    flights: Sequence[NormalizedFlight], *, style: str = "datetime"
) -> pd.DataFrame:
    """Render board rows with times in each flight's airport timezone."""

    rows = []
    for flight in flights:
        estimated = PLACEHOLDER
        if flight.estimated is not None and flight.estimated != flight.scheduled:
            estimated = format_in_timezone(flight.estimated, flight.timezone, style)
        delay = f"+{flight.delay_minutes} min" if (flight.delay_minutes or 0) > 0 else ""
        rows.append(
            {
                "Flight": flight.flight_iata,
                "Airline": flight.airline,
                "From/To": f"{flight.other_end_iata} — {flight.other_end_name}".strip(" —"),
                "Scheduled": format_in_timezone(flight.scheduled, flight.timezone, style),
                "Estimated": estimated,
                "Delay": delay,
                "Status": status_label(flight.status),
            }
        )
    return pd.DataFrame(rows, columns=list(BOARD_COLUMNS))


__all__ = [
    "BOARD_COLUMNS",
    "BoardView",
    "FilterCriteria",
    "SORT_LABELS",
    "SORT_OPTIONS",
    "STATUS_FILTER_LABELS",
    "STATUS_FILTER_OPTIONS",
    "STATUS_ORDER",
    "SortOption",
    "StatusFilterOption",
    "apply_filters",
    "available_airlines",
    "available_places",
    "bucket_time",
    "build_board_view",
    "filter_by_airline",
    "filter_by_place",
    "filter_by_status_option",
    "filter_by_upcoming_or_historical",
    "flights_to_dataframe",
    "sort_flights",
]
