"""Normalise AviationStack flight records into board rows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional

from time_utils import to_instant

Direction = Literal["departure", "arrival"]
DIRECTIONS = ("departure", "arrival")
DEFAULT_TIMEZONE = "UTC"

FLIGHT_STATUSES = ("scheduled", "active", "landed", "cancelled", "incident", "diverted")
STATUS_LABELS: Dict[str, str] = {
    "scheduled": "Scheduled",
    "active": "In flight",
    "landed": "Landed",
    "cancelled": "Cancelled",
    "incident": "Incident",
    "diverted": "Diverted",
}


@dataclass(frozen=True)
class NormalizedFlight:
    """A flight projected onto one side of the trip for display.

    ``scheduled``/``estimated`` and ``timezone`` belong to the departure side
    on a departures board and to the arrival side on an arrivals board.
    """

    flight_number: str
    flight_iata: str
    airline: str
    airline_iata: Optional[str]
    origin: str
    origin_iata: str
    destination: str
    destination_iata: str
    scheduled: Optional[datetime]
    estimated: Optional[datetime]
    timezone: str
    status: str
    delay_minutes: Optional[int]
    direction: Direction = "departure"

    @property
    def effective_time(self) -> Optional[datetime]:
        """Best-known time: the estimate when present, else the schedule."""

        return self.estimated or self.scheduled

    @property
    def key(self) -> tuple:
        return (self.flight_iata, self.scheduled)

    @property
    def other_end_iata(self) -> str:
        if self.direction == "departure":
            return self.destination_iata
        return self.origin_iata

    @property
    def other_end_name(self) -> str:
        if self.direction == "departure":
            return self.destination
        return self.origin


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = raw.get(name)
    return value if isinstance(value, Mapping) else {}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _optional_text(value: Any) -> Optional[str]:
    text = _text(value)
    return text or None


def _coerce_delay(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def flight_iata_for(raw: Mapping[str, Any]) -> str:
    """Return the flight IATA code, building ``{airline}{number}`` if absent."""

    flight = _section(raw, "flight")
    explicit = _optional_text(flight.get("iata"))
    if explicit:
        return explicit
    airline = _section(raw, "airline")
    return f"{_text(airline.get('iata'))}{_text(flight.get('number'))}"


def _project(raw: Mapping[str, Any], direction: Direction) -> NormalizedFlight:
    departure = _section(raw, "departure")
    arrival = _section(raw, "arrival")
    airline = _section(raw, "airline")
    flight = _section(raw, "flight")
    side = departure if direction == "departure" else arrival

    return NormalizedFlight(
        flight_number=_text(flight.get("number")),
        flight_iata=flight_iata_for(raw),
        airline=_text(airline.get("name")),
        airline_iata=_optional_text(airline.get("iata")),
        origin=_text(departure.get("airport")),
        origin_iata=_text(departure.get("iata")).upper(),
        destination=_text(arrival.get("airport")),
        destination_iata=_text(arrival.get("iata")).upper(),
        scheduled=to_instant(side.get("scheduled")),
        estimated=to_instant(side.get("estimated")),
        timezone=_optional_text(side.get("timezone")) or DEFAULT_TIMEZONE,
        status=_text(raw.get("flight_status")).lower(),
        delay_minutes=_coerce_delay(side.get("delay")),
        direction=direction,
    )


def project_departure(raw: Mapping[str, Any]) -> NormalizedFlight:
    """Project a raw record for a departures board."""

    return _project(raw, "departure")


def project_arrival(raw: Mapping[str, Any]) -> NormalizedFlight:
    """Project a raw record for an arrivals board."""

    return _project(raw, "arrival")


def normalize_flights(
    records: Iterable[Any], direction: Direction
) -> List[NormalizedFlight]:
    if direction not in DIRECTIONS:
        raise ValueError(f"Unsupported direction: {direction!r}")
    project = project_departure if direction == "departure" else project_arrival
    return [project(record) for record in records if isinstance(record, Mapping)]


def status_label(status: str) -> str:
    return STATUS_LABELS.get(status, status)


def arrival_side_time(raw: Mapping[str, Any]) -> Optional[datetime]:
    """Return the estimated-or-scheduled arrival instant of a raw record."""

    arrival = _section(raw, "arrival")
    return to_instant(arrival.get("estimated")) or to_instant(arrival.get("scheduled"))


__all__ = [
    "DEFAULT_TIMEZONE",
    "DIRECTIONS",
    "Direction",
    "FLIGHT_STATUSES",
    "NormalizedFlight",
    "STATUS_LABELS",
    "arrival_side_time",
    "flight_iata_for",
    "normalize_flights",
    "project_arrival",
    "project_departure",
    "status_label",
]
