"""Tests for helpers in :mod:`flight_records`."""

from __future__ import annotations

import copy
import pathlib
import sys
from datetime import datetime, timezone

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

from flight_records import (
    arrival_side_time,
    flight_iata_for,
    normalize_flights,
    project_arrival,
    project_departure,
    status_label,
)

UTC = timezone.utc

RAW_FLIGHT = {
    "flight_date": "2026-02-23",
    "flight_status": "scheduled",
    "departure": {
        "airport": "Los Angeles International",
        "timezone": "America/Los_Angeles",
        "iata": "LAX",
        "delay": 12,
        "scheduled": "2026-02-24T01:06:00+00:00",
        "estimated": "2026-02-24T01:18:00+00:00",
    },
    "arrival": {
        "airport": "John F. Kennedy International",
        "timezone": "America/New_York",
        "iata": "JFK",
        "delay": None,
        "scheduled": "2026-02-24T09:30:00+00:00",
        "estimated": None,
    },
    "airline": {"name": "American Airlines", "iata": "AA", "icao": "AAL"},
    "flight": {"number": "1004", "iata": "AA1004", "icao": "AAL1004"},
}


def test_project_departure_uses_departure_side() -> None:
    flight = project_departure(RAW_FLIGHT)

    assert flight.direction == "departure"
    assert flight.timezone == "America/Los_Angeles"
    assert flight.scheduled == datetime(2026, 2, 24, 1, 6, tzinfo=UTC)
    assert flight.estimated == datetime(2026, 2, 24, 1, 18, tzinfo=UTC)
    assert flight.delay_minutes == 12
    assert flight.flight_iata == "AA1004"
    assert flight.airline == "American Airlines"
    assert (flight.origin_iata, flight.destination_iata) == ("LAX", "JFK")
    assert flight.other_end_iata == "JFK"
    assert flight.other_end_name == "John F. Kennedy International"


def test_project_arrival_uses_arrival_side() -> None:
    flight = project_arrival(RAW_FLIGHT)

    assert flight.direction == "arrival"
    assert flight.timezone == "America/New_York"
    assert flight.scheduled == datetime(2026, 2, 24, 9, 30, tzinfo=UTC)
    assert flight.estimated is None
    assert flight.effective_time == flight.scheduled
    assert flight.delay_minutes is None
    assert flight.origin == "Los Angeles International"
    assert flight.destination == "John F. Kennedy International"
    assert flight.other_end_iata == "LAX"


def test_flight_iata_defaults_to_airline_code_and_number() -> None:
    raw = copy.deepcopy(RAW_FLIGHT)
    raw["flight"]["iata"] = None

    assert flight_iata_for(raw) == "AA1004"
    assert project_arrival(raw).flight_iata == "AA1004"


def test_missing_timezone_falls_back_to_utc() -> None:
    raw = copy.deepcopy(RAW_FLIGHT)
    raw["arrival"]["timezone"] = None

    assert project_arrival(raw).timezone == "UTC"
    assert project_departure(raw).timezone == "America/Los_Angeles"


def test_projection_does_not_mutate_raw_record() -> None:
    raw = copy.deepcopy(RAW_FLIGHT)

    project_departure(raw)
    project_arrival(raw)

    assert raw == RAW_FLIGHT


def test_normalize_flights_skips_non_mapping_entries() -> None:
    flights = normalize_flights([RAW_FLIGHT, None, "junk"], "arrival")

    assert len(flights) == 1
    assert flights[0].direction == "arrival"


def test_normalize_flights_rejects_unknown_direction() -> None:
    with pytest.raises(ValueError):
        normalize_flights([RAW_FLIGHT], "sideways")


def test_status_labels() -> None:
    assert status_label("active") == "In flight"
    assert status_label("cancelled") == "Cancelled"
    assert status_label("mystery") == "mystery"


def test_arrival_side_time_prefers_estimate() -> None:
    raw = copy.deepcopy(RAW_FLIGHT)

    assert arrival_side_time(raw) == datetime(2026, 2, 24, 9, 30, tzinfo=UTC)
    raw["arrival"]["estimated"] = "2026-02-24T09:45:00+0000"
    assert arrival_side_time(raw) == datetime(2026, 2, 24, 9, 45, tzinfo=UTC)
