from __future__ import annotations

import pathlib
import sys

import pytest
import requests

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

from aviationstack_api import (
    fetch_flight_board,
    lookup_flight,
    select_passenger_flight,
    validate_airport_code,
)
from errors import NotFoundError, UpstreamError, ValidationError
from settings import AviationStackConfig


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, *, invalid_json: bool = False):
        self.status_code = status_code
        self._payload = payload if payload is not None else {"data": []}
        self._invalid_json = invalid_json

    def json(self):
        if self._invalid_json:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None, verify=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout, "verify": verify})
        if not self.responses:
            raise RuntimeError("No response queued")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        pass


CONFIG = AviationStackConfig(access_key="secret", timeout=12)


def _record(code: str, status: str = "scheduled", scheduled="2026-02-24T14:00:00+00:00"):
    return {
        "flight_status": status,
        "arrival": {"iata": "LAX", "scheduled": scheduled},
        "flight": {"iata": code},
    }


def test_validate_airport_code() -> None:
    assert validate_airport_code(" lax ") == "LAX"
    for bad in ("", None, "LA", "LAXX", "L4X"):
        with pytest.raises(ValidationError):
            validate_airport_code(bad)


def test_fetch_departure_board_filters_on_departure_airport() -> None:
    records = [_record("AA1"), _record("AA2")]
    session = FakeSession([FakeResponse(payload={"data": records + ["junk"]})])

    result = fetch_flight_board(CONFIG, "lax", "departure", session=session)

    assert result == records
    call = session.calls[0]
    assert call["url"] == CONFIG.base_url
    assert call["params"] == [("access_key", "secret"), ("limit", "50"), ("dep_iata", "LAX")]
    assert call["timeout"] == 12
    assert call["verify"] is True


def test_fetch_arrival_board_uses_arrival_airport() -> None:
    session = FakeSession([FakeResponse()])

    assert fetch_flight_board(CONFIG, "JFK", "arrival", session=session) == []
    assert ("arr_iata", "JFK") in session.calls[0]["params"]


def test_extra_params_override_and_extend_query() -> None:
    config = AviationStackConfig(access_key="secret", extra_params={"limit": "10", "flight_status": "active"})
    session = FakeSession([FakeResponse()])

    fetch_flight_board(config, "JFK", "arrival", session=session)

    assert session.calls[0]["params"] == [
        ("access_key", "secret"),
        ("limit", "10"),
        ("arr_iata", "JFK"),
        ("flight_status", "active"),
    ]


def test_invalid_airport_never_reaches_the_network() -> None:
    session = FakeSession([])

    with pytest.raises(ValidationError):
        fetch_flight_board(CONFIG, "LA", "departure", session=session)
    with pytest.raises(ValidationError):
        fetch_flight_board(CONFIG, "LAX", "overhead", session=session)
    assert session.calls == []


def test_provider_error_payload_raises_with_its_message() -> None:
    session = FakeSession([FakeResponse(payload={"error": {"code": "invalid_access_key", "message": "Invalid key"}})])

    with pytest.raises(UpstreamError, match="Invalid key"):
        fetch_flight_board(CONFIG, "LAX", "departure", session=session)


def test_http_error_status_raises() -> None:
    session = FakeSession([FakeResponse(status_code=500, payload={})])

    with pytest.raises(UpstreamError, match="AviationStack request failed"):
        fetch_flight_board(CONFIG, "LAX", "departure", session=session)


def test_transport_failure_and_bad_json_raise_upstream_error() -> None:
    session = FakeSession([requests.ConnectionError("boom"), FakeResponse(invalid_json=True)])

    with pytest.raises(UpstreamError, match="Failed to fetch flight data"):
        fetch_flight_board(CONFIG, "LAX", "departure", session=session)
    with pytest.raises(UpstreamError, match="Failed to fetch flight data"):
        fetch_flight_board(CONFIG, "LAX", "departure", session=session)


def test_select_passenger_flight_skips_cancelled_and_unscheduled() -> None:
    cancelled = _record("AA1", status="cancelled")
    unscheduled = _record("AA1", scheduled=None)
    good = _record("AA1", status="active")

    assert select_passenger_flight([cancelled, unscheduled, good]) is good
    assert select_passenger_flight([cancelled]) is cancelled
    assert select_passenger_flight([]) is None


def test_lookup_flight_returns_selected_and_all_records() -> None:
    records = [_record("AA1004", status="cancelled"), _record("AA1004")]
    session = FakeSession([FakeResponse(payload={"data": records})])

    result = lookup_flight(CONFIG, " aa1004 ", session=session)

    assert result == {"flight": records[1], "all": records}
    assert session.calls[0]["params"] == [
        ("access_key", "secret"),
        ("limit", "5"),
        ("flight_iata", "AA1004"),
    ]


def test_lookup_flight_errors() -> None:
    with pytest.raises(ValidationError):
        lookup_flight(CONFIG, "  ", session=FakeSession([]))
    with pytest.raises(NotFoundError, match="Flight not found"):
        lookup_flight(CONFIG, "AA1004", session=FakeSession([FakeResponse()]))

