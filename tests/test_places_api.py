from __future__ import annotations

import pathlib
import sys

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

from errors import UpstreamError
from places_api import fetch_address_suggestions, parse_address_suggestions
from settings import GoogleMapsConfig


class FakeResponse:
    def __init__(self, payload):
        self.status_code = 200
        self._payload = payload

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None, verify=None):
        self.calls.append({"url": url, "params": params})
        return self.responses.pop(0)

    def close(self):
        pass


CONFIG = GoogleMapsConfig(api_key="maps-key")


def test_short_queries_skip_the_network() -> None:
    session = FakeSession([])

    assert fetch_address_suggestions(CONFIG, " 1 ", session=session) == []
    assert session.calls == []


def test_suggestions_are_deduplicated_and_limited() -> None:
    payload = {
        "status": "OK",
        "predictions": [
            {"description": "1 Main St, Springfield, IL, USA"},
            {"description": "1 Main St, Springfield, IL, USA"},
            {"description": "1 Main St, Springfield, MA, USA"},
            {"description": ""},
            {"description": "1 Main St, Springfield, MO, USA"},
        ],
    }
    session = FakeSession([FakeResponse(payload)])

    suggestions = fetch_address_suggestions(CONFIG, "1 Main St", session=session, limit=2)

    assert suggestions == ["1 Main St, Springfield, IL, USA", "1 Main St, Springfield, MA, USA"]
    assert session.calls[0]["params"] == {"key": "maps-key", "input": "1 Main St", "types": "address"}


def test_zero_results_and_errors() -> None:
    assert parse_address_suggestions({"status": "ZERO_RESULTS", "predictions": []}) == []
    with pytest.raises(UpstreamError, match="REQUEST_DENIED"):
        parse_address_suggestions({"status": "REQUEST_DENIED"})
