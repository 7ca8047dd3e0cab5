from __future__ import annotations

import pathlib
import sys

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

from errors import ConfigurationError, FlightDataError, as_error_payload, is_error_payload
from settings import (
    DEFAULT_AVIATIONSTACK_BASE_URL,
    build_aviationstack_config,
    build_google_maps_config,
)


def test_build_aviationstack_config_coerces_values() -> None:
    config = build_aviationstack_config(
        {
            "access_key": " key ",
            "timeout": "10",
            "verify_ssl": "false",
            "board_limit": "25",
            "extra_params": {"flight_status": "active"},
        },
        environ={},
    )

    assert config.access_key == "key"
    assert config.base_url == DEFAULT_AVIATIONSTACK_BASE_URL
    assert config.timeout == 10
    assert config.verify_ssl is False
    assert config.board_limit == 25
    assert config.lookup_limit == 5
    assert config.extra_params == {"flight_status": "active"}


def test_build_aviationstack_config_falls_back_to_environment() -> None:
    config = build_aviationstack_config(None, environ={"AVIATIONSTACK_API_KEY": "from-env"})

    assert config.access_key == "from-env"
    assert config.timeout == 30


def test_missing_keys_raise_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="AVIATIONSTACK_API_KEY"):
        build_aviationstack_config({}, environ={})
    with pytest.raises(ConfigurationError, match="GOOGLE_MAPS_API_KEY"):
        build_google_maps_config({"api_key": "  "}, environ={})


def test_build_google_maps_config() -> None:
    config = build_google_maps_config({"timeout": "bad"}, environ={"GOOGLE_MAPS_API_KEY": "maps"})

    assert config.api_key == "maps"
    assert config.timeout == 30
    assert config.distance_matrix_url.endswith("/distancematrix/json")


def test_error_payload_helpers() -> None:
    assert as_error_payload(ConfigurationError("missing key")) == {"error": "missing key"}
    assert as_error_payload(FlightDataError()) == {"error": "FlightDataError"}
    assert is_error_payload({"error": ""})
    assert not is_error_payload({"data": []})
    assert not is_error_payload(None)
