"""Utilities for interacting with the AviationStack flights API."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import requests

from errors import NotFoundError, UpstreamError, ValidationError
from flight_records import DIRECTIONS
from settings import AviationStackConfig

LOGGER = logging.getLogger(__name__)

BOARD_CACHE_TTL_SECONDS = 60
LOOKUP_CACHE_TTL_SECONDS = 120
_AIRPORT_CODE_RE = re.compile(r"^[A-Za-z]{3}$")


def validate_airport_code(airport: Optional[str]) -> str:
    """Return the upper-cased IATA code or raise :class:`ValidationError`."""

    code = (airport or "").strip()
    if not _AIRPORT_CODE_RE.match(code):
        raise ValidationError("Valid airport IATA code (3 letters) is required.")
    return code.upper()


def _error_message(payload: Any) -> Optional[str]:
    if not isinstance(payload, Mapping):
        return None
    error = payload.get("error")
    if isinstance(error, Mapping):
        return str(error.get("message") or error.get("info") or "") or None
    if error:
        return str(error)
    return None


def _build_params(
    config: AviationStackConfig, params: Sequence[Tuple[str, str]]
) -> List[Tuple[str, str]]:
    sequence: List[Tuple[str, str]] = [("access_key", config.access_key), *params]
    sequence_index = {name: idx for idx, (name, _) in enumerate(sequence)}
    for key, value in config.extra_params.items():
        if key in sequence_index:
            sequence[sequence_index[key]] = (key, value)
        else:
            sequence_index[key] = len(sequence)
            sequence.append((key, value))
    return sequence


def _request_flights(
    config: AviationStackConfig,
    params: Sequence[Tuple[str, str]],
    *,
    session: Optional[requests.Session],
    failure_message: str,
) -> Dict[str, Any]:
    http = session or requests.Session()
    try:
        response = http.get(
            config.base_url,
            params=_build_params(config, params),
            timeout=config.timeout,
            verify=config.verify_ssl,
        )
    except requests.RequestException as exc:
        LOGGER.warning("AviationStack request failed: %s", exc)
        raise UpstreamError(failure_message) from exc
    finally:
        if session is None:
            http.close()

    try:
        payload = response.json()
    except ValueError as exc:
        LOGGER.warning("AviationStack returned a non-JSON body (status %s)", response.status_code)
        raise UpstreamError(failure_message) from exc

    if response.status_code >= 400:
        message = _error_message(payload) or "AviationStack request failed"
        LOGGER.warning("AviationStack HTTP %s: %s", response.status_code, message)
        raise UpstreamError(message)

    message = _error_message(payload)
    if message is not None or (isinstance(payload, Mapping) and "error" in payload):
        LOGGER.warning("AviationStack error payload: %s", message)
        raise UpstreamError(message or "API error")

    if not isinstance(payload, Mapping):
        raise UpstreamError("Unsupported AviationStack payload structure")
    return dict(payload)


def _records(payload: Mapping[str, Any]) -> List[Dict[str, Any]]:
    data = payload.get("data")
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, Mapping)]


def fetch_flight_board(
    config: AviationStackConfig,
    airport: str,
    direction: str,
    *,
    session: Optional[requests.Session] = None,
) -> List[Dict[str, Any]]:
    """Return the raw departures or arrivals board for an airport."""

    code = validate_airport_code(airport)
    if direction not in DIRECTIONS:
        raise ValidationError("Query param 'type' must be 'departure' or 'arrival'.")
    airport_param = "dep_iata" if direction == "departure" else "arr_iata"

    LOGGER.debug("Fetching %s board for %s", direction, code)
    payload = _request_flights(
        config,
        [("limit", str(config.board_limit)), (airport_param, code)],
        session=session,
        failure_message="Failed to fetch flight data",
    )
    return _records(payload)


def select_passenger_flight(records: Sequence[Mapping[str, Any]]) -> Optional[Mapping[str, Any]]:
    """Prefer the first non-cancelled record with a scheduled arrival."""

    for record in records:
        arrival = record.get("arrival") if isinstance(record, Mapping) else None
        if (
            record.get("flight_status") != "cancelled"
            and isinstance(arrival, Mapping)
            and arrival.get("scheduled")
        ):
            return record
    return records[0] if records else None


def lookup_flight(
    config: AviationStackConfig,
    flight: str,
    *,
    session: Optional[requests.Session] = None,
) -> Dict[str, Any]:
    """Look up a passenger flight by IATA code such as ``AA1004``.

    Returns ``{"flight": record, "all": records}``.
    """

    code = (flight or "").strip().upper()
    if not code:
        raise ValidationError("Query param 'flight' is required (e.g. flight=AA1004).")

    LOGGER.debug("Looking up flight %s", code)
    payload = _request_flights(
        config,
        [("limit", str(config.lookup_limit)), ("flight_iata", code)],
        session=session,
        failure_message="Failed to lookup flight",
    )
    records = _records(payload)
    selected = select_passenger_flight(records)
    if selected is None:
        raise NotFoundError("Flight not found or no arrival data.")
    return {"flight": selected, "all": records}


__all__ = [
    "BOARD_CACHE_TTL_SECONDS",
    "LOOKUP_CACHE_TTL_SECONDS",
    "fetch_flight_board",
    "lookup_flight",
    "select_passenger_flight",
    "validate_airport_code",
]
