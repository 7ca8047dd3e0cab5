"""Drive-time lookups through the Google Distance Matrix API."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

import requests

from errors import FlightDataError, UpstreamError, ValidationError, as_error_payload
from settings import GoogleMapsConfig

LOGGER = logging.getLogger(__name__)


def _element(payload: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    rows = payload.get("rows")
    if not isinstance(rows, list) or not rows:
        return None
    elements = rows[0].get("elements") if isinstance(rows[0], Mapping) else None
    if not isinstance(elements, list) or not elements:
        return None
    return elements[0] if isinstance(elements[0], Mapping) else None


def parse_drive_seconds(payload: Any) -> int:
    """Extract the traffic-aware duration in seconds from a Distance Matrix reply."""

    if not isinstance(payload, Mapping):
        raise UpstreamError("Distance Matrix request failed")
    if payload.get("status") != "OK":
        raise UpstreamError(
            str(payload.get("error_message") or payload.get("status") or "Distance Matrix request failed")
        )

    element = _element(payload)
    if element is None or element.get("status") != "OK":
        raise UpstreamError("No route found or invalid addresses.")

    duration = element.get("duration_in_traffic") or element.get("duration") or {}
    seconds = duration.get("value") if isinstance(duration, Mapping) else None
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
        raise UpstreamError("Could not get duration.")
    return int(seconds)


def fetch_drive_seconds(
    config: GoogleMapsConfig,
    origin: str,
    destination: str,
    *,
    session: Optional[requests.Session] = None,
    now: Optional[datetime] = None,
) -> int:
    """Return the driving time from *origin* to *destination* under current traffic."""

    origin_text = (origin or "").strip()
    destination_text = (destination or "").strip()
    if not origin_text or not destination_text:
        raise ValidationError("Body must include 'origin' and 'destination' strings.")

    departure = now or datetime.now(timezone.utc)
    params = {
        "key": config.api_key,
        "origins": origin_text,
        "destinations": destination_text,
        "mode": "driving",
        "departure_time": str(int(departure.timestamp())),
        "traffic_model": "best_guess",
    }

    http = session or requests.Session()
    try:
        response = http.get(
            config.distance_matrix_url,
            params=params,
            timeout=config.timeout,
            verify=config.verify_ssl,
        )
        payload = response.json()
    except (requests.RequestException, ValueError) as exc:
        LOGGER.warning("Distance Matrix request failed: %s", exc)
        raise UpstreamError("Failed to get drive time") from exc
    finally:
        if session is None:
            http.close()

    try:
        seconds = parse_drive_seconds(payload)
    except UpstreamError as exc:
        LOGGER.warning("Distance Matrix error: %s", exc)
        raise
    LOGGER.debug("Drive time %ss to %s", seconds, destination_text)
    return seconds


def drive_time_payload(
    config: GoogleMapsConfig,
    origin: str,
    destination: str,
    *,
    session: Optional[requests.Session] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Drive-time lookup in payload form: ``{"durationSeconds": n}`` or ``{"error": str}``."""

    try:
        seconds = fetch_drive_seconds(config, origin, destination, session=session, now=now)
    except FlightDataError as exc:
        return as_error_payload(exc)
    return {"durationSeconds": seconds}


__all__ = ["drive_time_payload", "fetch_drive_seconds", "parse_drive_seconds"]
