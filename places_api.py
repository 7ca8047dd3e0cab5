"""Address suggestions for the driver's starting point."""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

import requests

from errors import UpstreamError
from settings import GoogleMapsConfig

LOGGER = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 3
MAX_SUGGESTIONS = 5


def parse_address_suggestions(payload: Any, *, limit: int = MAX_SUGGESTIONS) -> List[str]:
    if not isinstance(payload, Mapping):
        raise UpstreamError("Address lookup failed")
    status = payload.get("status")
    if status == "ZERO_RESULTS":
        return []
    if status != "OK":
        raise UpstreamError(str(payload.get("error_message") or status or "Address lookup failed"))

    suggestions: List[str] = []
    for prediction in payload.get("predictions") or []:
        if not isinstance(prediction, Mapping):
            continue
        description = str(prediction.get("description") or "").strip()
        if description and description not in suggestions:
            suggestions.append(description)
        if len(suggestions) >= limit:
            break
    return suggestions


def fetch_address_suggestions(
    config: GoogleMapsConfig,
    text: str,
    *,
    session: Optional[requests.Session] = None,
    limit: int = MAX_SUGGESTIONS,
) -> List[str]:
    """Return formatted street addresses matching the partial *text*.

    Queries shorter than three characters return no suggestions without a
    network call.
    """

    query = (text or "").strip()
    if len(query) < MIN_QUERY_LENGTH:
        return []

    http = session or requests.Session()
    try:
        response = http.get(
            config.places_autocomplete_url,
            params={"key": config.api_key, "input": query, "types": "address"},
            timeout=config.timeout,
            verify=config.verify_ssl,
        )
        payload = response.json()
    except (requests.RequestException, ValueError) as exc:
        LOGGER.warning("Places autocomplete request failed: %s", exc)
        raise UpstreamError("Address lookup failed") from exc
    finally:
        if session is None:
            http.close()

    return parse_address_suggestions(payload, limit=limit)


__all__ = ["fetch_address_suggestions", "parse_address_suggestions"]
