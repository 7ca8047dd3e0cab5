"""Error types raised by the flight board and pickup timing helpers."""

from __future__ import annotations

from typing import Any, Dict, Mapping


class FlightDataError(RuntimeError):
    """Raised when flight, drive-time or address data cannot be produced."""


class ConfigurationError(FlightDataError):
    """A credential or setting required by a provider is missing."""


class ValidationError(FlightDataError):
    """Caller input was rejected before any network request was issued."""


class UpstreamError(FlightDataError):
    """The provider returned an error payload or the transport failed."""


class NotFoundError(FlightDataError):
    """The provider answered successfully but nothing matched the request."""


def as_error_payload(exc: BaseException) -> Dict[str, str]:
    """Return the ``{"error": message}`` payload shared by every provider."""

    message = str(exc).strip() or exc.__class__.__name__
    return {"error": message}


def is_error_payload(payload: Any) -> bool:
    """Return ``True`` when *payload* is an error payload.

    Success and error payloads are told apart by the ``error`` key alone.
    """

    return isinstance(payload, Mapping) and "error" in payload


__all__ = [
    "ConfigurationError",
    "FlightDataError",
    "NotFoundError",
    "UpstreamError",
    "ValidationError",
    "as_error_payload",
    "is_error_payload",
]
