"""Provider configuration resolved from Streamlit secrets or the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from errors import ConfigurationError

DEFAULT_AVIATIONSTACK_BASE_URL = "https://api.aviationstack.com/v1/flights"
DEFAULT_DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"
DEFAULT_PLACES_AUTOCOMPLETE_URL = "https://maps.googleapis.com/maps/api/place/autocomplete/json"

AVIATIONSTACK_SECRET_SECTION = "aviationstack"
GOOGLE_MAPS_SECRET_SECTION = "google_maps"
AVIATIONSTACK_ENV_VAR = "AVIATIONSTACK_API_KEY"
GOOGLE_MAPS_ENV_VAR = "GOOGLE_MAPS_API_KEY"


@dataclass(frozen=True)
class AviationStackConfig:
    """Configuration for issuing requests to the AviationStack flights API."""

    access_key: str
    base_url: str = DEFAULT_AVIATIONSTACK_BASE_URL
    timeout: int = 30
    verify_ssl: bool = True
    board_limit: int = 50
    lookup_limit: int = 5
    extra_params: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class GoogleMapsConfig:
    """Configuration shared by the Distance Matrix and Places lookups."""

    api_key: str
    distance_matrix_url: str = DEFAULT_DISTANCE_MATRIX_URL
    places_autocomplete_url: str = DEFAULT_PLACES_AUTOCOMPLETE_URL
    timeout: int = 30
    verify_ssl: bool = True


def _coerce_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return default


def _coerce_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _settings_dict(settings: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    if not settings:
        return {}
    try:
        return dict(settings)
    except (TypeError, ValueError):
        return {}


def build_aviationstack_config(
    settings: Optional[Mapping[str, Any]],
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> AviationStackConfig:
    """Build the flight provider config, falling back to ``AVIATIONSTACK_API_KEY``."""

    env = os.environ if environ is None else environ
    values = _settings_dict(settings)
    access_key = str(values.get("access_key") or env.get(AVIATIONSTACK_ENV_VAR) or "").strip()
    if not access_key:
        raise ConfigurationError(
            "AVIATIONSTACK_API_KEY is not configured. Add it under [aviationstack] in "
            "`.streamlit/secrets.toml` or export it in the environment."
        )

    extra_params = values.get("extra_params")
    if isinstance(extra_params, Mapping):
        sanitized_params = {str(k): str(v) for k, v in extra_params.items()}
    else:
        sanitized_params = {}

    return AviationStackConfig(
        access_key=access_key,
        base_url=str(values.get("base_url") or DEFAULT_AVIATIONSTACK_BASE_URL),
        timeout=_coerce_int(values.get("timeout"), 30),
        verify_ssl=_coerce_bool(values.get("verify_ssl"), True),
        board_limit=_coerce_int(values.get("board_limit"), 50),
        lookup_limit=_coerce_int(values.get("lookup_limit"), 5),
        extra_params=sanitized_params,
    )


def build_google_maps_config(
    settings: Optional[Mapping[str, Any]],
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> GoogleMapsConfig:
    """Build the drive-time/address config, falling back to ``GOOGLE_MAPS_API_KEY``."""

    env = os.environ if environ is None else environ
    values = _settings_dict(settings)
    api_key = str(values.get("api_key") or env.get(GOOGLE_MAPS_ENV_VAR) or "").strip()
    if not api_key:
        raise ConfigurationError(
            "GOOGLE_MAPS_API_KEY is not configured. Add it under [google_maps] in "
            "`.streamlit/secrets.toml` or export it in the environment."
        )
    return GoogleMapsConfig(
        api_key=api_key,
        distance_matrix_url=str(values.get("distance_matrix_url") or DEFAULT_DISTANCE_MATRIX_URL),
        places_autocomplete_url=str(
            values.get("places_autocomplete_url") or DEFAULT_PLACES_AUTOCOMPLETE_URL
        ),
        timeout=_coerce_int(values.get("timeout"), 30),
        verify_ssl=_coerce_bool(values.get("verify_ssl"), True),
    )


__all__ = [
    "AVIATIONSTACK_ENV_VAR",
    "AVIATIONSTACK_SECRET_SECTION",
    "AviationStackConfig",
    "DEFAULT_AVIATIONSTACK_BASE_URL",
    "DEFAULT_DISTANCE_MATRIX_URL",
    "DEFAULT_PLACES_AUTOCOMPLETE_URL",
    "GOOGLE_MAPS_ENV_VAR",
    "GOOGLE_MAPS_SECRET_SECTION",
    "GoogleMapsConfig",
    "build_aviationstack_config",
    "build_google_maps_config",
]
