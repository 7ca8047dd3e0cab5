from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple, TypeVar

import streamlit as st

from aviationstack_api import BOARD_CACHE_TTL_SECONDS, fetch_flight_board
from core.airports import AirportOption, airport_directory, search_airports
from errors import ConfigurationError, FlightDataError, as_error_payload, is_error_payload
from flight_board import (
    SORT_LABELS,
    SORT_OPTIONS,
    STATUS_FILTER_LABELS,
    STATUS_FILTER_OPTIONS,
    FilterCriteria,
    build_board_view,
    flights_to_dataframe,
)
from flight_records import Direction, normalize_flights
from settings import (
    AVIATIONSTACK_SECRET_SECTION,
    AviationStackConfig,
    build_aviationstack_config,
)
from time_utils import format_timestamp_in_timezone


_PAGE_CONFIGURED_KEY = "_page_configured"
_DEFAULT_PAGE_TITLE = "Flight Tracker"
_DEFAULT_PAGE_ICON = "✈️"

ConfigT = TypeVar("ConfigT")


def get_secret(key: str, default: Any | None = None) -> Any:
    """Return a secret value if available, otherwise the provided default."""

    try:
        if key in st.secrets:
            return st.secrets[key]
    except FileNotFoundError:
        # ``st.secrets`` raises when no secrets file exists; treat it as empty.
        return default
    return default


def load_provider_config(
    builder: Callable[[Any], ConfigT], section: str
) -> Tuple[Optional[ConfigT], Optional[str]]:
    """Build a provider config from a secrets section.

    Returns ``(config, None)`` or ``(None, message)`` so a missing credential
    only disables the lookups that need it.
    """

    try:
        return builder(get_secret(section)), None
    except ConfigurationError as exc:
        return None, str(exc)


def provider_payload(loader: Callable[..., Dict[str, Any]], *args: Any) -> Dict[str, Any]:
    """Call a cached provider loader, turning failures into an error payload.

    Failures propagate out of ``st.cache_data`` uncached, so the next request
    for the same key reaches the provider again.
    """

    try:
        return loader(*args)
    except FlightDataError as exc:
        return as_error_payload(exc)


def _hide_builtin_sidebar_nav() -> None:
    """Remove Streamlit's default page navigator from the sidebar."""

    st.markdown(
        """
        <style>
            section[data-testid="stSidebar"] div[data-testid="stSidebarNav"] {
                display: none;
            }
            section[data-testid="stSidebar"] div[data-testid="stSidebarNav"] + div {
                padding-top: 0;
            }
        </style>
        """,
        unsafe_allow_html=True,
    )


def configure_page(*, page_title: str | None = None) -> None:
    """Set the Streamlit page configuration once per run."""

    if not st.session_state.get(_PAGE_CONFIGURED_KEY):
        st.set_page_config(
            page_title=page_title or _DEFAULT_PAGE_TITLE,
            page_icon=_DEFAULT_PAGE_ICON,
            layout="wide",
        )
        st.session_state[_PAGE_CONFIGURED_KEY] = True

    _hide_builtin_sidebar_nav()


def _sidebar_links() -> list[dict[str, Any]]:
    return [
        {"path": "Home.py", "label": "🛫 Departures & Arrivals"},
        {"path": "pages/Pickup Timing.py", "label": "🚗 Pickup Timing"},
    ]


def render_sidebar() -> None:
    """Display the custom navigation sidebar."""

    st.sidebar.title("🧭 Navigation")
    for link in _sidebar_links():
        st.sidebar.page_link(link["path"], label=link["label"])

    st.sidebar.markdown("---")
    st.sidebar.caption("Flight data: AviationStack • Drive times: Google Maps")


@st.cache_data(show_spinner=False, ttl=BOARD_CACHE_TTL_SECONDS)
def _cached_board_records(
    _config: AviationStackConfig, airport: str, direction: str
) -> Dict[str, Any]:
    return {"data": fetch_flight_board(_config, airport, direction)}


def board_payload(config: AviationStackConfig, airport: str, direction: str) -> Dict[str, Any]:
    return provider_payload(_cached_board_records, config, airport, direction)


def _select_airport() -> Optional[AirportOption]:
    query = st.text_input(
        "Search airport",
        placeholder="Airport name, code or city (e.g. LAX, Heathrow, Tokyo)",
    )
    matches = search_airports(query)
    if not matches:
        st.info("No airports match that search.")
        return None
    return st.selectbox(
        "Airport",
        matches,
        format_func=lambda airport: airport.label,
        key="board_airport",
    )


def _board_criteria(direction: Direction, upcoming: bool, view_options) -> FilterCriteria:
    prefix = f"board_{direction}"
    place_label = "Destination" if direction == "departure" else "Origin"

    airline_col, place_col, status_col, sort_col = st.columns(4)
    with airline_col:
        airline = st.selectbox(
            "Airline",
            [""] + view_options.airline_options,
            format_func=lambda value: value or "All airlines",
            key=f"{prefix}_airline",
        )
    with place_col:
        place_codes = [""] + [code for code, _ in view_options.place_options]
        place_names = dict(view_options.place_options)
        place = st.selectbox(
            place_label,
            place_codes,
            format_func=lambda code: f"{code} — {place_names[code]}" if code else f"All {place_label.lower()}s",
            key=f"{prefix}_place",
        )
    with status_col:
        status = st.selectbox(
            "Status",
            STATUS_FILTER_OPTIONS,
            format_func=lambda value: STATUS_FILTER_LABELS[value],
            key=f"{prefix}_status",
        )
    with sort_col:
        sort_by = st.selectbox(
            "Sort by",
            SORT_OPTIONS,
            format_func=lambda value: SORT_LABELS[value],
            key=f"{prefix}_sort",
        )
    return FilterCriteria(
        upcoming=upcoming, airline=airline, place=place, status=status, sort_by=sort_by
    )


def _render_board(
    direction: Direction,
    payload: Dict[str, Any],
    airport: AirportOption,
    upcoming: bool,
) -> None:
    heading = "↑ Departures" if direction == "departure" else "↓ Arrivals"
    if is_error_payload(payload):
        st.subheader(heading)
        st.error(payload["error"])
        return

    flights = normalize_flights(payload.get("data") or [], direction)
    now = datetime.now(timezone.utc)
    # Options come from the time window alone, before the dropdown selections.
    options_view = build_board_view(
        flights, FilterCriteria(upcoming=upcoming), airport.timezone, direction, now=now
    )
    criteria = _board_criteria(direction, upcoming, options_view)
    view = build_board_view(flights, criteria, airport.timezone, direction, now=now)

    st.subheader(f"{heading} ({len(view.flights)})")
    boundary = "since" if upcoming else "before"
    st.caption(
        f"{len(view.flights)} of {view.window_total} flights {boundary} "
        f"{format_timestamp_in_timezone(view.cutoff, airport.timezone)} local time"
    )
    if not view.flights:
        st.info(f"No {direction}s found for this airport.")
        return
    st.dataframe(flights_to_dataframe(view.flights), hide_index=True, use_container_width=True)


def main() -> None:
    configure_page()
    render_sidebar()

    st.title("✈️ Flight Tracker")
    st.caption("Search by airport name or code to see live departures and arrivals.")

    if not airport_directory():
        st.error("The airport directory is empty.")
        st.stop()

    airport = _select_airport()
    if airport is None:
        st.stop()

    config, config_error = load_provider_config(
        build_aviationstack_config, AVIATIONSTACK_SECRET_SECTION
    )
    if config is None:
        st.error(config_error)
        st.stop()

    st.markdown(f"**{airport.name} ({airport.code})** — {airport.city}")
    window = st.radio(
        "Time window",
        ("Upcoming", "Historical"),
        horizontal=True,
        help="Upcoming starts at midnight today in the airport's local time.",
    )
    upcoming = window == "Upcoming"

    with st.spinner("Loading flights…"):
        departures = board_payload(config, airport.code, "departure")
        arrivals = board_payload(config, airport.code, "arrival")

    departures_tab, arrivals_tab = st.tabs(["Departures", "Arrivals"])
    with departures_tab:
        _render_board("departure", departures, airport, upcoming)
    with arrivals_tab:
        _render_board("arrival", arrivals, airport, upcoming)

    st.caption(
        "Times shown in the airport's local time • Last updated "
        f"{format_timestamp_in_timezone(datetime.now(timezone.utc), airport.timezone)}"
    )


if __name__ == "__main__":
    main()
