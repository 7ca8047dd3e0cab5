import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import quote

import streamlit as st

from aviationstack_api import (
    BOARD_CACHE_TTL_SECONDS,
    LOOKUP_CACHE_TTL_SECONDS,
    fetch_flight_board,
    lookup_flight,
)
from distance_matrix_api import drive_time_payload
from errors import FlightDataError, is_error_payload
from flight_records import arrival_side_time, flight_iata_for
from Home import configure_page, load_provider_config, provider_payload, render_sidebar
from pickup_timing import (
    COUNTDOWN_TICK_SECONDS,
    LANDING_WINDOW_MIN,
    PickupSession,
    countdown_seconds,
    format_countdown,
)
from places_api import fetch_address_suggestions
from settings import (
    AVIATIONSTACK_SECRET_SECTION,
    GOOGLE_MAPS_SECRET_SECTION,
    AviationStackConfig,
    build_aviationstack_config,
    build_google_maps_config,
)
from time_utils import format_in_timezone

configure_page(page_title="Pickup Timing")
render_sidebar()

SESSION_KEY = "pickup_session"
SESSION_FLIGHT_KEY = "pickup_session_flight"


@st.cache_data(show_spinner=False, ttl=LOOKUP_CACHE_TTL_SECONDS)
def _cached_lookup(_config: AviationStackConfig, flight: str) -> Dict[str, Any]:
    return lookup_flight(_config, flight)


@st.cache_data(show_spinner=False, ttl=BOARD_CACHE_TTL_SECONDS)
def _cached_arrivals(_config: AviationStackConfig, airport: str) -> Dict[str, Any]:
    return {"data": fetch_flight_board(_config, airport, "arrival")}


def _flight_summary(flight: Dict[str, Any], *, prefix: str) -> None:
    arrival = flight.get("arrival") or {}
    tz = arrival.get("timezone") or "UTC"
    st.markdown(f"**{flight_iata_for(flight)}** — {(flight.get('airline') or {}).get('name', '')}")
    st.write(
        f"{prefix} {format_in_timezone(arrival_side_time(flight), tz, 'datetime')} "
        f"at {arrival.get('airport', '')} ({arrival.get('iata', '')})"
    )


def _passenger_mode(config: AviationStackConfig) -> None:
    st.caption("Passenger mode: enter a flight number to get a shareable link for your driver.")
    with st.form("passenger_lookup"):
        code = st.text_input("Flight number", placeholder="Flight number (e.g. AA1004 or VS4593)")
        submitted = st.form_submit_button("Look up flight")

    if not submitted:
        return
    code = code.strip().upper()
    if not code:
        st.error("Enter a flight number to continue.")
        return

    with st.spinner("Looking up…"):
        payload = provider_payload(_cached_lookup, config, code)
    if is_error_payload(payload):
        st.error(payload["error"])
        return

    _flight_summary(payload["flight"], prefix="Arrives")
    share_link = f"?flight={quote(code)}"
    st.markdown(f"Share this link with your driver: [{share_link}]({share_link})")
    st.code(share_link)


def _pickup_session(flight_code: str) -> PickupSession:
    session = st.session_state.get(SESSION_KEY)
    if session is None or st.session_state.get(SESSION_FLIGHT_KEY) != flight_code:
        session = PickupSession()
        st.session_state[SESSION_KEY] = session
        st.session_state[SESSION_FLIGHT_KEY] = flight_code
    return session


def _refresh_flight(session: PickupSession, config: AviationStackConfig, flight_code: str) -> None:
    with st.spinner("Loading flight…"):
        session.apply_flight_payload(provider_payload(_cached_lookup, config, flight_code))
    _refresh_arrivals(session, config)


def _refresh_arrivals(session: PickupSession, config: AviationStackConfig) -> None:
    request = session.request_arrivals()
    if request is None:
        return
    session.apply_arrivals_payload(
        provider_payload(_cached_arrivals, config, request.airport_iata), request.token
    )


def _address_input(maps_config) -> str:
    address = st.text_input(
        "Your address (driver)",
        placeholder="Start typing your address…",
        key="pickup_address_query",
    )
    if maps_config is None or not address.strip():
        return address
    try:
        suggestions = fetch_address_suggestions(maps_config, address)
    except FlightDataError as exc:
        st.caption(f"Address suggestions unavailable: {exc}")
        return address
    if not suggestions or suggestions == [address.strip()]:
        return address
    choice = st.selectbox(
        "Matching addresses",
        [""] + suggestions,
        format_func=lambda value: value or "Use the address as typed",
        key="pickup_address_choice",
    )
    return choice or address


def _update_drive_time(session: PickupSession, maps_config, maps_error: Optional[str]) -> None:
    request = session.due_drive_request()
    if request is None and session.drive_pending:
        # A newer edit reruns the script and abandons this wait.
        with st.spinner("Getting drive time…"):
            time.sleep(session.drive_settle_remaining())
        request = session.due_drive_request()
    if request is None:
        return
    if maps_config is None:
        session.apply_drive_time_payload({"error": maps_error or "Drive time unavailable."}, request.token)
        return
    with st.spinner("Getting drive time…"):
        payload = drive_time_payload(maps_config, request.origin, request.destination)
    session.apply_drive_time_payload(payload, request.token)


@st.fragment(run_every=COUNTDOWN_TICK_SECONDS)
def _render_countdown(leave_by: datetime) -> None:
    seconds = countdown_seconds(datetime.now(timezone.utc), leave_by)
    if seconds <= 0:
        st.warning("Leave now")
    else:
        st.write(f"Time until leave: {format_countdown(seconds)}")


def _driver_mode(config: AviationStackConfig, flight_code: str) -> None:
    st.caption("Driver mode: enter your address to see when to leave.")
    session = _pickup_session(flight_code)

    if session.flight is None and session.flight_error is None:
        _refresh_flight(session, config, flight_code)
    if st.button("Refresh flight & arrivals"):
        _cached_lookup.clear()
        _cached_arrivals.clear()
        _refresh_flight(session, config, flight_code)

    if session.flight_error:
        st.error(session.flight_error)
        return
    if session.flight is None:
        return

    _flight_summary(session.flight, prefix="Est. landing")
    if session.arrivals_error:
        st.warning(f"Arrivals unavailable, using the base baggage estimate: {session.arrivals_error}")
    st.caption(
        f"Baggage estimate: {session.baggage_wait_minutes} min "
        f"({session.other_arrivals} other flights within {LANDING_WINDOW_MIN} min)"
    )

    maps_config, maps_error = load_provider_config(build_google_maps_config, GOOGLE_MAPS_SECRET_SECTION)
    if maps_error:
        st.warning(maps_error)

    session.set_address(_address_input(maps_config))
    _update_drive_time(session, maps_config, maps_error)

    if session.drive_error:
        st.error(session.drive_error)
    if session.drive_minutes is not None:
        st.write(f"Drive time: ~{session.drive_minutes} min")

    if session.leave_by is not None:
        st.subheader("Leave by")
        st.markdown(f"### {session.leave_by_label()}")
        _render_countdown(session.leave_by)

    if st.button("Notify me"):
        label = session.leave_by_label()
        st.toast(f"Leave at {label}" if label else "Set your address to see leave time.")


st.title("🚗 Pickup Timing")

aviation_config, aviation_error = load_provider_config(
    build_aviationstack_config, AVIATIONSTACK_SECRET_SECTION
)
if aviation_config is None:
    st.error(aviation_error)
    st.stop()

flight_param = str(st.query_params.get("flight", "") or "").strip().upper()
if flight_param:
    _driver_mode(aviation_config, flight_param)
else:
    _passenger_mode(aviation_config)
