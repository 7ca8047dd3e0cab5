"""Leave-by estimation for picking a passenger up at the airport.

The estimate is ``landing + baggage wait - drive time``. Baggage wait grows
with the number of other flights landing around the same time, and drive
time comes from a live traffic lookup. :class:`PickupSession` holds the
latest inputs of one pickup and rebuilds every derived value from them
whenever an input changes.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Generic, Iterable, List, Mapping, Optional, Tuple, TypeVar

from errors import is_error_payload
from flight_records import DEFAULT_TIMEZONE, arrival_side_time, flight_iata_for
from time_utils import format_in_timezone, to_instant

BAGGAGE_BASE_MIN = 20
BAGGAGE_EXTRA_PER_3_FLIGHTS = 5
BAGGAGE_FLIGHTS_PER_STEP = 3
LANDING_WINDOW_MIN = 30
ADDRESS_DEBOUNCE_SECONDS = 0.6
COUNTDOWN_TICK_SECONDS = 1

T = TypeVar("T")


@dataclass(frozen=True)
class PickupEstimate:
    landing: datetime
    baggage_wait_minutes: int
    drive_minutes: int
    leave_by: datetime


def count_concurrent_arrivals(
    landing: Optional[datetime],
    arrivals: Iterable[Mapping[str, Any]],
    *,
    window_minutes: int = LANDING_WINDOW_MIN,
) -> int:
    """Count arrivals landing within ``±window_minutes`` of *landing*.

    The passenger's own record is counted too when it is in *arrivals*.
    """

    if landing is None:
        return 0
    window = timedelta(minutes=window_minutes)
    matches = 0
    for record in arrivals:
        if not isinstance(record, Mapping):
            continue
        moment = arrival_side_time(record)
        if moment is not None and abs(moment - landing) <= window:
            matches += 1
    return matches


def other_arrivals_count(concurrent_matches: int) -> int:
    """Exclude the passenger's own flight from a concurrent-arrivals count."""

    return max(0, concurrent_matches - 1)


def estimate_baggage_wait_minutes(other_count: int) -> int:
    """Base wait plus five minutes for every full group of three other flights."""

    groups = max(0, other_count) // BAGGAGE_FLIGHTS_PER_STEP
    return BAGGAGE_BASE_MIN + groups * BAGGAGE_EXTRA_PER_3_FLIGHTS


def compute_leave_by(
    landing: datetime, baggage_wait_minutes: float, drive_minutes: float
) -> datetime:
    # A result in the past is valid and means "leave now".
    return landing + timedelta(minutes=baggage_wait_minutes) - timedelta(minutes=drive_minutes)


def countdown_seconds(now: datetime, leave_by: datetime) -> int:
    remaining = (leave_by - now).total_seconds()
    return max(0, math.floor(remaining))


def format_countdown(seconds: int) -> str:
    if seconds <= 0:
        return "Leave now"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs}s"


def drive_minutes_from_seconds(seconds: float) -> int:
    return int(math.ceil(seconds / 60))


def derive_estimate(
    landing: Optional[datetime],
    baggage_wait_minutes: int,
    drive_minutes: Optional[int],
) -> Optional[PickupEstimate]:
    """Return the leave-by estimate, or ``None`` until every input is known."""

    if landing is None or drive_minutes is None or drive_minutes < 0:
        return None
    return PickupEstimate(
        landing=landing,
        baggage_wait_minutes=baggage_wait_minutes,
        drive_minutes=drive_minutes,
        leave_by=compute_leave_by(landing, baggage_wait_minutes, drive_minutes),
    )


class LatestRequestGuard:
    """Hands out request tokens; only the newest token may update state."""

    def __init__(self) -> None:
        self._latest = 0

    @property
    def latest(self) -> int:
        return self._latest

    def issue(self) -> int:
        self._latest += 1
        return self._latest

    def is_current(self, token: Optional[int]) -> bool:
        return token is not None and token == self._latest


class Debouncer(Generic[T]):
    """Release a submitted value once it has been stable for ``delay`` seconds.

    Each :meth:`submit` supersedes the pending value and issues a new token,
    so replies to superseded requests can be recognised and dropped.
    """

    def __init__(
        self,
        delay: float = ADDRESS_DEBOUNCE_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.delay = delay
        self._clock = clock
        self.guard = LatestRequestGuard()
        self._pending: Optional[Tuple[int, T, float]] = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def submit(self, value: T, now: Optional[float] = None) -> int:
        token = self.guard.issue()
        submitted_at = self._clock() if now is None else now
        self._pending = (token, value, submitted_at)
        return token

    def remaining(self, now: Optional[float] = None) -> float:
        if self._pending is None:
            return 0.0
        current = self._clock() if now is None else now
        return max(0.0, self._pending[2] + self.delay - current)

    def due(self, now: Optional[float] = None) -> Optional[Tuple[int, T]]:
        """Return ``(token, value)`` once, after the settling delay."""

        if self._pending is None or self.remaining(now) > 0:
            return None
        token, value, _ = self._pending
        self._pending = None
        return token, value

    def cancel(self) -> None:
        self._pending = None
        self.guard.issue()

    def is_current(self, token: Optional[int]) -> bool:
        return self.guard.is_current(token)


class PickupStage(Enum):
    AWAITING_FLIGHT = "awaiting_flight"
    FLIGHT_LOADED = "flight_loaded"
    AWAITING_ADDRESS = "awaiting_address"
    DRIVE_TIME_KNOWN = "drive_time_known"
    LEAVE_BY_KNOWN = "leave_by_known"


@dataclass(frozen=True)
class ArrivalsRequest:
    token: int
    airport_iata: str


@dataclass(frozen=True)
class DriveTimeRequest:
    token: int
    origin: str
    destination: str


def pickup_destination(flight: Mapping[str, Any]) -> str:
    """Free-text drive destination for the passenger's arrival airport."""

    arrival = flight.get("arrival") if isinstance(flight, Mapping) else None
    name = str((arrival or {}).get("airport") or "").strip()
    if not name:
        return ""
    return name if name.lower().endswith("airport") else f"{name} Airport"


class PickupSession:
    """Latest inputs and derived values for a single driver pickup."""

    def __init__(
        self,
        *,
        debounce_seconds: float = ADDRESS_DEBOUNCE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.flight: Optional[Mapping[str, Any]] = None
        self.flight_error: Optional[str] = None
        self.arrivals: Optional[List[Mapping[str, Any]]] = None
        self.arrivals_error: Optional[str] = None
        self.address = ""
        self.drive_minutes: Optional[int] = None
        self.drive_error: Optional[str] = None

        self.landing: Optional[datetime] = None
        self.other_arrivals = 0
        self.baggage_wait_minutes = BAGGAGE_BASE_MIN
        self.estimate: Optional[PickupEstimate] = None

        self._arrivals_guard = LatestRequestGuard()
        self._drive: Debouncer[Tuple[str, str]] = Debouncer(debounce_seconds, clock=clock)

    # -- derived values -------------------------------------------------

    @property
    def stage(self) -> PickupStage:
        if self.flight is None:
            return PickupStage.AWAITING_FLIGHT
        if self.estimate is not None:
            return PickupStage.LEAVE_BY_KNOWN
        if self.drive_minutes is not None:
            return PickupStage.DRIVE_TIME_KNOWN
        if self.arrivals is None and self.arrivals_error is None:
            return PickupStage.FLIGHT_LOADED
        return PickupStage.AWAITING_ADDRESS

    @property
    def leave_by(self) -> Optional[datetime]:
        return self.estimate.leave_by if self.estimate else None

    @property
    def timezone(self) -> str:
        arrival = (self.flight or {}).get("arrival") or {}
        return str(arrival.get("timezone") or DEFAULT_TIMEZONE)

    @property
    def flight_code(self) -> str:
        return flight_iata_for(self.flight) if self.flight else ""

    @property
    def destination(self) -> str:
        return pickup_destination(self.flight) if self.flight else ""

    def landing_label(self) -> str:
        return format_in_timezone(self.landing, self.timezone, "datetime")

    def leave_by_label(self) -> Optional[str]:
        if self.leave_by is None:
            return None
        return format_in_timezone(self.leave_by, self.timezone, "datetime")

    def countdown(self, now: datetime) -> Optional[int]:
        if self.leave_by is None:
            return None
        return countdown_seconds(to_instant(now), self.leave_by)

    def _recompute(self) -> None:
        self.landing = arrival_side_time(self.flight) if self.flight else None
        if self.arrivals is not None and self.landing is not None:
            matches = count_concurrent_arrivals(self.landing, self.arrivals)
            self.other_arrivals = other_arrivals_count(matches)
        else:
            self.other_arrivals = 0
        self.baggage_wait_minutes = estimate_baggage_wait_minutes(self.other_arrivals)
        self.estimate = derive_estimate(
            self.landing, self.baggage_wait_minutes, self.drive_minutes
        )

    # -- passenger flight -----------------------------------------------

    def load_flight(self, flight: Mapping[str, Any]) -> None:
        """Adopt a new passenger flight; everything downstream starts over."""

        self.flight = flight
        self.flight_error = None
        self._reset_arrivals()
        self._reset_drive_time()
        if self.address:
            self._drive.submit((self.address, self.destination))
        self._recompute()

    def flight_lookup_failed(self, message: str) -> None:
        self.flight = None
        self.flight_error = message
        self._reset_arrivals()
        self._reset_drive_time()
        self._recompute()

    def apply_flight_payload(self, payload: Mapping[str, Any]) -> bool:
        """Apply a single-flight lookup payload; return ``True`` on success."""

        if is_error_payload(payload):
            self.flight_lookup_failed(str(payload["error"]))
            return False
        flight = payload.get("flight") if isinstance(payload, Mapping) else None
        if not isinstance(flight, Mapping):
            self.flight_lookup_failed("Flight not found or no arrival data.")
            return False
        self.load_flight(flight)
        return True

    # -- arrivals congestion ----------------------------------------------

    def _reset_arrivals(self) -> None:
        self.arrivals = None
        self.arrivals_error = None
        self._arrivals_guard.issue()

    def request_arrivals(self) -> Optional[ArrivalsRequest]:
        """Start a congestion query for the passenger's arrival airport."""

        if self.flight is None:
            return None
        arrival = self.flight.get("arrival") or {}
        airport = str(arrival.get("iata") or "").strip().upper()
        if not airport:
            return None
        return ArrivalsRequest(token=self._arrivals_guard.issue(), airport_iata=airport)

    def apply_arrivals_payload(
        self, payload: Mapping[str, Any], token: Optional[int] = None
    ) -> bool:
        """Apply an arrivals-board payload; stale tokens are ignored."""

        if token is not None and not self._arrivals_guard.is_current(token):
            return False
        if is_error_payload(payload):
            self.arrivals = None
            self.arrivals_error = str(payload["error"])
        else:
            data = payload.get("data") if isinstance(payload, Mapping) else None
            self.arrivals = [item for item in (data or []) if isinstance(item, Mapping)]
            self.arrivals_error = None
        self._recompute()
        return True

    # -- driver address and drive time -----------------------------------

    def _reset_drive_time(self) -> None:
        self.drive_minutes = None
        self.drive_error = None
        self._drive.cancel()

    def set_address(self, address: str, now: Optional[float] = None) -> bool:
        """Record an address edit; return ``True`` when it changed anything."""

        cleaned = (address or "").strip()
        if cleaned == self.address:
            return False
        self.address = cleaned
        self._reset_drive_time()
        if cleaned and self.flight is not None:
            self._drive.submit((cleaned, self.destination), now)
        self._recompute()
        return True

    @property
    def drive_pending(self) -> bool:
        return self._drive.pending

    def drive_settle_remaining(self, now: Optional[float] = None) -> float:
        return self._drive.remaining(now)

    def due_drive_request(self, now: Optional[float] = None) -> Optional[DriveTimeRequest]:
        """Return the drive-time request to issue once the address has settled."""

        released = self._drive.due(now)
        if released is None:
            return None
        token, (origin, destination) = released
        if not origin or not destination:
            return None
        return DriveTimeRequest(token=token, origin=origin, destination=destination)

    def apply_drive_time_payload(
        self, payload: Mapping[str, Any], token: Optional[int] = None
    ) -> bool:
        """Apply a drive-time payload unless a newer edit superseded it.

        A failed lookup records the error but keeps any earlier estimate.
        """

        if token is not None and not self._drive.is_current(token):
            return False
        if is_error_payload(payload):
            self.drive_error = str(payload["error"])
            return True
        seconds = payload.get("durationSeconds") if isinstance(payload, Mapping) else None
        if isinstance(seconds, bool) or not isinstance(seconds, (int, float)) or seconds < 0:
            self.drive_error = "Could not get duration."
            return True
        self.drive_minutes = drive_minutes_from_seconds(seconds)
        self.drive_error = None
        self._recompute()
        return True


__all__ = [
    "ADDRESS_DEBOUNCE_SECONDS",
    "ArrivalsRequest",
    "BAGGAGE_BASE_MIN",
    "BAGGAGE_EXTRA_PER_3_FLIGHTS",
    "COUNTDOWN_TICK_SECONDS",
    "Debouncer",
    "DriveTimeRequest",
    "LANDING_WINDOW_MIN",
    "LatestRequestGuard",
    "PickupEstimate",
    "PickupSession",
    "PickupStage",
    "compute_leave_by",
    "count_concurrent_arrivals",
    "countdown_seconds",
    "derive_estimate",
    "drive_minutes_from_seconds",
    "estimate_baggage_wait_minutes",
    "format_countdown",
    "other_arrivals_count",
    "pickup_destination",
]
