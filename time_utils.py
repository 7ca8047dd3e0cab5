"""Helpers for turning provider timestamps into comparable UTC instants."""

from __future__ import annotations

import re
from datetime import date, datetime, time, timezone
from typing import Literal, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pandas as pd
import pytz

UTC = timezone.utc
PLACEHOLDER = "—"
MONTH_ABBREVIATIONS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)

_UTC_MARKER_RE = re.compile(r"[zZ]$")
_ZERO_OFFSET_RE = re.compile(r"\+00:?00$")
_NUMERIC_OFFSET_RE = re.compile(r"[+-]\d{2}:?\d{2}(?::?\d{2})?$")
_BASIC_OFFSET_RE = re.compile(r"([+-])(\d{2})(\d{2})$")

TimestampInput = Union[str, datetime, None]
FormatStyle = Literal["time", "datetime"]


def ensure_utc_iso(value: Optional[str]) -> Optional[str]:
    """Return *value* with an unambiguous UTC marker or offset.

    ``+00:00``/``+0000`` become ``Z``, other numeric offsets are kept and
    naive timestamps are treated as UTC (the provider convention).
    """

    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    if _UTC_MARKER_RE.search(text):
        return text
    if _ZERO_OFFSET_RE.search(text):
        return _ZERO_OFFSET_RE.sub("Z", text)
    if _NUMERIC_OFFSET_RE.search(text):
        return text
    return f"{text}Z"


def _parse_iso(text: str) -> Optional[datetime]:
    candidate = _UTC_MARKER_RE.sub("+00:00", text)
    candidate = _BASIC_OFFSET_RE.sub(r"\1\2:\3", candidate)
    try:
        dt = datetime.fromisoformat(candidate)
    except ValueError:
        try:
            parsed = pd.to_datetime(text, utc=True)
        except (ValueError, TypeError, OverflowError):
            return None
        if pd.isna(parsed):
            return None
        dt = parsed.to_pydatetime()
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=pytz.UTC)
    return dt.astimezone(UTC)


def to_instant(value: TimestampInput) -> Optional[datetime]:
    """Parse a provider timestamp into a timezone-aware UTC ``datetime``.

    Returns ``None`` for empty or unparseable input. The result never
    depends on the host machine's local timezone.
    """

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=pytz.UTC).astimezone(UTC)
        return value.astimezone(UTC)
    normalized = ensure_utc_iso(value)
    if normalized is None:
        return None
    return _parse_iso(normalized)


def load_timezone(name: Optional[str]) -> Optional[ZoneInfo]:
    """Return the ``ZoneInfo`` for *name* or ``None`` if it is unknown."""

    if not name or not isinstance(name, str):
        return None
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError, OSError):
        # Folder names such as "America" raise IsADirectoryError.
        return None


def _format_clock(local: datetime) -> str:
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d} {meridiem}"


def format_in_timezone(
    value: TimestampInput,
    timezone_name: str,
    style: FormatStyle = "time",
) -> str:
    """Render an instant as wall-clock time in the given IANA timezone.

    ``style="time"`` gives ``"5:06 PM"``; ``style="datetime"`` gives
    ``"Feb 23, 2026, 5:06 PM"``. Missing instants or invalid timezones render
    as the placeholder instead of raising.
    """

    instant = to_instant(value)
    tz = load_timezone(timezone_name)
    if instant is None or tz is None:
        return PLACEHOLDER
    local = instant.astimezone(tz)
    if style == "datetime":
        month = MONTH_ABBREVIATIONS[local.month - 1]
        return f"{month} {local.day}, {local.year}, {_format_clock(local)}"
    return _format_clock(local)


def format_timestamp_in_timezone(value: TimestampInput, timezone_name: str) -> str:
    """Render a "last updated" stamp such as ``"Feb 23, 6:45 PM"``."""

    instant = to_instant(value)
    tz = load_timezone(timezone_name)
    if instant is None or tz is None:
        return ""
    local = instant.astimezone(tz)
    month = MONTH_ABBREVIATIONS[local.month - 1]
    return f"{month} {local.day}, {_format_clock(local)}"


def local_date_in_timezone(timezone_name: str, now: Optional[datetime] = None) -> date:
    """Return today's calendar date as observed in *timezone_name*."""

    tz = load_timezone(timezone_name) or UTC
    current = to_instant(now) if now is not None else datetime.now(UTC)
    return current.astimezone(tz).date()


def start_of_today_in_timezone(
    timezone_name: str,
    now: Optional[datetime] = None,
) -> datetime:
    """Return the UTC instant of local midnight "today" in *timezone_name*.

    Unknown timezones fall back to UTC. When a DST gap skips midnight the
    first existing instant of the local day is returned.
    """

    tz = load_timezone(timezone_name) or UTC
    today = local_date_in_timezone(timezone_name, now)
    # fold=0 maps a skipped midnight onto the transition instant.
    local_midnight = datetime.combine(today, time(0, 0), tzinfo=tz)
    return local_midnight.astimezone(UTC)


__all__ = [
    "PLACEHOLDER",
    "UTC",
    "ensure_utc_iso",
    "format_in_timezone",
    "format_timestamp_in_timezone",
    "load_timezone",
    "local_date_in_timezone",
    "start_of_today_in_timezone",
    "to_instant",
]
