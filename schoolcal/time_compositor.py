"""
Date/time composition for calendar events.

The dashboard collects the event day and the clock times as separate
fields, always meaning wall-clock values in the deployment timezone. This
module turns them into the UTC instant the Events API stores plus the
HH:MM:SS strings it expects.

The host machine's timezone never takes part: the (year, month, day,
hour, minute) tuple is attached to the deployment zone with ``zoneinfo``
and only then normalized to UTC, so reading the instant back in that
zone always yields the selected day.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from schoolcal.exceptions import InvalidTimeError
from schoolcal.models import DEFAULT_TIMEZONE


# ============================================================================
# Constants
# ============================================================================

FULL_DAY_START = "00:00:00"
FULL_DAY_END = "23:59:59"
UPCOMING_DAYS = 7

DATE_PATTERN = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
TIME_PATTERN = re.compile(r"^(\d{1,2})(?::(\d{1,2}))?(?::(\d{1,2}))?$")


@dataclass(frozen=True)
class ComposedTime:
    """
    Result of composing a local date and times.

    Attributes:
        event_date_utc: Aware UTC instant of the event start
        start_time: HH:MM:SS start string
        end_time: HH:MM:SS end string
        wall_clock: Naive local start datetime as the user entered it
    """
    event_date_utc: datetime
    start_time: str
    end_time: str
    wall_clock: datetime

    @property
    def event_date_iso(self) -> str:
        """ISO-8601 UTC string in the ``...Z`` form the API accepts."""
        return self.event_date_utc.strftime("%Y-%m-%dT%H:%M:%S.000Z")


# ============================================================================
# Helpers
# ============================================================================


def get_zone(tz_name: str = DEFAULT_TIMEZONE) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidTimeError(f"Unknown timezone: {tz_name}", field="timezone") from e


def parse_local_date(value: Union[date, str]) -> date:
    """
    Parse a calendar date without consulting any timezone.

    Args:
        value: A ``date`` or a ``YYYY-MM-DD`` string

    Raises:
        InvalidTimeError: If the string is malformed or names an impossible day
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    match = DATE_PATTERN.match((value or "").strip())
    if not match:
        raise InvalidTimeError(f"Invalid date format: {value!r}", field="event_date")

    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError as e:
        raise InvalidTimeError(f"Invalid date: {value} ({e})", field="event_date") from e


def normalize_time(value: Optional[str], field: str = "time") -> str:
    """
    Normalize a clock time to HH:MM:SS.

    ``9`` becomes ``09:00:00``, ``09:30`` becomes ``09:30:00``.

    Raises:
        InvalidTimeError: If the value is empty or out of range
    """
    if value is None or not str(value).strip():
        raise InvalidTimeError(f"{field} is required", field=field)

    match = TIME_PATTERN.match(str(value).strip())
    if not match:
        raise InvalidTimeError(f"Invalid {field}: {value!r}", field=field)

    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    second = int(match.group(3) or 0)
    if hour > 23 or minute > 59 or second > 59:
        raise InvalidTimeError(f"Invalid {field}: {value!r}", field=field)

    return f"{hour:02d}:{minute:02d}:{second:02d}"


def _as_time(hhmmss: str) -> time:
    hour, minute, second = (int(part) for part in hhmmss.split(":"))
    return time(hour, minute, second)


# ============================================================================
# Composition
# ============================================================================


def compose(
    local_date: Union[date, str],
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
    is_full_day: bool = False,
    tz_name: str = DEFAULT_TIMEZONE,
) -> ComposedTime:
    """
    Compose a local date and clock times into an event instant.

    Args:
        local_date: Day selected in the UI (deployment timezone)
        start_time: Local start time, ignored for full-day events
        end_time: Local end time, ignored for full-day events
        is_full_day: Whether the event spans the whole day
        tz_name: IANA name of the deployment timezone

    Returns:
        ComposedTime with the UTC instant and normalized time strings

    Raises:
        InvalidTimeError: On a missing or malformed time, an impossible
            date, or an end time before the start time
    """
    day = parse_local_date(local_date)
    zone = get_zone(tz_name)

    if is_full_day:
        start, end = FULL_DAY_START, FULL_DAY_END
    else:
        start = normalize_time(start_time, field="start_time")
        end = normalize_time(end_time, field="end_time")
        if _as_time(end) < _as_time(start):
            raise InvalidTimeError(
                f"End time {end} is before start time {start}", field="end_time"
            )

    wall_clock = datetime.combine(day, _as_time(start).replace(second=0))
    instant = wall_clock.replace(tzinfo=zone).astimezone(timezone.utc)

    return ComposedTime(
        event_date_utc=instant,
        start_time=start,
        end_time=end,
        wall_clock=wall_clock,
    )


def local_day_of(instant: datetime, tz_name: str = DEFAULT_TIMEZONE) -> date:
    """
    Reinterpret an instant as a calendar day in the deployment timezone.

    Naive datetimes are taken to be UTC, matching how the API serializes.
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(get_zone(tz_name)).date()


def local_today(tz_name: str = DEFAULT_TIMEZONE, now: Optional[datetime] = None) -> date:
    """Today's date in the deployment timezone (not the host's)."""
    current = now or datetime.now(timezone.utc)
    return local_day_of(current, tz_name)


def upcoming_window(
    days: int = UPCOMING_DAYS,
    tz_name: str = DEFAULT_TIMEZONE,
    now: Optional[datetime] = None,
) -> Tuple[date, date]:
    """Return (today, today + days) in the deployment timezone."""
    today = local_today(tz_name, now)
    return today, today + timedelta(days=days)
