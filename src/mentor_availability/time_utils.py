"""
Time arithmetic utilities for availability scheduling.

Weekday and calendar-date derivation is always done from UTC fields so the
result never depends on the host's local time zone. "Now" and "today" for
past-slot checks are evaluated in the single operating time zone.
"""

from datetime import date, datetime, time, timedelta
import re
from typing import Callable, Union

import pytz

from .enums import NextOccurrenceMode, Weekday
from .exceptions import MalformedDateException, MalformedTimeException

Clock = Callable[[], datetime]

_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
_AMPM_RE = re.compile(r"^(\d{1,2}):([0-5]\d)\s*([AaPp])[Mm]$")
_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

MINUTES_PER_DAY = 24 * 60


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(pytz.UTC)


def parse_iso_date(value: Union[str, date]) -> date:
    """
    Parse ``YYYY-MM-DD`` from its numeric components.

    datetime values are reduced to their UTC calendar date.

    Raises:
        MalformedDateException: Not ``YYYY-MM-DD`` or not a real date
    """
    if isinstance(value, datetime):
        return utc_date_of(value)
    if isinstance(value, date):
        return value
    match = _ISO_DATE_RE.match(str(value).strip())
    if not match:
        raise MalformedDateException(value)
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        raise MalformedDateException(value) from None


def utc_date_of(instant: datetime) -> date:
    """Calendar date of an instant read from its UTC fields (naive is taken as UTC)."""
    if instant.tzinfo is None:
        instant = pytz.UTC.localize(instant)
    return instant.astimezone(pytz.UTC).date()


def weekday_of(value: Union[str, date, datetime]) -> Weekday:
    """
    Weekday of a calendar date, derived at UTC midnight.

    Args:
        value: ``YYYY-MM-DD`` string, date, or datetime (UTC fields are used)

    Returns:
        Weekday symbol
    """
    day = parse_iso_date(value)
    midnight = datetime(day.year, day.month, day.day, tzinfo=pytz.UTC)
    return Weekday.from_index(midnight.weekday())


def minutes_of(value: str) -> int:
    """Minutes since midnight for a zero-padded 24-hour ``HH:MM`` string."""
    match = _HHMM_RE.match(value) if isinstance(value, str) else None
    if not match:
        raise MalformedTimeException(value)
    return int(match.group(1)) * 60 + int(match.group(2))


def parse_hhmm(value: Union[str, time]) -> time:
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    total = minutes_of(value)
    return time(total // 60, total % 60)


def time_to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def format_hhmm(value: Union[int, time]) -> str:
    """Inverse of ``minutes_of``; accepts minutes since midnight or a time."""
    if isinstance(value, time):
        value = time_to_minutes(value)
    if not 0 <= value < MINUTES_PER_DAY:
        raise ValueError(f"Minutes out of range for a time of day: {value}")
    return f"{value // 60:02d}:{value % 60:02d}"


def format_range(start: time, end: time) -> str:
    return f"{format_hhmm(start)}-{format_hhmm(end)}"


def add_minutes(value: time, minutes: int) -> time:
    total = time_to_minutes(value) + minutes
    if not 0 <= total < MINUTES_PER_DAY:
        raise ValueError(f"{format_hhmm(value)} + {minutes} minutes leaves the day")
    return time(total // 60, total % 60)


def format_am_pm(value: time, *, pad_hour: bool = False) -> str:
    """
    Format a time of day as ``9:00 AM`` (or ``09:00 AM`` with ``pad_hour``).

    Independent of the process locale.
    """
    hour = ((value.hour + 11) % 12) + 1
    period = "PM" if value.hour >= 12 else "AM"
    hour_text = f"{hour:02d}" if pad_hour else str(hour)
    return f"{hour_text}:{value.minute:02d} {period}"


def parse_am_pm(value: str) -> time:
    """Parse ``9:00 AM`` / ``12:30 pm`` into a time of day."""
    match = _AMPM_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise MalformedTimeException(value)
    hour = int(match.group(1))
    minute = int(match.group(2))
    if not 1 <= hour <= 12:
        raise MalformedTimeException(value)
    is_pm = match.group(3).upper() == "P"
    if is_pm and hour != 12:
        hour += 12
    if not is_pm and hour == 12:
        hour = 0
    return time(hour, minute)


def _coerce_time(value: Union[str, time]) -> time:
    if isinstance(value, time):
        return value
    text = value.strip()
    if _HHMM_RE.match(text):
        return parse_hhmm(text)
    return parse_am_pm(text)


def to_utc_instant(day: Union[str, date], value: Union[str, time]) -> datetime:
    """
    Combine a calendar date and a wall-clock time into an aware UTC instant.

    The components are placed directly into UTC; no local offset is ever
    applied in between.

    Example:
        to_utc_instant("2025-12-17", "9:00 AM") -> 2025-12-17T09:00:00+00:00
    """
    calendar_day = parse_iso_date(day)
    wall = _coerce_time(value)
    return datetime(
        calendar_day.year,
        calendar_day.month,
        calendar_day.day,
        wall.hour,
        wall.minute,
        tzinfo=pytz.UTC,
    )


def next_occurrence(
    weekday: Weekday,
    from_date: Union[str, date],
    mode: NextOccurrenceMode = NextOccurrenceMode.SHOW_TODAY,
) -> date:
    """
    Date of the next ``weekday`` at or after ``from_date``.

    When ``from_date`` already falls on ``weekday``, SHOW_TODAY returns it
    unchanged while SKIP_TODAY returns the same weekday one week later.
    """
    start = parse_iso_date(from_date)
    days_until = (weekday.number - weekday_of(start).number) % 7
    if days_until == 0 and mode == NextOccurrenceMode.SKIP_TODAY:
        days_until = 7
    return start + timedelta(days=days_until)


def add_days(value: Union[str, date], days: int) -> date:
    return parse_iso_date(value) + timedelta(days=days)


def today_utc(clock: Clock = utc_now) -> date:
    return utc_date_of(clock())


def is_in_past(instant: datetime, clock: Clock = utc_now) -> bool:
    return instant < clock()


def minutes_until(instant: datetime, clock: Clock = utc_now) -> int:
    """Whole minutes from now until ``instant`` (negative when in the past)."""
    delta = instant - clock()
    return int(delta.total_seconds() // 60)


# Operating time zone


def get_operating_timezone(name: str) -> pytz.BaseTzInfo:
    return pytz.timezone(name)


def operating_now(tz: pytz.BaseTzInfo, clock: Clock = utc_now) -> datetime:
    """Current datetime in the operating time zone."""
    now = clock()
    if now.tzinfo is None:
        now = pytz.UTC.localize(now)
    return now.astimezone(tz)


def operating_today(tz: pytz.BaseTzInfo, clock: Clock = utc_now) -> date:
    """'Today' in the operating time zone."""
    return operating_now(tz, clock).date()
