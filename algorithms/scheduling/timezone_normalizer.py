"""
UTC / wall-clock conversions with an explicit DST policy.

All storage and range comparisons happen in UTC. Wall-clock arithmetic (for
recurrence expansion and working hours) happens in a named IANA zone and every
result is converted back to UTC individually, never through a fixed offset.

DST policy:
- An ambiguous local time (clocks fall back, the hour repeats) resolves to the
  later of the two UTC instants.
- A non-existent local time (clocks spring forward) resolves with the offset in
  force before the transition, moving the wall-clock time forward by the size
  of the gap: 02:30 on a New York spring-forward day becomes 03:30 EDT.

Both rules come down to "take the later of the two candidate instants".
"""

from datetime import date, datetime, time, timedelta
from functools import lru_cache

import pytz

from core.exceptions import InvalidTimezone

from .time_range import Instant, TimeRange, to_instant

UTC = pytz.utc

# Curated list offered by the calendar UI's zone picker
COMMON_TIMEZONES = [
    "UTC",
    "America/New_York",
    "America/Chicago",
    "America/Denver",
    "America/Los_Angeles",
    "America/Toronto",
    "America/Vancouver",
    "America/Mexico_City",
    "America/Sao_Paulo",
    "Europe/London",
    "Europe/Paris",
    "Europe/Berlin",
    "Europe/Moscow",
    "Asia/Dubai",
    "Asia/Kolkata",
    "Asia/Shanghai",
    "Asia/Tokyo",
    "Asia/Seoul",
    "Australia/Sydney",
    "Pacific/Auckland",
]


@lru_cache(maxsize=256)
def get_timezone(name: str):
    """
    Look up a pytz zone by IANA name.

    Raises:
        InvalidTimezone: If the name is unknown
    """
    try:
        return pytz.timezone(name)
    except (pytz.UnknownTimeZoneError, AttributeError) as e:
        raise InvalidTimezone(name) from e


def is_valid_timezone(name: str) -> bool:
    try:
        get_timezone(name)
    except InvalidTimezone:
        return False
    return True


def ensure_utc(instant: Instant) -> datetime:
    """Normalize an aware datetime or timestamp to UTC; naive values are rejected."""
    return to_instant(instant)


def to_utc(local: datetime, tz: str) -> datetime:
    """
    Convert a wall-clock time in `tz` to a UTC instant.

    Args:
        local: Naive local datetime (an aware one is simply normalized to UTC)
        tz: IANA zone name

    Returns:
        Aware UTC datetime
    """
    if local.tzinfo is not None:
        return to_instant(local)

    zone = get_timezone(tz)
    # For unambiguous times both flags agree. Otherwise the later instant is
    # the second occurrence of a repeated hour, or the pre-transition offset
    # applied to a skipped hour.
    candidates = (
        zone.localize(local, is_dst=True).astimezone(UTC),
        zone.localize(local, is_dst=False).astimezone(UTC),
    )
    return max(candidates)


def to_zoned(instant: Instant, tz: str) -> datetime:
    """
    Convert a UTC instant to the naive wall-clock time in `tz`.

    Args:
        instant: Aware datetime or POSIX timestamp
        tz: IANA zone name

    Returns:
        Naive local datetime
    """
    zone = get_timezone(tz)
    return to_instant(instant).astimezone(zone).replace(tzinfo=None)


def combine(day: date, at: time, tz: str) -> datetime:
    """UTC instant of wall-clock `at` on local calendar `day` in `tz`."""
    return to_utc(datetime.combine(day, at), tz)


def local_day_range(day: date, tz: str) -> TimeRange:
    """
    UTC range of a local calendar day.

    The range is 23 or 25 hours long on DST transition days.
    """
    return TimeRange(combine(day, time.min, tz), combine(day + timedelta(days=1), time.min, tz))


def utc_offset_hours(tz: str, at: Instant = None) -> float:
    """Offset of `tz` from UTC in hours at instant `at` (default: now)."""
    zone = get_timezone(tz)
    instant = to_instant(at) if at is not None else datetime.now(UTC)
    return instant.astimezone(zone).utcoffset().total_seconds() / 3600


def format_offset(hours: float) -> str:
    sign = "+" if hours >= 0 else "-"
    total_minutes = int(round(abs(hours) * 60))
    return f"UTC{sign}{total_minutes // 60:02d}:{total_minutes % 60:02d}"


def common_timezones(at: Instant = None):
    """
    Common zones with display labels and their current offset.

    Returns:
        List of {"value", "label", "offset"} dictionaries
    """
    return [
        {
            "value": name,
            "label": name.replace("_", " ").replace("/", " / "),
            "offset": format_offset(utc_offset_hours(name, at)),
        }
        for name in COMMON_TIMEZONES
    ]
