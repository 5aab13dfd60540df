"""
Business-day predicates and arithmetic.

Everything here is driven by an explicit `WorkingHoursPolicy` value passed to
each call; there is no process-wide date configuration. Searches for the
next/previous business day are bounded so that a degenerate policy (no working
days at all) fails with `NoBusinessDayFound` instead of looping forever.
"""

import enum
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from core.exceptions import NoBusinessDayFound

from . import timezone_normalizer
from .time_range import TimeRange

# Upper bound on consecutive days inspected by a single business-day search
MAX_SEARCH_DAYS = 366

WEEKDAY_CODES = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")


class HolidayKind(str, enum.Enum):
    """Holiday categories; only PUBLIC and BANK holidays close a business day."""

    PUBLIC = "PUBLIC"
    BANK = "BANK"
    OBSERVANCE = "OBSERVANCE"

    @property
    def blocks_business_day(self) -> bool:
        return self is not HolidayKind.OBSERVANCE


@dataclass(frozen=True)
class Holiday:
    date: date
    name: str = ""
    kind: HolidayKind = HolidayKind.PUBLIC


def _parse_time(value) -> time:
    if isinstance(value, time):
        return value
    hours, minutes = str(value).split(":")
    return time(int(hours), int(minutes))


def _parse_weekday(value) -> int:
    if isinstance(value, int):
        if not 0 <= value <= 6:
            raise ValueError(f"Weekday index must be 0-6, got {value}")
        return value
    return WEEKDAY_CODES.index(str(value).upper()[:2])


@dataclass(frozen=True)
class WorkingHoursPolicy:
    """
    Working-hours configuration for one tenant / calendar.

    Attributes:
        working_days: Python weekday indexes (Monday=0) that are working days
        daily_window: Default (start, end) local working window
        day_windows: Per-weekday (start, end) overrides of `daily_window`
        holidays: Known holidays
        slot_duration: Slot length in minutes used by slot generation
        timezone: IANA zone the windows are expressed in
        business_hours_only: Mark every slot of a non-business day unavailable
    """

    working_days: FrozenSet[int] = frozenset({0, 1, 2, 3, 4})
    daily_window: Tuple[time, time] = (time(9, 0), time(17, 0))
    # Read-only view; left out of the hash since mappings are unhashable
    day_windows: Mapping[int, Tuple[time, time]] = field(default_factory=dict, hash=False)
    holidays: Tuple[Holiday, ...] = ()
    slot_duration: int = 30
    timezone: str = "UTC"
    business_hours_only: bool = False

    def __post_init__(self):
        if self.slot_duration <= 0:
            raise ValueError(f"slot_duration must be positive, got {self.slot_duration}")
        object.__setattr__(self, "working_days", frozenset(self.working_days))
        object.__setattr__(self, "holidays", tuple(self.holidays))
        object.__setattr__(self, "day_windows", MappingProxyType(dict(self.day_windows)))
        timezone_normalizer.get_timezone(self.timezone)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "WorkingHoursPolicy":
        """
        Build a policy from a settings dictionary.

        Expected keys (all optional): WORKING_DAYS (codes like "MO" or indexes),
        WORKING_HOURS {"start": "HH:MM", "end": "HH:MM"}, DAY_WINDOWS
        {"SA": {"start": ..., "end": ...}}, HOLIDAYS [{"date": "YYYY-MM-DD",
        "name": ..., "kind": "PUBLIC"}], SLOT_DURATION, TIMEZONE,
        BUSINESS_HOURS_ONLY.
        """
        hours = config.get("WORKING_HOURS", {})
        day_windows = {
            _parse_weekday(day): (_parse_time(window["start"]), _parse_time(window["end"]))
            for day, window in config.get("DAY_WINDOWS", {}).items()
        }
        holidays = tuple(
            Holiday(
                date=date.fromisoformat(item["date"]) if isinstance(item["date"], str) else item["date"],
                name=item.get("name", ""),
                kind=HolidayKind(item.get("kind", "PUBLIC")),
            )
            for item in config.get("HOLIDAYS", [])
        )
        return cls(
            working_days=frozenset(
                _parse_weekday(day) for day in config.get("WORKING_DAYS", WEEKDAY_CODES[:5])
            ),
            daily_window=(
                _parse_time(hours.get("start", "09:00")),
                _parse_time(hours.get("end", "17:00")),
            ),
            day_windows=day_windows,
            holidays=holidays,
            slot_duration=int(config.get("SLOT_DURATION", 30)),
            timezone=config.get("TIMEZONE", "UTC"),
            business_hours_only=bool(config.get("BUSINESS_HOURS_ONLY", False)),
        )

    def holidays_on(self, day: date) -> Tuple[Holiday, ...]:
        return tuple(holiday for holiday in self.holidays if holiday.date == day)


def is_business_day(day: date, policy: WorkingHoursPolicy) -> bool:
    """
    Check if a date is a business day.

    A business day is a working weekday that has no PUBLIC or BANK holiday;
    OBSERVANCE holidays never block it.
    """
    if day.weekday() not in policy.working_days:
        return False

    return not any(holiday.kind.blocks_business_day for holiday in policy.holidays_on(day))


def _step_to_business_day(day: date, direction: int, policy: WorkingHoursPolicy) -> date:
    current = day
    for _ in range(MAX_SEARCH_DAYS):
        current = current + timedelta(days=direction)
        if is_business_day(current, policy):
            return current

    raise NoBusinessDayFound(day, direction, MAX_SEARCH_DAYS)


def next_business_day(day: date, policy: WorkingHoursPolicy) -> date:
    """
    First business day strictly after `day`.

    Raises:
        NoBusinessDayFound: If none exists within MAX_SEARCH_DAYS
    """
    return _step_to_business_day(day, 1, policy)


def previous_business_day(day: date, policy: WorkingHoursPolicy) -> date:
    """
    Last business day strictly before `day`.

    Raises:
        NoBusinessDayFound: If none exists within MAX_SEARCH_DAYS
    """
    return _step_to_business_day(day, -1, policy)


def add_business_days(day: date, n: int, policy: WorkingHoursPolicy) -> date:
    """
    Move `|n|` business days forward (n > 0) or backward (n < 0).

    Args:
        day: Starting date, which need not itself be a business day
        n: Number of business days to move
        policy: Working-hours policy

    Returns:
        The resulting business day, or `day` itself when n == 0
    """
    direction = 1 if n > 0 else -1
    current = day
    for _ in range(abs(n)):
        current = _step_to_business_day(current, direction, policy)
    return current


def business_days_between(start: date, end: date, policy: WorkingHoursPolicy) -> int:
    """Count business days in the inclusive date range, in either order."""
    if end < start:
        start, end = end, start

    count = 0
    current = start
    while current <= end:
        if is_business_day(current, policy):
            count += 1
        current += timedelta(days=1)
    return count


def working_window(day: date, policy: WorkingHoursPolicy) -> Optional[Tuple[time, time]]:
    """
    Local working window for a date, regardless of business-day status.

    Returns:
        (start, end) local times, or None if the configured window is empty
    """
    window = policy.day_windows.get(day.weekday(), policy.daily_window)
    if window[0] >= window[1]:
        return None
    return window


def working_range(day: date, policy: WorkingHoursPolicy) -> Optional[TimeRange]:
    """UTC range of the day's working window, converted from the policy zone."""
    window = working_window(day, policy)
    if window is None:
        return None
    return TimeRange(
        timezone_normalizer.combine(day, window[0], policy.timezone),
        timezone_normalizer.combine(day, window[1], policy.timezone),
    )


def _to_local(value: datetime, policy: WorkingHoursPolicy) -> datetime:
    if value.tzinfo is None:
        return value
    return timezone_normalizer.to_zoned(value, policy.timezone)


def working_hours_between(start: datetime, end: datetime, policy: WorkingHoursPolicy) -> float:
    """
    Working hours between two moments.

    For every local calendar day touched by [start, end], add the overlap
    between that day's working window and [start, end]; non-business days are
    skipped. Aware datetimes are read in the policy zone, naive ones are taken
    as policy-zone wall-clock times.

    Returns:
        Total working hours as a float
    """
    local_start = _to_local(start, policy)
    local_end = _to_local(end, policy)
    if local_end < local_start:
        local_start, local_end = local_end, local_start

    total_seconds = 0.0
    current = local_start.date()
    while current <= local_end.date():
        window = working_window(current, policy)
        if window is not None and is_business_day(current, policy):
            overlap_start = max(datetime.combine(current, window[0]), local_start)
            overlap_end = min(datetime.combine(current, window[1]), local_end)
            if overlap_start < overlap_end:
                elapsed = timezone_normalizer.to_utc(overlap_end, policy.timezone) - timezone_normalizer.to_utc(
                    overlap_start, policy.timezone
                )
                total_seconds += elapsed.total_seconds()
        current += timedelta(days=1)

    return total_seconds / 3600


def policy_summary(policy: WorkingHoursPolicy) -> Dict[str, Any]:
    """Serializable view of a policy, used by the API."""
    return {
        "working_days": [WEEKDAY_CODES[day] for day in sorted(policy.working_days)],
        "working_hours": {
            "start": policy.daily_window[0].strftime("%H:%M"),
            "end": policy.daily_window[1].strftime("%H:%M"),
        },
        "slot_duration": policy.slot_duration,
        "timezone": policy.timezone,
        "business_hours_only": policy.business_hours_only,
    }

