"""
Slot generation and availability search.

Both operations tile a range into fixed-length slots and test each slot
against a merged, sorted list of busy ranges with a single forward sweep, so
the cost is linear in slots + busy ranges after the initial merge.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

from . import time_range as tr
from .business_calendar import WorkingHoursPolicy, is_business_day, working_range
from .time_range import TimeRange

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 100
DEFAULT_SLOT_DURATION = 30


@dataclass(frozen=True)
class TimeSlot:
    """A bookable slot; `available` is False when something blocks it."""

    range: TimeRange
    available: bool = True

    @property
    def duration_minutes(self) -> int:
        return self.range.duration_minutes

    @property
    def start(self):
        return self.range.start

    @property
    def end(self):
        return self.range.end

    def to_dict(self):
        return {
            "start": self.range.start.isoformat(),
            "end": self.range.end.isoformat(),
            "available": self.available,
            "duration_minutes": self.duration_minutes,
        }


class _BusySweep:
    """Forward-only overlap test against merged busy ranges."""

    def __init__(self, busy_ranges: Iterable[TimeRange]):
        # Empty ranges block nothing and would hide a busy range behind them
        self.busy = tr.merge(busy for busy in busy_ranges if not busy.is_empty)
        self.index = 0

    def is_free(self, slot: TimeRange) -> bool:
        # Slots must be presented in ascending order
        while self.index < len(self.busy) and self.busy[self.index].end <= slot.start:
            self.index += 1
        if self.index == len(self.busy):
            return True
        return not self.busy[self.index].overlaps(slot)


def generate_slots(
    day: date,
    policy: WorkingHoursPolicy,
    exclude_ranges: Iterable[TimeRange] = (),
    business_hours_only: Optional[bool] = None,
) -> List[TimeSlot]:
    """
    Tile a day's working window into slots.

    Args:
        day: Local calendar date in the policy time zone
        policy: Working-hours policy supplying the window and slot length
        exclude_ranges: Busy ranges that make overlapping slots unavailable
        business_hours_only: Mark every slot unavailable on non-business days;
            defaults to the policy flag

    Returns:
        Slots ordered by start; empty if the day's window is empty
    """
    window = working_range(day, policy)
    if window is None:
        return []

    if business_hours_only is None:
        business_hours_only = policy.business_hours_only
    closed = business_hours_only and not is_business_day(day, policy)

    sweep = _BusySweep(exclude_ranges)
    slots = []
    for chunk in tr.split(window, policy.slot_duration):
        slots.append(TimeSlot(range=chunk, available=not closed and sweep.is_free(chunk)))

    return slots


def find_available_slots(
    window: TimeRange,
    busy_ranges: Iterable[TimeRange],
    min_duration_minutes: Optional[int] = None,
    max_results: int = DEFAULT_MAX_RESULTS,
    slot_duration: int = DEFAULT_SLOT_DURATION,
) -> List[TimeSlot]:
    """
    Find free slots inside a window.

    Args:
        window: Range to search
        busy_ranges: Busy ranges in any order, possibly overlapping
        min_duration_minutes: Shortest acceptable slot, defaults to `slot_duration`
        max_results: Maximum number of slots to return
        slot_duration: Candidate slot length in minutes

    Returns:
        Available slots ascending by start, at most `max_results`
    """
    if min_duration_minutes is None:
        min_duration_minutes = slot_duration
    if max_results <= 0:
        return []

    sweep = _BusySweep(busy_ranges)
    available = []

    for candidate in tr.split(window, slot_duration):
        if candidate.duration_minutes < min_duration_minutes:
            continue
        if not sweep.is_free(candidate):
            continue

        available.append(TimeSlot(range=candidate, available=True))
        if len(available) >= max_results:
            break

    logger.debug(f"Found {len(available)} available slots in {window}")
    return available
