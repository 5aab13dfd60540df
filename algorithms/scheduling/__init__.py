"""
Scheduling and availability engine.

Modules, leaves first:
- time_range: half-open UTC interval algebra
- timezone_normalizer: UTC / wall-clock conversion and the DST policy
- business_calendar: working-hours policy and business-day arithmetic
- recurrence: RRULE subset parsing, formatting and bounded expansion
- slot_generator: slot grids and availability search
- conflict_detector: event conflicts and conflict-checked creation
"""

from .business_calendar import Holiday, HolidayKind, WorkingHoursPolicy
from .conflict_detector import (
    ConflictDetector,
    Event,
    EventDraft,
    EventStore,
    check_conflicts,
    create_event_with_conflict_check,
)
from .recurrence import ExceptionSet, Frequency, RecurrenceRule, Weekday, WeekdayRule
from .slot_generator import TimeSlot, find_available_slots, generate_slots
from .time_range import TimeRange

__all__ = [
    "ConflictDetector",
    "Event",
    "EventDraft",
    "EventStore",
    "ExceptionSet",
    "Frequency",
    "Holiday",
    "HolidayKind",
    "RecurrenceRule",
    "TimeRange",
    "TimeSlot",
    "Weekday",
    "WeekdayRule",
    "WorkingHoursPolicy",
    "check_conflicts",
    "create_event_with_conflict_check",
    "find_available_slots",
    "generate_slots",
]
