# apps/calendarapp/services/scheduling_service.py
import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from django.conf import settings

from algorithms.scheduling import business_calendar, recurrence, slot_generator, timezone_normalizer
from algorithms.scheduling.business_calendar import WorkingHoursPolicy
from algorithms.scheduling.conflict_detector import DEFAULT_CONFLICT_HORIZON_DAYS, ConflictDetector, Event, EventDraft
from algorithms.scheduling.recurrence import ExceptionSet
from algorithms.scheduling.time_range import TimeRange
from apps.calendarapp.models import CalendarEvent
from apps.calendarapp.services.event_store import DjangoEventStore

logger = logging.getLogger(__name__)

DRAFT_FIELDS = (
    "owner_id",
    "title",
    "start_time",
    "end_time",
    "all_day",
    "is_busy",
    "timezone",
    "recurrence_rule",
    "recurrence_parent",
    "excluded_dates",
)


class SchedulingService:
    """
    Entry point from the API layer into the scheduling engine.

    Builds the working-hours policy from settings on every call and wires the
    Django event store into the engine.
    """

    @staticmethod
    def get_config() -> Dict:
        return getattr(settings, "CHRONOS", {}).get("SCHEDULING", {})

    @staticmethod
    def get_policy() -> WorkingHoursPolicy:
        return WorkingHoursPolicy.from_config(SchedulingService.get_config())

    @staticmethod
    def get_max_occurrences() -> int:
        return int(SchedulingService.get_config().get("MAX_OCCURRENCES", recurrence.DEFAULT_MAX_OCCURRENCES))

    @staticmethod
    def get_conflict_horizon_days() -> int:
        return int(SchedulingService.get_config().get("CONFLICT_HORIZON_DAYS", DEFAULT_CONFLICT_HORIZON_DAYS))

    @staticmethod
    def get_detector() -> ConflictDetector:
        return ConflictDetector(
            SchedulingService.get_store(),
            SchedulingService.get_max_occurrences(),
            SchedulingService.get_conflict_horizon_days(),
        )

    @staticmethod
    def get_store() -> DjangoEventStore:
        return DjangoEventStore(
            max_occurrences=SchedulingService.get_max_occurrences(),
            horizon_days=SchedulingService.get_conflict_horizon_days(),
        )

    @staticmethod
    def build_draft(data: Dict, instance: Optional[CalendarEvent] = None) -> EventDraft:
        """
        Build an engine draft from validated serializer data.

        Missing keys fall back to `instance` values, so partial updates work.
        """
        values = {field: getattr(instance, field) for field in DRAFT_FIELDS} if instance else {}
        values.update({key: value for key, value in data.items() if key in DRAFT_FIELDS})

        rule_text = values.get("recurrence_rule") or ""
        parent = values.get("recurrence_parent")
        tz = values.get("timezone") or "UTC"

        return EventDraft(
            owner_id=str(values["owner_id"]),
            range=TimeRange(values["start_time"], values["end_time"]),
            title=values.get("title") or "",
            all_day=values.get("all_day", False),
            is_busy=values.get("is_busy", True),
            timezone=tz,
            recurrence=recurrence.parse(rule_text) if rule_text else None,
            recurrence_parent_id=str(parent.pk) if parent else None,
            exceptions=ExceptionSet(
                date.fromisoformat(value) if isinstance(value, str) else value
                for value in values.get("excluded_dates") or []
            ),
        )

    @staticmethod
    def create_event(data: Dict) -> CalendarEvent:
        """
        Create an event with a conflict check.

        Raises:
            SchedulingConflict: If a busy event collides with existing busy events
        """
        draft = SchedulingService.build_draft(data)
        event = SchedulingService.get_detector().create(draft)
        return CalendarEvent.objects.get(id=event.id)

    @staticmethod
    def update_event(instance: CalendarEvent, data: Dict) -> CalendarEvent:
        """Reschedule / edit an event, ignoring the event itself in the conflict check"""
        draft = SchedulingService.build_draft(data, instance)
        SchedulingService.get_store().update(instance.id, draft)
        return CalendarEvent.objects.get(id=instance.id)

    @staticmethod
    def delete_event(instance: CalendarEvent) -> None:
        SchedulingService.get_store().delete(instance.id)

    @staticmethod
    def check_conflicts(owner_id, start: datetime, end: datetime, exclude_event_id=None) -> List[Event]:
        return SchedulingService.get_detector().check(TimeRange(start, end), owner_id, exclude_event_id)

    @staticmethod
    def busy_ranges(owner_id, window: TimeRange) -> List[TimeRange]:
        """Expanded busy occurrences of the owner's events inside `window`"""
        max_occurrences = SchedulingService.get_max_occurrences()
        ranges = []
        for event in SchedulingService.get_store().read(owner_id, window):
            if event.is_busy:
                ranges.extend(event.occurrences(window, max_occurrences))
        return ranges

    @staticmethod
    def find_available_slots(
        owner_id,
        start: datetime,
        end: datetime,
        min_duration: Optional[int] = None,
        max_results: int = slot_generator.DEFAULT_MAX_RESULTS,
        slot_duration: Optional[int] = None,
    ) -> List[slot_generator.TimeSlot]:
        window = TimeRange(start, end)
        if slot_duration is None:
            slot_duration = SchedulingService.get_policy().slot_duration

        return slot_generator.find_available_slots(
            window,
            SchedulingService.busy_ranges(owner_id, window),
            min_duration_minutes=min_duration,
            max_results=max_results,
            slot_duration=slot_duration,
        )

    @staticmethod
    def day_slots(owner_id, day: date, business_hours_only: Optional[bool] = None) -> List[slot_generator.TimeSlot]:
        policy = SchedulingService.get_policy()
        busy = SchedulingService.busy_ranges(owner_id, timezone_normalizer.local_day_range(day, policy.timezone))
        return slot_generator.generate_slots(day, policy, busy, business_hours_only)

    @staticmethod
    def event_occurrences(instance: CalendarEvent, start: datetime, end: datetime) -> List[TimeRange]:
        return list(
            instance.to_engine_event().occurrences(TimeRange(start, end), SchedulingService.get_max_occurrences())
        )

    @staticmethod
    def preview_recurrence(
        rule_text: str,
        dtstart: datetime,
        tz: str = "UTC",
        end: Optional[datetime] = None,
        limit: int = 10,
    ) -> Dict:
        """
        Parse a rule and list its first occurrences from `dtstart`.

        Without `end` the preview looks one year ahead.
        """
        rule = recurrence.parse(rule_text)
        timezone_normalizer.get_timezone(tz)
        window = TimeRange(dtstart, end or dtstart + timedelta(days=366))
        limit = min(limit, SchedulingService.get_max_occurrences())

        return {
            "rule": recurrence.format_rule(rule),
            "description": recurrence.describe(rule),
            "occurrences": list(recurrence.expand(rule, window, max_occurrences=limit, dtstart=dtstart, tz=tz)),
        }

    @staticmethod
    def next_business_day(day: date, direction: str = "next") -> date:
        policy = SchedulingService.get_policy()
        if direction == "previous":
            return business_calendar.previous_business_day(day, policy)
        return business_calendar.next_business_day(day, policy)

    @staticmethod
    def add_business_days(day: date, days: int) -> date:
        return business_calendar.add_business_days(day, days, SchedulingService.get_policy())
