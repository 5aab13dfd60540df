# apps/calendarapp/services/event_store.py
import logging
from typing import List

from django.db import transaction
from django.db.models import Q

from algorithms.scheduling.conflict_detector import (
    DEFAULT_CONFLICT_HORIZON_DAYS,
    ConflictDetector,
    Event,
    EventDraft,
    EventStore,
)
from algorithms.scheduling.recurrence import DEFAULT_MAX_OCCURRENCES
from algorithms.scheduling.time_range import TimeRange
from apps.calendarapp.models import CalendarEvent, OwnerScheduleLock
from core.exceptions import SchedulingConflict

logger = logging.getLogger(__name__)


class DjangoEventStore(EventStore):
    """
    Event store backed by CalendarEvent rows.

    Writes take the owner's OwnerScheduleLock row with SELECT ... FOR UPDATE
    inside a transaction and re-run the conflict check before saving, so two
    concurrent conflicting writes for one owner cannot both succeed.
    """

    def __init__(
        self,
        max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
        horizon_days: int = DEFAULT_CONFLICT_HORIZON_DAYS,
    ):
        self.max_occurrences = max_occurrences
        self.horizon_days = horizon_days

    @staticmethod
    def window_query(window: TimeRange) -> Q:
        """Events overlapping the window, or recurring series still active in it"""
        overlapping = Q(start_time__lt=window.end, end_time__gt=window.start)
        recurring = (
            ~Q(recurrence_rule="")
            & Q(start_time__lt=window.end)
            & (Q(recurrence_end__isnull=True) | Q(recurrence_end__gt=window.start))
        )
        return overlapping | recurring

    def read(self, owner_id, window: TimeRange) -> List[Event]:
        queryset = CalendarEvent.objects.filter(owner_id=str(owner_id)).filter(self.window_query(window))
        return [event.to_engine_event() for event in queryset]

    @staticmethod
    def _lock_owner(owner_id):
        OwnerScheduleLock.objects.get_or_create(owner_id=str(owner_id))
        return OwnerScheduleLock.objects.select_for_update().get(owner_id=str(owner_id))

    def _ensure_free(self, draft: EventDraft, exclude_event_id=None):
        if not draft.is_busy:
            return

        detector = ConflictDetector(self, self.max_occurrences, self.horizon_days)
        conflicts = detector.check_draft(draft, exclude_event_id)
        if conflicts:
            logger.warning(
                f"Conflict for owner {draft.owner_id} in {draft.range}: "
                f"{[event.id for event in conflicts]}"
            )
            raise SchedulingConflict([event.id for event in conflicts])

    @transaction.atomic
    def create(self, draft: EventDraft) -> Event:
        """
        Insert an event after re-checking conflicts under the owner lock.

        Raises:
            SchedulingConflict: If a busy draft collides with a busy event
        """
        self._lock_owner(draft.owner_id)
        self._ensure_free(draft)

        event = CalendarEvent.objects.create(**CalendarEvent.field_values(draft))
        logger.info(f"Created event {event.id} for owner {event.owner_id}")
        return event.to_engine_event()

    @transaction.atomic
    def update(self, event_id, draft: EventDraft) -> Event:
        """
        Replace an event's values, checking conflicts without the event itself.

        Raises:
            CalendarEvent.DoesNotExist: If the event is missing
            SchedulingConflict: If the new values collide with a busy event
        """
        event = CalendarEvent.objects.get(id=event_id)
        # Owner locks are always taken in owner_id order
        for owner_id in sorted({event.owner_id, str(draft.owner_id)}):
            self._lock_owner(owner_id)
        self._ensure_free(draft, exclude_event_id=event_id)

        for field, value in CalendarEvent.field_values(draft).items():
            setattr(event, field, value)
        event.save()
        logger.info(f"Updated event {event.id} for owner {event.owner_id}")
        return event.to_engine_event()

    @transaction.atomic
    def delete(self, event_id) -> None:
        event = CalendarEvent.objects.get(id=event_id)
        self._lock_owner(event.owner_id)
        event.delete()
        logger.info(f"Deleted event {event_id}")
