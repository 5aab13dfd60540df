"""
Event conflict detection.

This module defines the engine's view of stored events, the `EventStore` port
the detector reads from, and the conflict-checked create operation.

A conflict is a half-open overlap between a candidate range and a busy event
owned by the same owner. Recurring events are expanded only inside the
candidate window, never over their whole lifetime.
"""

import logging
from dataclasses import dataclass, fields, replace
from datetime import timedelta
from typing import Iterable, Iterator, List, Optional

from core.exceptions import SchedulingConflict

from .recurrence import (
    DEFAULT_MAX_OCCURRENCES,
    EMPTY_EXCEPTIONS,
    MAX_IDLE_DAYS,
    ExceptionSet,
    RecurrenceRule,
    occurrence_ranges,
)
from .time_range import TimeRange

logger = logging.getLogger(__name__)

# Margin added on both sides of the candidate when reading from the store
READ_MARGIN = timedelta(days=1)

# How far ahead an open-ended recurring draft is checked
DEFAULT_CONFLICT_HORIZON_DAYS = 366


@dataclass(frozen=True)
class EventDraft:
    """An event that has not been stored yet."""

    owner_id: str
    range: TimeRange
    title: str = ""
    all_day: bool = False
    is_busy: bool = True
    timezone: str = "UTC"
    recurrence: Optional[RecurrenceRule] = None
    recurrence_parent_id: Optional[str] = None
    exceptions: ExceptionSet = EMPTY_EXCEPTIONS

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None

    @property
    def duration(self) -> timedelta:
        return self.range.duration


@dataclass(frozen=True)
class Event:
    """
    A stored event as seen by the engine.

    For a recurring event `range` is the first occurrence (the series anchor);
    conflict results replace it with the colliding occurrence.
    """

    id: str
    owner_id: str
    range: TimeRange
    title: str = ""
    all_day: bool = False
    is_busy: bool = True
    timezone: str = "UTC"
    recurrence: Optional[RecurrenceRule] = None
    recurrence_parent_id: Optional[str] = None
    exceptions: ExceptionSet = EMPTY_EXCEPTIONS

    @classmethod
    def from_draft(cls, event_id, draft: EventDraft) -> "Event":
        values = {f.name: getattr(draft, f.name) for f in fields(draft)}
        return cls(id=str(event_id), **values)

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None

    @property
    def duration(self) -> timedelta:
        return self.range.duration

    def occurrences(
        self, window: TimeRange, max_occurrences: int = DEFAULT_MAX_OCCURRENCES
    ) -> Iterator[TimeRange]:
        """
        Occurrence ranges of this event that overlap `window`.

        Args:
            window: Query window
            max_occurrences: Cap on expanded occurrences

        Returns:
            Iterator of ranges ascending by start
        """
        if not self.is_recurring:
            if self.range.overlaps(window):
                yield self.range
            return

        # An occurrence starting up to one duration before the window can still reach into it
        expansion_window = TimeRange(window.start - self.duration, window.end)
        for occurrence in occurrence_ranges(
            self.recurrence,
            self.duration,
            expansion_window,
            exceptions=self.exceptions,
            max_occurrences=max_occurrences,
            dtstart=self.range.start,
            tz=self.timezone,
        ):
            if occurrence.overlaps(window):
                yield occurrence


class EventStore:
    """
    Persistence port used by the conflict detector.

    Implementations must make `create` atomic with respect to conflicts: two
    concurrent creates for the same owner must not both succeed when they
    collide.
    """

    def read(self, owner_id, window: TimeRange) -> List[Event]:
        """
        Events of `owner_id` overlapping `window`, plus recurring series that
        may produce occurrences inside it.
        """
        raise NotImplementedError("Subclasses must implement read()")

    def create(self, draft: EventDraft) -> Event:
        """
        Store a new event.

        Raises:
            SchedulingConflict: If the draft collides with a busy event
        """
        raise NotImplementedError("Subclasses must implement create()")


def _first_collision(event: Event, candidate: TimeRange, max_occurrences: int) -> Optional[TimeRange]:
    return next(event.occurrences(candidate, max_occurrences), None)


def find_conflicts(
    candidate: TimeRange,
    events: Iterable[Event],
    exclude_event_id=None,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
) -> List[Event]:
    """
    Busy events colliding with `candidate`.

    Args:
        candidate: Range being scheduled
        events: Events to test, typically read from a store
        exclude_event_id: Event to ignore (the one being rescheduled)
        max_occurrences: Expansion cap per recurring event

    Returns:
        Colliding events ordered by start, each id at most once. Recurring
        events carry the first colliding occurrence as their range.
    """
    excluded = str(exclude_event_id) if exclude_event_id is not None else None
    conflicts = []
    seen = set()

    for event in events:
        if not event.is_busy or str(event.id) == excluded or event.id in seen:
            continue

        collision = _first_collision(event, candidate, max_occurrences)
        if collision is None:
            continue

        seen.add(event.id)
        conflicts.append(event if collision == event.range else replace(event, range=collision))

    conflicts.sort(key=lambda event: (event.range.start, str(event.id)))
    return conflicts


class ConflictDetector:
    """Conflict checks and conflict-checked creation against one event store."""

    def __init__(
        self,
        store: EventStore,
        max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
        horizon_days: int = DEFAULT_CONFLICT_HORIZON_DAYS,
    ):
        self.store = store
        self.max_occurrences = max_occurrences
        self.horizon_days = horizon_days

    def check(self, candidate: TimeRange, owner_id, exclude_event_id=None) -> List[Event]:
        """
        Check a candidate range against the owner's busy events.

        Args:
            candidate: Range being scheduled
            owner_id: Owner whose calendar is checked
            exclude_event_id: Event to ignore

        Returns:
            Conflicting events, empty when the range is free
        """
        read_window = TimeRange(candidate.start - READ_MARGIN, candidate.end + READ_MARGIN)
        events = self.store.read(owner_id, read_window)

        conflicts = find_conflicts(candidate, events, exclude_event_id, self.max_occurrences)
        if conflicts:
            logger.debug(f"{len(conflicts)} conflicts for owner {owner_id} in {candidate}")
        return conflicts

    def draft_occurrences(self, draft: EventDraft) -> List[TimeRange]:
        """
        Ranges a draft will occupy once stored.

        A series bounded by COUNT or UNTIL is expanded to its end, an open-ended
        one up to `horizon_days` past its start. Both stop at `max_occurrences`.
        """
        if not draft.is_recurring:
            return [draft.range]

        rule = draft.recurrence
        start = draft.range.start
        if rule.until is not None:
            end = rule.until + draft.duration
        elif rule.count is not None:
            end = start + timedelta(days=MAX_IDLE_DAYS)
        else:
            end = start + timedelta(days=self.horizon_days)

        return list(
            occurrence_ranges(
                rule,
                draft.duration,
                TimeRange(start, max(end, draft.range.end)),
                exceptions=draft.exceptions,
                max_occurrences=self.max_occurrences,
                dtstart=start,
                tz=draft.timezone,
            )
        )

    def check_draft(self, draft: EventDraft, exclude_event_id=None) -> List[Event]:
        """
        Check every occurrence of a draft against the owner's busy events.

        Args:
            draft: Event about to be written
            exclude_event_id: Event to ignore (the one being rewritten)

        Returns:
            Conflicting events ordered by start, each id once, carrying the
            earliest colliding occurrence
        """
        occurrences = self.draft_occurrences(draft)
        if not occurrences:
            return []
        if len(occurrences) == 1:
            return self.check(occurrences[0], draft.owner_id, exclude_event_id)

        read_window = TimeRange(occurrences[0].start - READ_MARGIN, occurrences[-1].end + READ_MARGIN)
        events = self.store.read(draft.owner_id, read_window)

        conflicts = {}
        for occurrence in occurrences:
            for event in find_conflicts(occurrence, events, exclude_event_id, self.max_occurrences):
                conflicts.setdefault(event.id, event)

        if conflicts:
            logger.debug(
                f"{len(conflicts)} conflicts for owner {draft.owner_id} across {len(occurrences)} occurrences"
            )
        return sorted(conflicts.values(), key=lambda event: (event.range.start, str(event.id)))

    def create(self, draft: EventDraft) -> Event:
        """
        Create an event after checking it for conflicts.

        Non-busy drafts are written without a check. Recurring drafts are
        checked occurrence by occurrence, see `draft_occurrences`.

        Raises:
            SchedulingConflict: If a busy draft collides with a busy event
        """
        if draft.is_busy:
            conflicts = self.check_draft(draft)
            if conflicts:
                logger.warning(
                    f"Rejected event for owner {draft.owner_id} in {draft.range}: "
                    f"conflicts with {[event.id for event in conflicts]}"
                )
                raise SchedulingConflict([event.id for event in conflicts])

        return self.store.create(draft)


def check_conflicts(
    candidate: TimeRange,
    owner_id,
    exclude_event_id,
    store: EventStore,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
) -> List[Event]:
    """Module-level shortcut for `ConflictDetector(store).check(...)`."""
    return ConflictDetector(store, max_occurrences).check(candidate, owner_id, exclude_event_id)


def create_event_with_conflict_check(
    draft: EventDraft, store: EventStore, max_occurrences: int = DEFAULT_MAX_OCCURRENCES
) -> Event:
    """Module-level shortcut for `ConflictDetector(store).create(draft)`."""
    return ConflictDetector(store, max_occurrences).create(draft)
