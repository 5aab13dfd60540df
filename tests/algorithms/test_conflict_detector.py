# tests/algorithms/test_conflict_detector.py
import itertools
from datetime import date, datetime, timedelta, timezone

from django.test import SimpleTestCase

from algorithms.scheduling import recurrence
from algorithms.scheduling.conflict_detector import (
    ConflictDetector,
    Event,
    EventDraft,
    EventStore,
    check_conflicts,
    create_event_with_conflict_check,
    find_conflicts,
)
from algorithms.scheduling.recurrence import ExceptionSet
from algorithms.scheduling.time_range import TimeRange
from core.exceptions import SchedulingConflict


def at(hour, minute=0, day=15, month=1, year=2024):
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


class InMemoryEventStore(EventStore):
    """Event store keeping events in a dict, checking conflicts on create"""

    def __init__(self):
        self.events = {}
        self.reads = []
        self._ids = itertools.count(1)

    def read(self, owner_id, window):
        self.reads.append(window)
        return [
            event
            for event in self.events.values()
            if event.owner_id == owner_id and (event.is_recurring or event.range.overlaps(window))
        ]

    def create(self, draft):
        if draft.is_busy and ConflictDetector(self).check_draft(draft):
            raise SchedulingConflict([])
        event = Event.from_draft(f"evt-{next(self._ids)}", draft)
        self.events[event.id] = event
        return event

    def add(self, start, end, owner_id="alice", **kwargs):
        event = Event.from_draft(f"evt-{next(self._ids)}", EventDraft(owner_id, TimeRange(start, end), **kwargs))
        self.events[event.id] = event
        return event


class CheckConflictsTest(SimpleTestCase):
    """Test cases for conflict checks"""

    def setUp(self):
        self.store = InMemoryEventStore()
        self.meeting = self.store.add(at(10), at(11), title="Meeting")

    def test_touching_range_is_free(self):
        self.assertEqual(check_conflicts(TimeRange(at(11), at(12)), "alice", None, self.store), [])

    def test_overlapping_range_conflicts(self):
        conflicts = check_conflicts(TimeRange(at(10, 30), at(11, 30)), "alice", None, self.store)
        self.assertEqual(conflicts, [self.meeting])

    def test_read_window_has_one_day_margin(self):
        candidate = TimeRange(at(10, 30), at(11, 30))
        check_conflicts(candidate, "alice", None, self.store)
        self.assertEqual(self.store.reads[-1], TimeRange(candidate.start - timedelta(days=1), candidate.end + timedelta(days=1)))

    def test_free_events_do_not_conflict(self):
        self.store.add(at(13), at(14), is_busy=False)
        self.assertEqual(check_conflicts(TimeRange(at(13), at(14)), "alice", None, self.store), [])

    def test_other_owners_do_not_conflict(self):
        self.assertEqual(check_conflicts(TimeRange(at(10), at(11)), "bob", None, self.store), [])

    def test_excluded_event_is_ignored(self):
        candidate = TimeRange(at(10, 30), at(11, 30))
        self.assertEqual(check_conflicts(candidate, "alice", self.meeting.id, self.store), [])

    def test_empty_candidate_never_conflicts(self):
        self.assertEqual(check_conflicts(TimeRange(at(10, 30), at(10, 30)), "alice", None, self.store), [])

    def test_results_are_ordered_by_start(self):
        early = self.store.add(at(9), at(10, 30), title="Early")
        conflicts = check_conflicts(TimeRange(at(8), at(12)), "alice", None, self.store)
        self.assertEqual([event.id for event in conflicts], [early.id, self.meeting.id])


class RecurringConflictsTest(SimpleTestCase):
    """Test cases for conflicts with recurring events"""

    def setUp(self):
        self.store = InMemoryEventStore()

    def test_weekly_occurrence_conflicts(self):
        standup = self.store.add(
            at(10, day=1), at(11, day=1), recurrence=recurrence.parse("FREQ=WEEKLY;BYDAY=MO")
        )

        conflicts = check_conflicts(TimeRange(at(10, 30), at(11, 30)), "alice", None, self.store)

        self.assertEqual(len(conflicts), 1)
        self.assertEqual(conflicts[0].id, standup.id)
        self.assertEqual(conflicts[0].range, TimeRange(at(10), at(11)))

    def test_non_matching_day_is_free(self):
        self.store.add(at(10, day=1), at(11, day=1), recurrence=recurrence.parse("FREQ=WEEKLY;BYDAY=MO"))
        self.assertEqual(check_conflicts(TimeRange(at(10, day=16), at(11, day=16)), "alice", None, self.store), [])

    def test_old_series_is_expanded_only_near_candidate(self):
        self.store.add(
            at(10, day=3, year=2000), at(11, day=3, year=2000), recurrence=recurrence.parse("FREQ=DAILY")
        )
        conflicts = check_conflicts(TimeRange(at(10, 15), at(10, 45)), "alice", None, self.store)
        self.assertEqual(conflicts[0].range, TimeRange(at(10), at(11)))

    def test_occurrence_starting_before_candidate(self):
        self.store.add(
            at(23, day=1), at(23, day=1) + timedelta(hours=2), recurrence=recurrence.parse("FREQ=DAILY")
        )
        conflicts = check_conflicts(TimeRange(at(0, 30, day=5), at(0, 45, day=5)), "alice", None, self.store)
        self.assertEqual(conflicts[0].range.start, at(23, day=4))

    def test_excluded_date_is_free(self):
        self.store.add(
            at(10, day=1),
            at(11, day=1),
            recurrence=recurrence.parse("FREQ=DAILY"),
            exceptions=ExceptionSet.of(date(2024, 1, 15)),
        )
        self.assertEqual(check_conflicts(TimeRange(at(10), at(11)), "alice", None, self.store), [])

    def test_finished_series_is_free(self):
        self.store.add(at(10, day=1), at(11, day=1), recurrence=recurrence.parse("FREQ=DAILY;COUNT=5"))
        self.assertEqual(check_conflicts(TimeRange(at(10), at(11)), "alice", None, self.store), [])

    def test_each_event_reported_once(self):
        daily = self.store.add(at(10, day=1), at(11, day=1), recurrence=recurrence.parse("FREQ=DAILY"))
        conflicts = find_conflicts(TimeRange(at(0), at(0, day=18)), [daily, daily])
        self.assertEqual(len(conflicts), 1)
        self.assertEqual(conflicts[0].range, TimeRange(at(10), at(11)))


class CreateWithConflictCheckTest(SimpleTestCase):
    """Test cases for conflict-checked creation"""

    def setUp(self):
        self.store = InMemoryEventStore()
        self.meeting = self.store.add(at(10), at(11), title="Meeting")

    def test_conflicting_busy_draft_is_rejected(self):
        draft = EventDraft("alice", TimeRange(at(10, 30), at(11, 30)), title="Clash")

        with self.assertRaises(SchedulingConflict) as ctx:
            create_event_with_conflict_check(draft, self.store)

        self.assertEqual(ctx.exception.conflicting_event_ids, [self.meeting.id])
        self.assertEqual(len(self.store.events), 1)

    def test_free_draft_is_created(self):
        event = create_event_with_conflict_check(EventDraft("alice", TimeRange(at(11), at(12))), self.store)
        self.assertIn(event.id, self.store.events)
        self.assertEqual(event.range, TimeRange(at(11), at(12)))

    def test_non_busy_draft_skips_check(self):
        draft = EventDraft("alice", TimeRange(at(10), at(11)), is_busy=False)
        event = ConflictDetector(self.store).create(draft)
        self.assertFalse(event.is_busy)
        self.assertEqual(len(self.store.events), 2)

    def test_draft_for_other_owner(self):
        event = create_event_with_conflict_check(EventDraft("bob", TimeRange(at(10), at(11))), self.store)
        self.assertEqual(event.owner_id, "bob")


class RecurringDraftTest(SimpleTestCase):
    """Test cases for checking every occurrence of a recurring draft"""

    def setUp(self):
        self.store = InMemoryEventStore()
        self.review = self.store.add(at(10, day=22), at(11, day=22), title="Review")

    def weekly_draft(self, rule_text, **kwargs):
        return EventDraft(
            "alice", TimeRange(at(10), at(11)), recurrence=recurrence.parse(rule_text), **kwargs
        )

    def test_later_occurrence_conflicts(self):
        with self.assertRaises(SchedulingConflict) as ctx:
            create_event_with_conflict_check(self.weekly_draft("FREQ=WEEKLY;COUNT=3"), self.store)

        self.assertEqual(ctx.exception.conflicting_event_ids, [self.review.id])
        self.assertEqual(len(self.store.events), 1)

    def test_conflict_carries_colliding_occurrence(self):
        conflicts = ConflictDetector(self.store).check_draft(self.weekly_draft("FREQ=WEEKLY"))
        self.assertEqual(conflicts[0].range, TimeRange(at(10, day=22), at(11, day=22)))

    def test_series_ending_before_event_is_free(self):
        event = create_event_with_conflict_check(self.weekly_draft("FREQ=WEEKLY;COUNT=1"), self.store)
        self.assertTrue(event.is_recurring)

    def test_until_bounds_the_check(self):
        draft = self.weekly_draft("FREQ=WEEKLY;UNTIL=20240121T000000Z")
        self.assertEqual(ConflictDetector(self.store).draft_occurrences(draft), [TimeRange(at(10), at(11))])
        self.assertEqual(ConflictDetector(self.store).check_draft(draft), [])

    def test_excluded_occurrence_is_free(self):
        draft = self.weekly_draft("FREQ=WEEKLY;COUNT=3", exceptions=ExceptionSet.of(date(2024, 1, 22)))
        self.assertEqual(ConflictDetector(self.store).check_draft(draft), [])

    def test_open_series_checked_up_to_horizon(self):
        draft = self.weekly_draft("FREQ=WEEKLY")

        self.assertEqual(ConflictDetector(self.store, horizon_days=7).check_draft(draft), [])
        self.assertEqual(len(ConflictDetector(self.store, horizon_days=14).check_draft(draft)), 1)

    def test_each_conflicting_series_reported_once(self):
        daily = self.store.add(
            at(10, 30, day=1), at(10, 45, day=1), recurrence=recurrence.parse("FREQ=DAILY")
        )

        conflicts = ConflictDetector(self.store).check_draft(self.weekly_draft("FREQ=WEEKLY;COUNT=3"))

        self.assertEqual([event.id for event in conflicts], [daily.id, self.review.id])
        self.assertEqual(conflicts[0].range.start, at(10, 30))

    def test_rewritten_series_ignores_itself(self):
        series = self.store.add(at(10), at(11), recurrence=recurrence.parse("FREQ=WEEKLY;COUNT=3"))
        conflicts = ConflictDetector(self.store).check_draft(
            self.weekly_draft("FREQ=WEEKLY;COUNT=3"), exclude_event_id=series.id
        )
        self.assertEqual([event.id for event in conflicts], [self.review.id])


class EventStorePortTest(SimpleTestCase):
    def test_port_methods_are_abstract(self):
        store = EventStore()
        with self.assertRaises(NotImplementedError):
            store.read("alice", TimeRange(at(10), at(11)))
        with self.assertRaises(NotImplementedError):
            store.create(EventDraft("alice", TimeRange(at(10), at(11))))
