# apps/calendarapp/tests/test_models.py
from datetime import date, datetime, timedelta, timezone

from django.core.exceptions import ValidationError
from django.test import TestCase

from algorithms.scheduling import recurrence
from algorithms.scheduling.conflict_detector import EventDraft
from algorithms.scheduling.recurrence import ExceptionSet
from algorithms.scheduling.time_range import TimeRange
from apps.calendarapp.models import CalendarEvent, OwnerScheduleLock


def at(hour, day=15, month=1, year=2024):
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


class CalendarEventModelTest(TestCase):
    """Test cases for the CalendarEvent model"""

    def setUp(self):
        """Set up test data"""
        self.event = CalendarEvent.objects.create(
            owner_id="alice",
            title="Planning",
            start_time=at(10),
            end_time=at(11),
        )

    def test_event_creation(self):
        """Test creating a single event"""
        self.assertEqual(self.event.owner_id, "alice")
        self.assertTrue(self.event.is_busy)
        self.assertEqual(self.event.timezone, "UTC")
        self.assertEqual(self.event.excluded_dates, [])
        self.assertIsNone(self.event.rule)
        self.assertEqual(self.event.time_range, TimeRange(at(10), at(11)))

    def test_string_representation(self):
        self.assertEqual(str(self.event), "Planning - 2024-01-15 10:00")

    def test_recurrence_end_for_single_event(self):
        self.assertEqual(self.event.recurrence_end, at(11))

    def test_recurrence_end_for_bounded_series(self):
        event = CalendarEvent.objects.create(
            owner_id="alice",
            start_time=at(10, day=1),
            end_time=at(11, day=1),
            recurrence_rule="FREQ=DAILY;UNTIL=20240110T100000Z",
        )
        self.assertEqual(event.recurrence_end, at(11, day=10))

    def test_recurrence_end_for_unbounded_series(self):
        event = CalendarEvent.objects.create(
            owner_id="alice",
            start_time=at(10, day=1),
            end_time=at(11, day=1),
            recurrence_rule="FREQ=WEEKLY;BYDAY=MO",
        )
        self.assertIsNone(event.recurrence_end)
        self.assertEqual(event.rule.by_day[0].weekday, recurrence.Weekday.MO)

    def test_exception_set(self):
        self.event.excluded_dates = ["2024-01-22", "2024-01-29"]
        self.assertEqual(
            self.event.exception_set, ExceptionSet.of(date(2024, 1, 22), date(2024, 1, 29))
        )

    def test_clean_rejects_reversed_times(self):
        self.event.end_time = at(9)
        with self.assertRaises(ValidationError):
            self.event.clean()

    def test_clean_rejects_unknown_timezone(self):
        self.event.timezone = "Mars/Olympus_Mons"
        with self.assertRaises(ValidationError) as ctx:
            self.event.clean()
        self.assertIn("timezone", ctx.exception.message_dict)

    def test_clean_rejects_invalid_rule(self):
        self.event.recurrence_rule = "FREQ=WEEKLY;BYDAY=1MO"
        with self.assertRaises(ValidationError) as ctx:
            self.event.clean()
        self.assertIn("recurrence_rule", ctx.exception.message_dict)

    def test_clean_rejects_invalid_excluded_date(self):
        self.event.excluded_dates = ["not-a-date"]
        with self.assertRaises(ValidationError) as ctx:
            self.event.clean()
        self.assertIn("excluded_dates", ctx.exception.message_dict)

    def test_draft_round_trip(self):
        draft = EventDraft(
            owner_id="bob",
            range=TimeRange(at(9, day=1), at(10, day=1)),
            title="Standup",
            timezone="Europe/Berlin",
            recurrence=recurrence.parse("FREQ=WEEKLY;BYDAY=MO,WE"),
            exceptions=ExceptionSet.of(date(2024, 1, 3)),
        )

        event = CalendarEvent.objects.create(**CalendarEvent.field_values(draft))
        event.refresh_from_db()

        self.assertEqual(event.recurrence_rule, "FREQ=WEEKLY;BYDAY=MO,WE")
        self.assertEqual(event.excluded_dates, ["2024-01-03"])
        self.assertEqual(event.to_draft(), draft)

    def test_to_engine_event(self):
        engine_event = self.event.to_engine_event()
        self.assertEqual(engine_event.id, str(self.event.id))
        self.assertEqual(engine_event.range, self.event.time_range)
        self.assertFalse(engine_event.is_recurring)

    def test_detached_occurrence(self):
        series = CalendarEvent.objects.create(
            owner_id="alice",
            start_time=at(10, day=1),
            end_time=at(11, day=1),
            recurrence_rule="FREQ=DAILY",
            excluded_dates=["2024-01-15"],
        )
        moved = CalendarEvent.objects.create(
            owner_id="alice", start_time=at(14), end_time=at(15), recurrence_parent=series
        )

        self.assertEqual(list(series.detached_occurrences.all()), [moved])
        self.assertEqual(moved.to_draft().recurrence_parent_id, str(series.id))


class OwnerScheduleLockModelTest(TestCase):
    def test_one_lock_per_owner(self):
        lock, created = OwnerScheduleLock.objects.get_or_create(owner_id="alice")
        again, created_again = OwnerScheduleLock.objects.get_or_create(owner_id="alice")

        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(lock.pk, again.pk)
        self.assertEqual(str(lock), "alice")
