# tests/algorithms/test_timezone_normalizer.py
from datetime import date, datetime, time, timedelta, timezone

from django.test import SimpleTestCase

from algorithms.scheduling import timezone_normalizer as tzn
from core.exceptions import InvalidRange, InvalidTimezone

NEW_YORK = "America/New_York"


class TimezoneLookupTest(SimpleTestCase):
    def test_unknown_zone_raises(self):
        with self.assertRaises(InvalidTimezone) as ctx:
            tzn.get_timezone("Mars/Olympus_Mons")
        self.assertEqual(ctx.exception.timezone_name, "Mars/Olympus_Mons")

    def test_is_valid_timezone(self):
        self.assertTrue(tzn.is_valid_timezone(NEW_YORK))
        self.assertFalse(tzn.is_valid_timezone("Not/AZone"))

    def test_ensure_utc_rejects_naive(self):
        with self.assertRaises(InvalidRange):
            tzn.ensure_utc(datetime(2024, 1, 1, 12, 0))


class DstPolicyTest(SimpleTestCase):
    """Test cases for wall-clock to UTC conversion around DST changes"""

    def test_regular_time(self):
        self.assertEqual(
            tzn.to_utc(datetime(2024, 1, 15, 9, 0), NEW_YORK),
            datetime(2024, 1, 15, 14, 0, tzinfo=timezone.utc),
        )

    def test_ambiguous_time_takes_later_instant(self):
        # 01:30 happens twice on 2024-11-03; the second one is EST
        self.assertEqual(
            tzn.to_utc(datetime(2024, 11, 3, 1, 30), NEW_YORK),
            datetime(2024, 11, 3, 6, 30, tzinfo=timezone.utc),
        )

    def test_skipped_time_moves_forward(self):
        # 02:30 does not exist on 2024-03-10; it becomes 03:30 EDT
        result = tzn.to_utc(datetime(2024, 3, 10, 2, 30), NEW_YORK)
        self.assertEqual(result, datetime(2024, 3, 10, 7, 30, tzinfo=timezone.utc))
        self.assertEqual(tzn.to_zoned(result, NEW_YORK), datetime(2024, 3, 10, 3, 30))

    def test_aware_input_is_only_normalized(self):
        aware = datetime(2024, 6, 1, 12, 0, tzinfo=timezone(timedelta(hours=3)))
        self.assertEqual(tzn.to_utc(aware, NEW_YORK), datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc))

    def test_round_trip_outside_transitions(self):
        local = datetime(2024, 7, 4, 18, 45)
        self.assertEqual(tzn.to_zoned(tzn.to_utc(local, NEW_YORK), NEW_YORK), local)

    def test_combine(self):
        self.assertEqual(
            tzn.combine(date(2024, 7, 1), time(9, 0), "Asia/Tokyo"),
            datetime(2024, 7, 1, 0, 0, tzinfo=timezone.utc),
        )


class LocalDayTest(SimpleTestCase):
    def test_regular_day_is_24_hours(self):
        self.assertEqual(tzn.local_day_range(date(2024, 1, 15), NEW_YORK).duration, timedelta(hours=24))

    def test_spring_forward_day_is_23_hours(self):
        self.assertEqual(tzn.local_day_range(date(2024, 3, 10), NEW_YORK).duration, timedelta(hours=23))

    def test_fall_back_day_is_25_hours(self):
        self.assertEqual(tzn.local_day_range(date(2024, 11, 3), NEW_YORK).duration, timedelta(hours=25))


class OffsetTest(SimpleTestCase):
    def test_utc_offset_hours(self):
        winter = datetime(2024, 1, 15, tzinfo=timezone.utc)
        summer = datetime(2024, 7, 15, tzinfo=timezone.utc)
        self.assertEqual(tzn.utc_offset_hours(NEW_YORK, winter), -5)
        self.assertEqual(tzn.utc_offset_hours(NEW_YORK, summer), -4)
        self.assertEqual(tzn.utc_offset_hours("Asia/Kolkata", winter), 5.5)

    def test_format_offset(self):
        self.assertEqual(tzn.format_offset(5.5), "UTC+05:30")
        self.assertEqual(tzn.format_offset(-5), "UTC-05:00")
        self.assertEqual(tzn.format_offset(0), "UTC+00:00")

    def test_common_timezones(self):
        zones = tzn.common_timezones(datetime(2024, 1, 15, tzinfo=timezone.utc))
        by_name = {zone["value"]: zone for zone in zones}

        self.assertEqual(len(zones), len(tzn.COMMON_TIMEZONES))
        self.assertEqual(by_name["UTC"]["offset"], "UTC+00:00")
        self.assertEqual(by_name[NEW_YORK]["label"], "America / New York")
        self.assertEqual(by_name[NEW_YORK]["offset"], "UTC-05:00")
