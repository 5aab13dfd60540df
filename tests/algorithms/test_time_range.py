# tests/algorithms/test_time_range.py
from datetime import datetime, timedelta, timezone

from django.test import SimpleTestCase

from algorithms.scheduling import time_range as tr
from algorithms.scheduling.time_range import TimeRange
from core.exceptions import InvalidRange


def at(hour, minute=0, day=15):
    return datetime(2024, 1, day, hour, minute, tzinfo=timezone.utc)


class TimeRangeConstructionTest(SimpleTestCase):
    """Test cases for building time ranges"""

    def test_create_orders_endpoints(self):
        self.assertEqual(tr.create(at(11), at(10)), tr.create(at(10), at(11)))
        self.assertEqual(tr.create(at(11), at(10)).start, at(10))

    def test_timestamps_are_accepted(self):
        time_range = tr.create(0, 3600)
        self.assertEqual(time_range.start, datetime(1970, 1, 1, tzinfo=timezone.utc))
        self.assertEqual(time_range.duration, timedelta(hours=1))

    def test_aware_datetimes_are_normalized_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        time_range = TimeRange(datetime(2024, 1, 15, 12, 0, tzinfo=plus_two), at(12))
        self.assertEqual(time_range.start, at(10))
        self.assertEqual(time_range.start.tzinfo, timezone.utc)

    def test_invalid_instants_are_rejected(self):
        with self.assertRaises(InvalidRange):
            TimeRange(datetime(2024, 1, 15, 10, 0), at(11))
        with self.assertRaises(InvalidRange):
            TimeRange(float("nan"), 10)
        with self.assertRaises(InvalidRange):
            TimeRange("2024-01-15", at(11))
        with self.assertRaises(InvalidRange):
            TimeRange(True, 10)

    def test_invalid_range_is_a_value_error(self):
        with self.assertRaises(ValueError):
            TimeRange(float("inf"), 10)

    def test_is_valid_range(self):
        self.assertTrue(tr.is_valid_range(at(10), at(11)))
        self.assertTrue(tr.is_valid_range(at(10), at(10)))
        self.assertFalse(tr.is_valid_range(at(11), at(10)))
        self.assertFalse(tr.is_valid_range(datetime(2024, 1, 15), at(10)))

    def test_from_duration(self):
        time_range = TimeRange.from_duration(at(9), 45)
        self.assertEqual(time_range.end, at(9, 45))
        self.assertEqual(time_range.duration_minutes, 45)


class TimeRangeRelationsTest(SimpleTestCase):
    """Test cases for overlap, containment and intersection"""

    def test_touching_ranges_do_not_overlap(self):
        first = tr.create(at(10), at(11))
        second = tr.create(at(11), at(12))
        self.assertFalse(tr.overlaps(first, second))
        self.assertFalse(tr.overlaps(second, first))

    def test_overlap_is_symmetric(self):
        first = tr.create(at(10), at(11))
        second = tr.create(at(10, 30), at(11, 30))
        self.assertTrue(tr.overlaps(first, second))
        self.assertTrue(tr.overlaps(second, first))

    def test_empty_range_overlaps_nothing(self):
        empty = tr.create(at(10, 30), at(10, 30))
        self.assertTrue(empty.is_empty)
        self.assertFalse(tr.overlaps(empty, tr.create(at(10), at(11))))

    def test_contains_is_half_open(self):
        time_range = tr.create(at(10), at(11))
        self.assertTrue(time_range.contains(at(10)))
        self.assertTrue(time_range.contains(at(10, 59)))
        self.assertFalse(time_range.contains(at(11)))

    def test_contains_range(self):
        outer = tr.create(at(9), at(17))
        self.assertTrue(outer.contains_range(tr.create(at(9), at(17))))
        self.assertTrue(outer.contains_range(tr.create(at(10), at(11))))
        self.assertFalse(outer.contains_range(tr.create(at(16), at(18))))

    def test_intersect(self):
        first = tr.create(at(10), at(12))
        second = tr.create(at(11), at(13))
        self.assertEqual(tr.intersect(first, second), tr.create(at(11), at(12)))
        self.assertIsNone(tr.intersect(first, tr.create(at(12), at(13))))

    def test_shift(self):
        self.assertEqual(tr.create(at(10), at(11)).shift(timedelta(hours=1)), tr.create(at(11), at(12)))


class MergeSplitTest(SimpleTestCase):
    """Test cases for merge and split"""

    def test_merge_coalesces_overlapping_and_touching(self):
        ranges = [
            tr.create(at(13), at(14)),
            tr.create(at(9), at(10)),
            tr.create(at(10), at(11)),
            tr.create(at(10, 30), at(10, 45)),
            tr.create(at(15), at(16)),
            tr.create(at(15, 30), at(17)),
        ]

        merged = tr.merge(ranges)

        self.assertEqual(
            merged,
            [tr.create(at(9), at(11)), tr.create(at(13), at(14)), tr.create(at(15), at(17))],
        )

    def test_merge_output_is_disjoint_and_idempotent(self):
        ranges = [tr.create(at(h), at(h + 2)) for h in (1, 4, 5, 9, 10, 14)]
        merged = tr.merge(ranges)

        for first, second in zip(merged, merged[1:]):
            self.assertLess(first.end, second.start)
        self.assertEqual(tr.merge(merged), merged)

    def test_merge_preserves_union(self):
        ranges = [tr.create(at(1), at(3)), tr.create(at(2), at(4)), tr.create(at(6), at(7))]
        merged = tr.merge(ranges)

        for minute in range(0, 8 * 60, 15):
            point = at(0) + timedelta(minutes=minute)
            self.assertEqual(
                any(r.contains(point) for r in ranges),
                any(r.contains(point) for r in merged),
            )

    def test_merge_empty(self):
        self.assertEqual(tr.merge([]), [])

    def test_split_keeps_short_final_chunk(self):
        chunks = tr.split(tr.create(at(9), at(10, 15)), 30)

        self.assertEqual(len(chunks), 3)
        self.assertEqual(chunks[0], tr.create(at(9), at(9, 30)))
        self.assertEqual(chunks[-1], tr.create(at(10), at(10, 15)))

    def test_split_chunks_are_contiguous(self):
        whole = tr.create(at(9), at(17))
        chunks = tr.split(whole, 45)

        self.assertEqual(chunks[0].start, whole.start)
        self.assertEqual(chunks[-1].end, whole.end)
        for first, second in zip(chunks, chunks[1:]):
            self.assertEqual(first.end, second.start)

    def test_split_rejects_non_positive_interval(self):
        with self.assertRaises(ValueError):
            tr.split(tr.create(at(9), at(10)), 0)
