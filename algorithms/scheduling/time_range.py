"""
Time range algebra.

This module provides the interval primitives the rest of the scheduling engine
is built on. Every range is a pair of UTC instants and every comparison uses
half-open `[start, end)` semantics: a range includes its start instant and
excludes its end instant, so two back-to-back ranges that only touch at a
boundary never overlap.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Union

from core.exceptions import InvalidRange

Instant = Union[datetime, int, float]


def to_instant(value: Instant) -> datetime:
    """
    Normalize an instant to a timezone-aware UTC datetime.

    Args:
        value: An aware datetime or a finite POSIX timestamp in seconds

    Returns:
        The same instant as an aware datetime in UTC

    Raises:
        InvalidRange: If the value is naive, non-finite or of the wrong type
    """
    if isinstance(value, datetime):
        if value.tzinfo is None or value.utcoffset() is None:
            raise InvalidRange(f"Naive datetime {value.isoformat()} is not a UTC instant")
        return value.astimezone(timezone.utc)

    # bool is an int subclass but never a meaningful timestamp
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if not math.isfinite(value):
            raise InvalidRange(f"Timestamp {value!r} is not finite")
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise InvalidRange(f"Timestamp {value!r} is out of range") from e

    raise InvalidRange(f"Unsupported instant type: {type(value).__name__}")


@dataclass(frozen=True, order=True)
class TimeRange:
    """Represents a time range with UTC start and end instants."""

    start: datetime
    end: datetime

    def __post_init__(self):
        start = to_instant(self.start)
        end = to_instant(self.end)
        if end < start:
            start, end = end, start
        # frozen dataclass, so bypass the generated __setattr__
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @classmethod
    def create(cls, a: Instant, b: Instant) -> "TimeRange":
        """
        Create a range from two instants given in any order.

        Args:
            a: One endpoint
            b: The other endpoint

        Returns:
            TimeRange with start <= end
        """
        return cls(a, b)

    @classmethod
    def from_duration(cls, start: Instant, minutes: float) -> "TimeRange":
        """Create a range starting at `start` lasting `minutes`."""
        start_dt = to_instant(start)
        return cls(start_dt, start_dt + timedelta(minutes=minutes))

    def __str__(self) -> str:
        """Return string representation."""
        return f"{self.start.strftime('%Y-%m-%d %H:%M')} - {self.end.strftime('%Y-%m-%d %H:%M')} UTC"

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def duration_minutes(self) -> int:
        return int(self.duration.total_seconds() // 60)

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def overlaps(self, other: "TimeRange") -> bool:
        """
        Check if this time range overlaps with another.

        Ranges that only share a boundary instant do not overlap.

        Args:
            other: Another time range

        Returns:
            True if the ranges overlap, False otherwise
        """
        if self.is_empty or other.is_empty:
            return False
        return (self.start < other.end) and (other.start < self.end)

    def contains(self, point: Instant) -> bool:
        """
        Check if this time range contains a specific instant.

        Args:
            point: An aware datetime or timestamp

        Returns:
            True if the instant is within [start, end), False otherwise
        """
        return self.start <= to_instant(point) < self.end

    def contains_range(self, other: "TimeRange") -> bool:
        """
        Check if this time range fully contains another range.

        Args:
            other: Another time range

        Returns:
            True if this range fully contains the other range, False otherwise
        """
        return (self.start <= other.start) and (self.end >= other.end)

    def intersect(self, other: "TimeRange") -> Optional["TimeRange"]:
        """Return the overlapping part of both ranges, or None if they don't overlap."""
        if not self.overlaps(other):
            return None
        return TimeRange(max(self.start, other.start), min(self.end, other.end))

    def shift(self, delta: timedelta) -> "TimeRange":
        return TimeRange(self.start + delta, self.end + delta)

    def to_dict(self):
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def create(a: Instant, b: Instant) -> TimeRange:
    """Create a TimeRange, ordering the endpoints so that start <= end."""
    return TimeRange.create(a, b)


def overlaps(r1: TimeRange, r2: TimeRange) -> bool:
    """Half-open overlap test; touching ranges do not overlap."""
    return r1.overlaps(r2)


def intersect(r1: TimeRange, r2: TimeRange) -> Optional[TimeRange]:
    """Intersection of two ranges, None if disjoint."""
    return r1.intersect(r2)


def is_valid_range(start: Instant, end: Instant) -> bool:
    """
    Check that both instants are valid and already in order.

    Unlike `create`, reversed endpoints are reported as invalid instead of
    being swapped.
    """
    try:
        return to_instant(start) <= to_instant(end)
    except InvalidRange:
        return False


def merge(ranges: Iterable[TimeRange]) -> List[TimeRange]:
    """
    Merge overlapping or touching ranges into a minimal disjoint cover.

    Args:
        ranges: Ranges in any order

    Returns:
        Pairwise-disjoint ranges sorted by start whose union equals the union
        of the input ranges
    """
    ordered = sorted(ranges)
    if not ordered:
        return []

    merged = [ordered[0]]
    for current in ordered[1:]:
        last = merged[-1]
        if current.start <= last.end:
            if current.end > last.end:
                merged[-1] = TimeRange(last.start, current.end)
        else:
            merged.append(current)

    return merged


def split(time_range: TimeRange, interval_minutes: float) -> List[TimeRange]:
    """
    Tile a range into consecutive chunks of `interval_minutes`.

    A final chunk shorter than the interval is kept.

    Args:
        time_range: Range to split
        interval_minutes: Chunk length in minutes, must be positive

    Returns:
        List of consecutive ranges covering `time_range`
    """
    if interval_minutes <= 0:
        raise ValueError(f"interval_minutes must be positive, got {interval_minutes}")

    step = timedelta(minutes=interval_minutes)
    chunks = []
    current = time_range.start

    while current < time_range.end:
        chunk_end = min(current + step, time_range.end)
        chunks.append(TimeRange(current, chunk_end))
        current = chunk_end

    return chunks
