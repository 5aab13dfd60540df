"""
Chronos – centralised scheduling exceptions.

Import these from `core.exceptions` across the project instead of redefining
ad-hoc `Exception` subclasses in each app. The scheduling engine in
`algorithms.scheduling` raises them; the API layer converts them into HTTP
responses in `core.exceptions.exception_handler`.
"""

from __future__ import annotations


class ChronosBaseException(Exception):
    """Base class for all custom exceptions in the Chronos backend.

    Catch this (or a concrete subclass) in views / services when you want to
    convert engine errors into HTTP responses without leaking implementation
    details.
    """


class InvalidRange(ChronosBaseException, ValueError):
    """Raised when a time range is built from malformed instants.

    Typical scenarios:
    * A naive datetime where a UTC instant is required.
    * A NaN / infinite POSIX timestamp.
    * A value that is neither a datetime nor a number.
    """


class InvalidTimezone(ChronosBaseException, ValueError):
    """Raised when a time zone name is not known to the tz database."""

    def __init__(self, timezone_name):
        self.timezone_name = timezone_name
        super().__init__(f"Unknown time zone: {timezone_name!r}")


class InvalidRuleSyntax(ChronosBaseException, ValueError):
    """Raised when recurrence rule text fails to parse."""

    def __init__(self, message, rule_text=None):
        self.rule_text = rule_text
        super().__init__(message)


class NoBusinessDayFound(ChronosBaseException):
    """Raised when a bounded business-day search is exhausted.

    This only happens with a degenerate working-hours policy, e.g. one with no
    working days or a year of blocking holidays.
    """

    def __init__(self, origin, direction, max_days):
        self.origin = origin
        self.direction = direction
        self.max_days = max_days
        super().__init__(
            f"No business day found within {max_days} days "
            f"{'after' if direction > 0 else 'before'} {origin.isoformat()}"
        )


class SchedulingConflict(ChronosBaseException):
    """Raised when a candidate range collides with existing busy events."""

    def __init__(self, conflicting_event_ids):
        self.conflicting_event_ids = [str(event_id) for event_id in conflicting_event_ids]
        super().__init__(
            f"Event conflicts with {len(self.conflicting_event_ids)} existing event(s)"
        )


__all__ = [
    "ChronosBaseException",
    "InvalidRange",
    "InvalidTimezone",
    "InvalidRuleSyntax",
    "NoBusinessDayFound",
    "SchedulingConflict",
]
