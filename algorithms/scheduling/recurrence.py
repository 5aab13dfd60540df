"""
Recurrence rule parsing, formatting and bounded expansion.

This module implements the subset of RFC5545 RRULEs the calendar stores:
FREQ, INTERVAL, COUNT, UNTIL, BYDAY, BYMONTH, BYMONTHDAY and BYSETPOS.

Expansion works period by period (one day, week, month or year per
FREQ x INTERVAL step, weeks starting on Monday):

1. Build the period's candidate dates from the BYxxx parts
2. Apply BYSETPOS to the sorted candidate set
3. Attach the series' wall-clock time of day and convert each occurrence to
   UTC individually, so "09:00 New York" stays 09:00 across DST changes

BYMONTHDAY values that do not exist in a month (31 in February) are skipped,
never clamped to the month's last day.

Expansion is a lazy generator that always terminates: it stops at COUNT, at
UNTIL, at the end of the query window, or after `max_occurrences` instants,
whichever comes first. Hitting `max_occurrences` is a truncated but
successful result.
"""

import calendar
import enum
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Iterator, List, Optional, Tuple, Union

from core.exceptions import InvalidRuleSyntax

from . import timezone_normalizer
from .time_range import TimeRange

logger = logging.getLogger(__name__)

DEFAULT_MAX_OCCURRENCES = 500

# Give up on a rule that has produced nothing for this long (covers the
# 8-year leap-day gap around century years)
MAX_IDLE_DAYS = 28 * 366

# Longest possible period per frequency, in days
_PERIOD_DAYS = {"DAILY": 1, "WEEKLY": 7, "MONTHLY": 31, "YEARLY": 366}

_BYDAY_RE = re.compile(r"^([+-]?\d{1,2})?(MO|TU|WE|TH|FR|SA|SU)$")
_UNTIL_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})(?:T(\d{2})(\d{2})(\d{2})(Z)?)?$")
_INT_RE = re.compile(r"^[+-]?\d+$")


class Frequency(str, enum.Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class Weekday(enum.IntEnum):
    """Weekdays numbered like `date.weekday()`."""

    MO = 0
    TU = 1
    WE = 2
    TH = 3
    FR = 4
    SA = 5
    SU = 6

    @property
    def label(self) -> str:
        return calendar.day_name[self.value]


@dataclass(frozen=True)
class WeekdayRule:
    """A BYDAY entry: a weekday with an optional ordinal (2TU, -1FR)."""

    weekday: Weekday
    ordinal: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "weekday", Weekday(self.weekday))

    def __str__(self) -> str:
        prefix = str(self.ordinal) if self.ordinal is not None else ""
        return f"{prefix}{self.weekday.name}"

    @classmethod
    def parse(cls, token: str) -> "WeekdayRule":
        match = _BYDAY_RE.match(token.strip().upper())
        if not match:
            raise InvalidRuleSyntax(f"Invalid BYDAY value: {token!r}")
        ordinal = int(match.group(1)) if match.group(1) else None
        return cls(Weekday[match.group(2)], ordinal)


def _as_weekday_rule(value) -> WeekdayRule:
    if isinstance(value, WeekdayRule):
        return value
    if isinstance(value, str):
        return WeekdayRule.parse(value)
    return WeekdayRule(Weekday(value))


@dataclass(frozen=True)
class RecurrenceRule:
    """
    A validated recurrence rule.

    Instances are immutable. Construction validates every part, so an invalid
    combination (e.g. an ordinal BYDAY on a WEEKLY rule) can never exist.
    """

    frequency: Frequency
    interval: int = 1
    count: Optional[int] = None
    until: Optional[datetime] = None
    by_day: Tuple[WeekdayRule, ...] = ()
    by_month: Tuple[int, ...] = ()
    by_month_day: Tuple[int, ...] = ()
    by_set_pos: Tuple[int, ...] = ()

    def __post_init__(self):
        try:
            frequency = Frequency(self.frequency)
        except ValueError:
            raise InvalidRuleSyntax(f"Unsupported FREQ: {self.frequency!r}")
        object.__setattr__(self, "frequency", frequency)
        object.__setattr__(self, "by_day", tuple(_as_weekday_rule(day) for day in self.by_day))
        object.__setattr__(self, "by_month", tuple(self.by_month))
        object.__setattr__(self, "by_month_day", tuple(self.by_month_day))
        object.__setattr__(self, "by_set_pos", tuple(self.by_set_pos))

        if self.until is not None:
            until = self.until
            if until.tzinfo is None:
                until = until.replace(tzinfo=timezone.utc)
            object.__setattr__(self, "until", until.astimezone(timezone.utc).replace(microsecond=0))

        self._validate()

    def _validate(self):
        if self.interval < 1:
            raise InvalidRuleSyntax(f"INTERVAL must be >= 1, got {self.interval}")
        if self.count is not None and self.count < 1:
            raise InvalidRuleSyntax(f"COUNT must be >= 1, got {self.count}")

        for rule in self.by_day:
            if rule.ordinal is None:
                continue
            if self.frequency not in (Frequency.MONTHLY, Frequency.YEARLY):
                raise InvalidRuleSyntax(
                    f"BYDAY ordinals are only valid for MONTHLY or YEARLY rules, got {rule}"
                )
            if rule.ordinal == 0 or abs(rule.ordinal) > 53:
                raise InvalidRuleSyntax(f"BYDAY ordinal out of range: {rule}")

        for month in self.by_month:
            if not 1 <= month <= 12:
                raise InvalidRuleSyntax(f"BYMONTH out of range: {month}")

        if self.by_month_day and self.frequency == Frequency.WEEKLY:
            raise InvalidRuleSyntax("BYMONTHDAY is not valid for WEEKLY rules")
        for day in self.by_month_day:
            if day == 0 or abs(day) > 31:
                raise InvalidRuleSyntax(f"BYMONTHDAY out of range: {day}")

        for position in self.by_set_pos:
            if position == 0 or abs(position) > 366:
                raise InvalidRuleSyntax(f"BYSETPOS out of range: {position}")
        if self.by_set_pos and not (self.by_day or self.by_month or self.by_month_day):
            raise InvalidRuleSyntax("BYSETPOS requires another BYxxx rule part")

    def __str__(self) -> str:
        return format_rule(self)


@dataclass(frozen=True)
class ExceptionSet:
    """
    Dates excluded from a series (EXDATE).

    Members are calendar dates compared in the rule's time zone; aware
    datetimes are converted to that zone first, naive ones use their date.
    """

    values: frozenset = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "values", frozenset(self.values))

    @classmethod
    def of(cls, *values: Union[date, datetime]) -> "ExceptionSet":
        return cls(frozenset(values))

    def __len__(self) -> int:
        return len(self.values)

    def dates_in(self, tz: str) -> frozenset:
        dates = set()
        for value in self.values:
            if isinstance(value, datetime):
                if value.tzinfo is not None:
                    value = timezone_normalizer.to_zoned(value, tz)
                dates.add(value.date())
            else:
                dates.add(value)
        return frozenset(dates)


EMPTY_EXCEPTIONS = ExceptionSet()


# ---------------------------------------------------------------------------
# Parsing & formatting
# ---------------------------------------------------------------------------

_SUPPORTED_KEYS = ("FREQ", "INTERVAL", "COUNT", "UNTIL", "BYDAY", "BYMONTH", "BYMONTHDAY", "BYSETPOS")


def _parse_int(key: str, value: str) -> int:
    if not _INT_RE.match(value):
        raise InvalidRuleSyntax(f"{key} must be an integer, got {value!r}")
    return int(value)


def _parse_int_list(key: str, value: str) -> Tuple[int, ...]:
    return tuple(_parse_int(key, item.strip()) for item in value.split(","))


def _parse_until(value: str) -> datetime:
    match = _UNTIL_RE.match(value)
    if not match:
        raise InvalidRuleSyntax(f"Invalid UNTIL value: {value!r}")
    year, month, day = (int(part) for part in match.group(1, 2, 3))
    try:
        if match.group(4) is None:
            # A date-only UNTIL includes the whole day
            return datetime.combine(date(year, month, day), time(23, 59, 59), tzinfo=timezone.utc)
        hour, minute, second = (int(part) for part in match.group(4, 5, 6))
        return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
    except ValueError as e:
        raise InvalidRuleSyntax(f"Invalid UNTIL value: {value!r}") from e


def parse(rule_text: str) -> RecurrenceRule:
    """
    Parse RRULE text into a RecurrenceRule.

    Args:
        rule_text: e.g. "FREQ=WEEKLY;INTERVAL=2;BYDAY=MO,WE" (an "RRULE:" prefix
            is accepted, keys are case-insensitive)

    Returns:
        The validated rule

    Raises:
        InvalidRuleSyntax: If the text is malformed, uses unsupported parts or
            holds out-of-range values
    """
    if not isinstance(rule_text, str) or not rule_text.strip():
        raise InvalidRuleSyntax("Recurrence rule is empty", rule_text)

    text = rule_text.strip()
    if text.upper().startswith("RRULE:"):
        text = text[len("RRULE:"):]

    parts = {}
    for chunk in text.split(";"):
        if not chunk.strip():
            continue
        if "=" not in chunk:
            raise InvalidRuleSyntax(f"Malformed rule part {chunk!r}", rule_text)
        key, value = (piece.strip() for piece in chunk.split("=", 1))
        key = key.upper()
        if key not in _SUPPORTED_KEYS:
            raise InvalidRuleSyntax(f"Unsupported rule part {key!r}", rule_text)
        if key in parts:
            raise InvalidRuleSyntax(f"Duplicate rule part {key!r}", rule_text)
        if not value:
            raise InvalidRuleSyntax(f"Empty value for {key!r}", rule_text)
        parts[key] = value

    if "FREQ" not in parts:
        raise InvalidRuleSyntax("FREQ is required", rule_text)

    try:
        return RecurrenceRule(
            frequency=parts["FREQ"].upper(),
            interval=_parse_int("INTERVAL", parts["INTERVAL"]) if "INTERVAL" in parts else 1,
            count=_parse_int("COUNT", parts["COUNT"]) if "COUNT" in parts else None,
            until=_parse_until(parts["UNTIL"]) if "UNTIL" in parts else None,
            by_day=tuple(WeekdayRule.parse(token) for token in parts["BYDAY"].split(","))
            if "BYDAY" in parts
            else (),
            by_month=_parse_int_list("BYMONTH", parts["BYMONTH"]) if "BYMONTH" in parts else (),
            by_month_day=_parse_int_list("BYMONTHDAY", parts["BYMONTHDAY"])
            if "BYMONTHDAY" in parts
            else (),
            by_set_pos=_parse_int_list("BYSETPOS", parts["BYSETPOS"]) if "BYSETPOS" in parts else (),
        )
    except InvalidRuleSyntax as e:
        raise InvalidRuleSyntax(str(e), rule_text) from e


def format_rule(rule: RecurrenceRule) -> str:
    """Render a rule as canonical RRULE text (without the "RRULE:" prefix)."""
    parts = [f"FREQ={rule.frequency.value}"]
    if rule.interval != 1:
        parts.append(f"INTERVAL={rule.interval}")
    if rule.count is not None:
        parts.append(f"COUNT={rule.count}")
    if rule.until is not None:
        parts.append(f"UNTIL={rule.until.strftime('%Y%m%dT%H%M%SZ')}")
    if rule.by_day:
        parts.append("BYDAY=" + ",".join(str(day) for day in rule.by_day))
    if rule.by_month:
        parts.append("BYMONTH=" + ",".join(str(month) for month in rule.by_month))
    if rule.by_month_day:
        parts.append("BYMONTHDAY=" + ",".join(str(day) for day in rule.by_month_day))
    if rule.by_set_pos:
        parts.append("BYSETPOS=" + ",".join(str(pos) for pos in rule.by_set_pos))
    return ";".join(parts)


# ---------------------------------------------------------------------------
# Description
# ---------------------------------------------------------------------------

_UNITS = {
    Frequency.DAILY: ("Daily", "day"),
    Frequency.WEEKLY: ("Weekly", "week"),
    Frequency.MONTHLY: ("Monthly", "month"),
    Frequency.YEARLY: ("Yearly", "year"),
}


def _ordinal(n: int) -> str:
    if n == -1:
        return "last"
    if n < 0:
        return f"{_ordinal(-n)} to last"
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def _join(items: List[str]) -> str:
    if len(items) <= 1:
        return "".join(items)
    return f"{', '.join(items[:-1])} and {items[-1]}"


def describe(rule: Optional[RecurrenceRule]) -> str:
    """
    Human-readable English summary of a rule.

    Example: "Every 2 weeks on Monday and Wednesday, 5 times"
    """
    if rule is None:
        return "Does not repeat"

    adverb, unit = _UNITS[rule.frequency]
    text = adverb if rule.interval == 1 else f"Every {rule.interval} {unit}s"

    if rule.by_day:
        days = [
            f"the {_ordinal(day.ordinal)} {day.weekday.label}" if day.ordinal else day.weekday.label
            for day in rule.by_day
        ]
        text += f" on {_join(days)}"
    if rule.by_month_day:
        days = [f"{_ordinal(day)} day" if day < 0 else _ordinal(day) for day in rule.by_month_day]
        text += f" on the {_join(days)}"
    if rule.by_month:
        text += f" in {_join([calendar.month_name[month] for month in rule.by_month])}"
    if rule.by_set_pos:
        text += f", taking the {_join([_ordinal(pos) for pos in rule.by_set_pos])} of each {unit}"
    if rule.count is not None:
        text += ", once" if rule.count == 1 else f", {rule.count} times"
    if rule.until is not None:
        text += f", until {rule.until:%B} {rule.until.day}, {rule.until.year}"
    return text


# ---------------------------------------------------------------------------
# Expansion
# ---------------------------------------------------------------------------


def _add_months(year: int, month: int, months: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def _week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def _period_start(rule: RecurrenceRule, anchor: date, period: int) -> Optional[date]:
    """First calendar day of the given period, or None past the supported year range."""
    step = period * rule.interval
    try:
        if rule.frequency == Frequency.DAILY:
            return anchor + timedelta(days=step)
        if rule.frequency == Frequency.WEEKLY:
            return _week_start(anchor) + timedelta(weeks=step)
        if rule.frequency == Frequency.MONTHLY:
            year, month = _add_months(anchor.year, anchor.month, step)
            return date(year, month, 1)
        return date(anchor.year + step, 1, 1)
    except (OverflowError, ValueError):
        return None


def _first_period(rule: RecurrenceRule, anchor: date, target: date) -> int:
    """Index of a period that starts no later than `target`, skipping whole periods."""
    if target <= anchor:
        return 0
    if rule.frequency == Frequency.DAILY:
        elapsed = (target - anchor).days
    elif rule.frequency == Frequency.WEEKLY:
        elapsed = (_week_start(target) - _week_start(anchor)).days // 7
    elif rule.frequency == Frequency.MONTHLY:
        elapsed = (target.year - anchor.year) * 12 + target.month - anchor.month
    else:
        elapsed = target.year - anchor.year
    return max(elapsed // rule.interval - 1, 0)


def _weekdays_in(days: Iterable[date], weekday: int) -> List[date]:
    return [day for day in days if day.weekday() == weekday]


def _select_by_day(rule: RecurrenceRule, days: List[date]) -> set:
    selected = set()
    for by_day in rule.by_day:
        matching = _weekdays_in(days, by_day.weekday)
        if by_day.ordinal is None:
            selected.update(matching)
        elif by_day.ordinal > 0 and by_day.ordinal <= len(matching):
            selected.add(matching[by_day.ordinal - 1])
        elif by_day.ordinal < 0 and -by_day.ordinal <= len(matching):
            selected.add(matching[by_day.ordinal])
    return selected


def _month_days(year: int, month: int) -> List[date]:
    return [date(year, month, day) for day in range(1, calendar.monthrange(year, month)[1] + 1)]


def _resolve_month_day(value: int, days_in_month: int) -> Optional[int]:
    resolved = value if value > 0 else days_in_month + value + 1
    if 1 <= resolved <= days_in_month:
        return resolved
    return None


def _month_candidates(rule: RecurrenceRule, year: int, month: int, anchor: date) -> set:
    days = _month_days(year, month)
    by_month_day = None
    if rule.by_month_day:
        resolved = (_resolve_month_day(value, len(days)) for value in rule.by_month_day)
        by_month_day = {date(year, month, day) for day in resolved if day is not None}

    by_day = _select_by_day(rule, days) if rule.by_day else None

    if by_month_day is None and by_day is None:
        if anchor.day > len(days):
            return set()
        return {date(year, month, anchor.day)}
    if by_month_day is None:
        return by_day
    if by_day is None:
        return by_month_day
    return by_month_day & by_day


def _matches_filters(rule: RecurrenceRule, day: date) -> bool:
    """BYxxx parts acting as filters on DAILY candidates."""
    if rule.by_month and day.month not in rule.by_month:
        return False
    if rule.by_month_day:
        days_in_month = calendar.monthrange(day.year, day.month)[1]
        if day.day not in {_resolve_month_day(value, days_in_month) for value in rule.by_month_day}:
            return False
    if rule.by_day and day.weekday() not in {by_day.weekday for by_day in rule.by_day}:
        return False
    return True


def _period_candidates(rule: RecurrenceRule, anchor: date, start: date) -> set:
    if rule.frequency == Frequency.DAILY:
        return {start} if _matches_filters(rule, start) else set()

    if rule.frequency == Frequency.WEEKLY:
        weekdays = {by_day.weekday for by_day in rule.by_day} or {anchor.weekday()}
        days = (start + timedelta(days=offset) for offset in range(7))
        return {
            day
            for day in days
            if day.weekday() in weekdays and (not rule.by_month or day.month in rule.by_month)
        }

    if rule.frequency == Frequency.MONTHLY:
        if rule.by_month and start.month not in rule.by_month:
            return set()
        return _month_candidates(rule, start.year, start.month, anchor)

    year = start.year
    if rule.by_month or rule.by_month_day:
        months = rule.by_month or range(1, 13)
        candidates = set()
        for month in months:
            candidates |= _month_candidates(rule, year, month, anchor)
        return candidates
    if rule.by_day:
        year_days = [date(year, 1, 1) + timedelta(days=offset) for offset in range(366 if calendar.isleap(year) else 365)]
        return _select_by_day(rule, year_days)
    try:
        return {date(year, anchor.month, anchor.day)}
    except ValueError:
        # Feb 29 anchor in a non-leap year
        return set()


def _period_dates(rule: RecurrenceRule, anchor: date, start: date) -> List[date]:
    candidates = sorted(_period_candidates(rule, anchor, start))
    if not rule.by_set_pos or not candidates:
        return candidates

    selected = set()
    for position in rule.by_set_pos:
        if position > 0 and position <= len(candidates):
            selected.add(candidates[position - 1])
        elif position < 0 and -position <= len(candidates):
            selected.add(candidates[position])
    return sorted(selected)


def _anchor_local(dtstart, window: TimeRange, tz: str) -> datetime:
    if dtstart is None:
        return timezone_normalizer.to_zoned(window.start, tz)
    if isinstance(dtstart, datetime):
        if dtstart.tzinfo is None:
            return dtstart
        return timezone_normalizer.to_zoned(dtstart, tz)
    return datetime.combine(dtstart, time.min)


def expand(
    rule: RecurrenceRule,
    window: TimeRange,
    exceptions: Optional[ExceptionSet] = None,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
    dtstart: Union[datetime, date, None] = None,
    tz: str = "UTC",
) -> Iterator[datetime]:
    """
    Expand a rule into occurrence instants inside a window.

    Args:
        rule: Recurrence rule
        window: Half-open UTC query window; only occurrences starting inside it
            are produced
        exceptions: Dates to skip (they still consume COUNT)
        max_occurrences: Hard cap on produced instants
        dtstart: Series start, as an aware instant or a naive wall-clock time in
            `tz`; defaults to the window start. Its time of day is the time of
            every occurrence
        tz: IANA zone used for wall-clock arithmetic

    Returns:
        Lazy iterator of aware UTC datetimes in ascending order. Iterating again
        with the same arguments yields the same instants.

    Raises:
        InvalidTimezone: If `tz` is unknown
    """
    timezone_normalizer.get_timezone(tz)
    anchor = _anchor_local(dtstart, window, tz)
    excluded = (exceptions or EMPTY_EXCEPTIONS).dates_in(tz)
    return _expand(rule, window, excluded, max_occurrences, anchor, tz)


def _expand(
    rule: RecurrenceRule,
    window: TimeRange,
    excluded: frozenset,
    max_occurrences: int,
    anchor: datetime,
    tz: str,
) -> Iterator[datetime]:
    if max_occurrences <= 0:
        return

    anchor_date = anchor.date()
    at = anchor.time()
    # One day of slack covers any UTC offset between the window and the zone
    last_day = timezone_normalizer.to_zoned(window.end, tz).date() + timedelta(days=1)

    if rule.count is None:
        first_day = timezone_normalizer.to_zoned(window.start, tz).date() - timedelta(days=1)
        period = _first_period(rule, anchor_date, first_day)
    else:
        period = 0

    consumed = 0
    produced = 0
    last_productive = _period_start(rule, anchor_date, period)
    idle_limit = MAX_IDLE_DAYS + _PERIOD_DAYS[rule.frequency.value] * rule.interval

    while True:
        start = _period_start(rule, anchor_date, period)
        if start is None or start > last_day:
            return
        if (start - last_productive).days > idle_limit:
            logger.debug(f"Rule {format_rule(rule)} produced nothing for {idle_limit} days, stopping")
            return

        for day in _period_dates(rule, anchor_date, start):
            local = datetime.combine(day, at)
            if local < anchor:
                continue
            last_productive = day

            instant = timezone_normalizer.to_utc(local, tz)
            if rule.until is not None and instant > rule.until:
                return
            if rule.count is not None:
                if consumed >= rule.count:
                    return
                consumed += 1
            if instant >= window.end:
                return
            if instant < window.start or day in excluded:
                continue

            yield instant
            produced += 1
            if produced >= max_occurrences:
                logger.debug(
                    f"Expansion of {format_rule(rule)} truncated at {max_occurrences} occurrences"
                )
                return

        period += 1


def occurrence_ranges(
    rule: RecurrenceRule,
    duration: timedelta,
    window: TimeRange,
    exceptions: Optional[ExceptionSet] = None,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
    dtstart: Union[datetime, date, None] = None,
    tz: str = "UTC",
) -> Iterator[TimeRange]:
    """Pair every occurrence instant with the event duration."""
    for instant in expand(rule, window, exceptions, max_occurrences, dtstart, tz):
        yield TimeRange(instant, instant + duration)
