# apps/calendarapp/models.py
import uuid
from datetime import date

from django.core.exceptions import ValidationError
from django.db import models
from django.utils.translation import gettext_lazy as _

from algorithms.scheduling import recurrence, timezone_normalizer
from algorithms.scheduling.conflict_detector import Event, EventDraft
from algorithms.scheduling.recurrence import ExceptionSet
from algorithms.scheduling.time_range import TimeRange
from core.exceptions import InvalidRuleSyntax


class CalendarEvent(models.Model):
    """A calendar event, optionally the master of a recurring series"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner_id = models.CharField(_("Owner"), max_length=64, db_index=True)
    title = models.CharField(_("Title"), max_length=255, blank=True)
    start_time = models.DateTimeField(_("Start Time"), db_index=True)
    end_time = models.DateTimeField(_("End Time"), db_index=True)
    all_day = models.BooleanField(_("All Day"), default=False)
    is_busy = models.BooleanField(_("Busy"), default=True)
    timezone = models.CharField(_("Time Zone"), max_length=64, default="UTC")
    recurrence_rule = models.CharField(_("Recurrence Rule"), max_length=500, blank=True)
    # Latest instant an occurrence can end; null while the series is unbounded
    recurrence_end = models.DateTimeField(_("Recurrence End"), null=True, blank=True)
    recurrence_parent = models.ForeignKey(
        "self",
        on_delete=models.CASCADE,
        related_name="detached_occurrences",
        verbose_name=_("Recurrence Parent"),
        null=True,
        blank=True,
    )
    excluded_dates = models.JSONField(_("Excluded Dates"), default=list, blank=True)
    created_at = models.DateTimeField(_("Created At"), auto_now_add=True)
    updated_at = models.DateTimeField(_("Updated At"), auto_now=True)

    class Meta:
        verbose_name = _("Calendar Event")
        verbose_name_plural = _("Calendar Events")
        ordering = ["start_time"]
        indexes = [
            models.Index(fields=["owner_id", "start_time", "end_time"]),
            models.Index(fields=["owner_id", "recurrence_end"]),
        ]

    def __str__(self):
        return f"{self.title or _('Untitled')} - {self.start_time.strftime('%Y-%m-%d %H:%M')}"

    @property
    def rule(self):
        if not self.recurrence_rule:
            return None
        return recurrence.parse(self.recurrence_rule)

    @property
    def time_range(self):
        return TimeRange(self.start_time, self.end_time)

    @property
    def exception_set(self):
        return ExceptionSet(date.fromisoformat(value) for value in self.excluded_dates)

    def clean(self):
        """Validate times, time zone and recurrence rule"""
        if self.start_time and self.end_time and self.end_time < self.start_time:
            raise ValidationError(_("End time must not be before start time"))

        if not timezone_normalizer.is_valid_timezone(self.timezone):
            raise ValidationError({"timezone": _("Unknown time zone")})

        if self.recurrence_rule:
            try:
                recurrence.parse(self.recurrence_rule)
            except InvalidRuleSyntax as e:
                raise ValidationError({"recurrence_rule": str(e)})

        for value in self.excluded_dates:
            try:
                date.fromisoformat(value)
            except (TypeError, ValueError):
                raise ValidationError({"excluded_dates": _("Invalid date: %(value)s") % {"value": value}})

    def save(self, *args, **kwargs):
        """Keep recurrence_end in sync with the rule"""
        rule = self.rule
        if rule is not None and rule.until is not None:
            self.recurrence_end = rule.until + (self.end_time - self.start_time)
        elif rule is not None:
            self.recurrence_end = None
        else:
            self.recurrence_end = self.end_time
        super().save(*args, **kwargs)

    @classmethod
    def field_values(cls, draft: EventDraft):
        """Model field values for an engine draft"""
        return {
            "owner_id": str(draft.owner_id),
            "title": draft.title,
            "start_time": draft.range.start,
            "end_time": draft.range.end,
            "all_day": draft.all_day,
            "is_busy": draft.is_busy,
            "timezone": draft.timezone,
            "recurrence_rule": recurrence.format_rule(draft.recurrence) if draft.recurrence else "",
            "recurrence_parent_id": draft.recurrence_parent_id,
            "excluded_dates": sorted(day.isoformat() for day in draft.exceptions.dates_in(draft.timezone)),
        }

    def to_draft(self) -> EventDraft:
        return EventDraft(
            owner_id=self.owner_id,
            range=self.time_range,
            title=self.title,
            all_day=self.all_day,
            is_busy=self.is_busy,
            timezone=self.timezone,
            recurrence=self.rule,
            recurrence_parent_id=str(self.recurrence_parent_id) if self.recurrence_parent_id else None,
            exceptions=self.exception_set,
        )

    def to_engine_event(self) -> Event:
        return Event.from_draft(self.id, self.to_draft())


class OwnerScheduleLock(models.Model):
    """One row per owner, locked to serialize that owner's conflict-checked writes"""

    owner_id = models.CharField(_("Owner"), max_length=64, unique=True)
    created_at = models.DateTimeField(_("Created At"), auto_now_add=True)

    class Meta:
        verbose_name = _("Owner Schedule Lock")
        verbose_name_plural = _("Owner Schedule Locks")

    def __str__(self):
        return self.owner_id
