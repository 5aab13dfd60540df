# apps/calendarapp/serializers.py
from datetime import date

from django.utils.translation import gettext_lazy as _
from rest_framework import serializers

from algorithms.scheduling import recurrence, timezone_normalizer
from apps.calendarapp.models import CalendarEvent
from core.exceptions import InvalidRuleSyntax
from core.utils.formatters import format_duration, format_human_duration, format_time_range


def validate_timezone_name(value):
    if not timezone_normalizer.is_valid_timezone(value):
        raise serializers.ValidationError(_("Unknown time zone: %(tz)s") % {"tz": value})
    return value


def validate_rule_text(value):
    """Parse RRULE text and return its canonical form"""
    if not value:
        return ""
    try:
        return recurrence.format_rule(recurrence.parse(value))
    except InvalidRuleSyntax as e:
        raise serializers.ValidationError(str(e))


class CalendarEventSerializer(serializers.ModelSerializer):
    """Serializer for calendar events"""

    recurrence_description = serializers.SerializerMethodField()
    duration_display = serializers.SerializerMethodField()
    time_display = serializers.SerializerMethodField()
    excluded_dates = serializers.ListField(child=serializers.DateField(), required=False)

    class Meta:
        model = CalendarEvent
        fields = [
            "id",
            "owner_id",
            "title",
            "start_time",
            "end_time",
            "all_day",
            "is_busy",
            "timezone",
            "recurrence_rule",
            "recurrence_description",
            "recurrence_end",
            "recurrence_parent",
            "excluded_dates",
            "duration_display",
            "time_display",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "recurrence_end", "created_at", "updated_at"]

    def get_recurrence_description(self, obj):
        return recurrence.describe(obj.rule)

    def get_duration_display(self, obj):
        return format_duration((obj.end_time - obj.start_time).total_seconds())

    def get_time_display(self, obj):
        return format_time_range(obj.time_range, obj.timezone)

    def validate_timezone(self, value):
        return validate_timezone_name(value)

    def validate_recurrence_rule(self, value):
        return validate_rule_text(value)

    def validate_excluded_dates(self, value):
        return sorted({day.isoformat() for day in value})

    def validate(self, data):
        """Check the time range against current values on partial updates"""
        start_time = data.get("start_time", getattr(self.instance, "start_time", None))
        end_time = data.get("end_time", getattr(self.instance, "end_time", None))

        if start_time and end_time and end_time < start_time:
            raise serializers.ValidationError({"end_time": _("End time must not be before start time")})

        return data


class ConflictCheckSerializer(serializers.Serializer):
    """Input for a conflict check"""

    owner_id = serializers.CharField(max_length=64)
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    exclude_event_id = serializers.UUIDField(required=False, allow_null=True)


class ConflictSerializer(serializers.Serializer):
    """A conflicting event with its colliding range"""

    id = serializers.CharField()
    title = serializers.CharField()
    start = serializers.DateTimeField(source="range.start")
    end = serializers.DateTimeField(source="range.end")
    is_recurring = serializers.BooleanField()


class TimeWindowSerializer(serializers.Serializer):
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()

    def validate(self, data):
        if data["end"] < data["start"]:
            raise serializers.ValidationError({"end": _("End must not be before start")})
        return data


class TimeRangeSerializer(serializers.Serializer):
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    duration_minutes = serializers.IntegerField()


class TimeSlotSerializer(serializers.Serializer):
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    available = serializers.BooleanField()
    duration_minutes = serializers.IntegerField()
    duration_display = serializers.SerializerMethodField()

    def get_duration_display(self, obj):
        return format_human_duration(obj.duration_minutes)


class AvailableSlotsRequestSerializer(TimeWindowSerializer):
    """Input for an availability search"""

    owner_id = serializers.CharField(max_length=64)
    min_duration = serializers.IntegerField(required=False, min_value=1)
    max_results = serializers.IntegerField(required=False, min_value=1, max_value=1000, default=100)
    slot_duration = serializers.IntegerField(required=False, min_value=1, max_value=1440)


class DaySlotsQuerySerializer(serializers.Serializer):
    owner_id = serializers.CharField(max_length=64)
    date = serializers.DateField()
    business_hours_only = serializers.BooleanField(required=False, allow_null=True, default=None)


class RecurrencePreviewSerializer(serializers.Serializer):
    """Input for a recurrence preview"""

    rule = serializers.CharField(max_length=500)
    dtstart = serializers.DateTimeField()
    timezone = serializers.CharField(max_length=64, default="UTC")
    end = serializers.DateTimeField(required=False)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=500, default=10)

    def validate_timezone(self, value):
        return validate_timezone_name(value)

    def validate_rule(self, value):
        return validate_rule_text(value)


class BusinessDayQuerySerializer(serializers.Serializer):
    date = serializers.DateField(default=date.today)
    direction = serializers.ChoiceField(choices=["next", "previous"], default="next")


class AddBusinessDaysQuerySerializer(serializers.Serializer):
    date = serializers.DateField(default=date.today)
    days = serializers.IntegerField(min_value=-3650, max_value=3650)
