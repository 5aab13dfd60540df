"""
Swagger documentation decorators for the calendar endpoints.
"""

from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import serializers

from apps.calendarapp.serializers import (
    AddBusinessDaysQuerySerializer,
    AvailableSlotsRequestSerializer,
    BusinessDayQuerySerializer,
    CalendarEventSerializer,
    ConflictCheckSerializer,
    ConflictSerializer,
    DaySlotsQuerySerializer,
    RecurrencePreviewSerializer,
    TimeRangeSerializer,
    TimeSlotSerializer,
    TimeWindowSerializer,
)


# ─────────────────────────────────────────────────────────────────────────────
# Response serializers
# ─────────────────────────────────────────────────────────────────────────────
class ConflictCheckResponse(serializers.Serializer):
    has_conflict = serializers.BooleanField()
    conflicts = ConflictSerializer(many=True)


class ErrorResponse(serializers.Serializer):
    error = serializers.CharField(help_text="Machine-readable error code")
    message = serializers.CharField(help_text="Human-readable message")
    code = serializers.CharField(help_text="Exception class")
    status_code = serializers.IntegerField()


class ConflictErrorResponse(ErrorResponse):
    errors = serializers.DictField(help_text="Contains conflicting_event_ids")


class RecurrencePreviewResponse(serializers.Serializer):
    rule = serializers.CharField(help_text="Canonical RRULE text")
    description = serializers.CharField()
    occurrences = serializers.ListField(child=serializers.DateTimeField())


class BusinessDayResponse(serializers.Serializer):
    date = serializers.DateField()


class TimezoneResponse(serializers.Serializer):
    value = serializers.CharField()
    label = serializers.CharField()
    offset = serializers.CharField()


# ─────────────────────────────────────────────────────────────────────────────
# Decorators
# ─────────────────────────────────────────────────────────────────────────────
create_event_docs = swagger_auto_schema(
    operation_summary="Create an event",
    operation_description="Creates an event. Busy events are checked for conflicts with the owner's busy events.",
    request_body=CalendarEventSerializer,
    responses={
        201: openapi.Response("Created", CalendarEventSerializer()),
        400: openapi.Response("Bad Request", ErrorResponse()),
        409: openapi.Response("Scheduling conflict", ConflictErrorResponse()),
    },
    tags=["Events"],
)

update_event_docs = swagger_auto_schema(
    operation_summary="Update an event",
    operation_description="Updates an event; the conflict check ignores the event itself.",
    request_body=CalendarEventSerializer,
    responses={
        200: openapi.Response("Success", CalendarEventSerializer()),
        400: openapi.Response("Bad Request", ErrorResponse()),
        404: "Not found",
        409: openapi.Response("Scheduling conflict", ConflictErrorResponse()),
    },
    tags=["Events"],
)

check_conflicts_docs = swagger_auto_schema(
    operation_summary="Check a range for conflicts",
    request_body=ConflictCheckSerializer,
    responses={200: openapi.Response("Success", ConflictCheckResponse())},
    tags=["Events"],
)

occurrences_docs = swagger_auto_schema(
    operation_summary="List an event's occurrences",
    operation_description="Expands the event's recurrence inside the requested window.",
    request_body=TimeWindowSerializer,
    responses={200: openapi.Response("Success", TimeRangeSerializer(many=True)), 404: "Not found"},
    tags=["Events"],
)

available_slots_docs = swagger_auto_schema(
    operation_summary="Find available slots",
    operation_description="Free slots in a window, skipping the owner's busy occurrences.",
    request_body=AvailableSlotsRequestSerializer,
    responses={200: openapi.Response("Success", TimeSlotSerializer(many=True))},
    tags=["Availability"],
)

day_slots_docs = swagger_auto_schema(
    operation_summary="Slot grid for a day",
    query_serializer=DaySlotsQuerySerializer,
    responses={200: openapi.Response("Success", TimeSlotSerializer(many=True))},
    tags=["Availability"],
)

recurrence_preview_docs = swagger_auto_schema(
    operation_summary="Preview a recurrence rule",
    request_body=RecurrencePreviewSerializer,
    responses={
        200: openapi.Response("Success", RecurrencePreviewResponse()),
        400: openapi.Response("Invalid rule", ErrorResponse()),
    },
    tags=["Recurrence"],
)

next_business_day_docs = swagger_auto_schema(
    operation_summary="Next or previous business day",
    query_serializer=BusinessDayQuerySerializer,
    responses={
        200: openapi.Response("Success", BusinessDayResponse()),
        422: openapi.Response("No business day found", ErrorResponse()),
    },
    tags=["Business days"],
)

add_business_days_docs = swagger_auto_schema(
    operation_summary="Add business days to a date",
    query_serializer=AddBusinessDaysQuerySerializer,
    responses={
        200: openapi.Response("Success", BusinessDayResponse()),
        422: openapi.Response("No business day found", ErrorResponse()),
    },
    tags=["Business days"],
)

timezones_docs = swagger_auto_schema(
    operation_summary="Common time zones",
    responses={200: openapi.Response("Success", TimezoneResponse(many=True))},
    tags=["Time zones"],
)
