"""
Calendar app views for Chronos
Handles endpoints related to events, availability, recurrence and business days
"""

from django.utils.decorators import method_decorator
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import permissions, status, views, viewsets
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.response import Response

from algorithms.scheduling import timezone_normalizer
from apps.calendarapp.api_docs import (
    add_business_days_docs,
    available_slots_docs,
    check_conflicts_docs,
    create_event_docs,
    day_slots_docs,
    next_business_day_docs,
    occurrences_docs,
    recurrence_preview_docs,
    timezones_docs,
    update_event_docs,
)
from apps.calendarapp.filters import CalendarEventFilter
from apps.calendarapp.models import CalendarEvent
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
from apps.calendarapp.services.scheduling_service import SchedulingService


@method_decorator(name="create", decorator=create_event_docs)
@method_decorator(name="update", decorator=update_event_docs)
@method_decorator(name="partial_update", decorator=update_event_docs)
class CalendarEventViewSet(viewsets.ModelViewSet):
    """
    API endpoint for calendar events

    Writes go through SchedulingService so busy events are checked for
    conflicts; a conflict returns 409 with the conflicting event ids.
    """

    queryset = CalendarEvent.objects.all()
    serializer_class = CalendarEventSerializer
    permission_classes = [permissions.AllowAny]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = CalendarEventFilter
    ordering_fields = ["start_time", "end_time", "created_at"]
    ordering = ["start_time"]

    def perform_create(self, serializer):
        serializer.instance = SchedulingService.create_event(serializer.validated_data)

    def perform_update(self, serializer):
        serializer.instance = SchedulingService.update_event(serializer.instance, serializer.validated_data)

    def perform_destroy(self, instance):
        SchedulingService.delete_event(instance)

    @check_conflicts_docs
    @action(detail=False, methods=["post"], url_path="check-conflicts")
    def check_conflicts(self, request):
        """Check a candidate range against the owner's busy events"""
        serializer = ConflictCheckSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        conflicts = SchedulingService.check_conflicts(
            data["owner_id"], data["start"], data["end"], data.get("exclude_event_id")
        )

        return Response(
            {
                "has_conflict": bool(conflicts),
                "conflicts": ConflictSerializer(conflicts, many=True).data,
            }
        )

    @occurrences_docs
    @action(detail=True, methods=["post"])
    def occurrences(self, request, pk=None):
        """Occurrences of this event inside a window"""
        event = self.get_object()
        serializer = TimeWindowSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        ranges = SchedulingService.event_occurrences(
            event, serializer.validated_data["start"], serializer.validated_data["end"]
        )
        return Response(TimeRangeSerializer(ranges, many=True).data)


class AvailableSlotsView(views.APIView):
    """Find free slots for an owner in a window"""

    permission_classes = [permissions.AllowAny]

    @available_slots_docs
    def post(self, request):
        serializer = AvailableSlotsRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        slots = SchedulingService.find_available_slots(
            data["owner_id"],
            data["start"],
            data["end"],
            min_duration=data.get("min_duration"),
            max_results=data["max_results"],
            slot_duration=data.get("slot_duration"),
        )
        return Response(TimeSlotSerializer(slots, many=True).data)


class DaySlotsView(views.APIView):
    """Working-hours slot grid for one day"""

    permission_classes = [permissions.AllowAny]

    @day_slots_docs
    def get(self, request):
        serializer = DaySlotsQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        slots = SchedulingService.day_slots(data["owner_id"], data["date"], data.get("business_hours_only"))
        return Response(TimeSlotSerializer(slots, many=True).data)


class RecurrencePreviewView(views.APIView):
    """Parse, describe and expand a recurrence rule"""

    permission_classes = [permissions.AllowAny]

    @recurrence_preview_docs
    def post(self, request):
        serializer = RecurrencePreviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        preview = SchedulingService.preview_recurrence(
            data["rule"], data["dtstart"], tz=data["timezone"], end=data.get("end"), limit=data["limit"]
        )
        preview["occurrences"] = [instant.isoformat() for instant in preview["occurrences"]]
        return Response(preview)


class NextBusinessDayView(views.APIView):
    permission_classes = [permissions.AllowAny]

    @next_business_day_docs
    def get(self, request):
        serializer = BusinessDayQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        day = SchedulingService.next_business_day(data["date"], data["direction"])
        return Response({"date": day.isoformat()})


class AddBusinessDaysView(views.APIView):
    permission_classes = [permissions.AllowAny]

    @add_business_days_docs
    def get(self, request):
        serializer = AddBusinessDaysQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        day = SchedulingService.add_business_days(data["date"], data["days"])
        return Response({"date": day.isoformat()})


class TimezoneListView(views.APIView):
    permission_classes = [permissions.AllowAny]

    @timezones_docs
    def get(self, request):
        return Response(timezone_normalizer.common_timezones(), status=status.HTTP_200_OK)
