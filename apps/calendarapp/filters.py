# apps/calendarapp/filters.py
from django_filters import rest_framework as filters

from apps.calendarapp.models import CalendarEvent


class CalendarEventFilter(filters.FilterSet):
    """Filter for calendar events"""

    owner_id = filters.CharFilter(field_name="owner_id")
    start_after = filters.IsoDateTimeFilter(field_name="start_time", lookup_expr="gte")
    end_before = filters.IsoDateTimeFilter(field_name="end_time", lookup_expr="lte")
    is_busy = filters.BooleanFilter(field_name="is_busy")
    recurring = filters.BooleanFilter(method="filter_recurring")

    class Meta:
        model = CalendarEvent
        fields = ["owner_id", "start_after", "end_before", "is_busy", "recurring"]

    def filter_recurring(self, queryset, name, value):
        if value is None:
            return queryset
        if value:
            return queryset.exclude(recurrence_rule="")
        return queryset.filter(recurrence_rule="")
