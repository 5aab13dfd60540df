# apps/calendarapp/urls.py
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from apps.calendarapp.views import (
    AddBusinessDaysView,
    AvailableSlotsView,
    CalendarEventViewSet,
    DaySlotsView,
    NextBusinessDayView,
    RecurrencePreviewView,
    TimezoneListView,
)

router = DefaultRouter()
router.register(r"events", CalendarEventViewSet)

urlpatterns = [
    path("", include(router.urls)),
    path("availability/slots/", AvailableSlotsView.as_view(), name="available-slots"),
    path("availability/day/", DaySlotsView.as_view(), name="day-slots"),
    path("recurrence/preview/", RecurrencePreviewView.as_view(), name="recurrence-preview"),
    path("business-days/next/", NextBusinessDayView.as_view(), name="next-business-day"),
    path("business-days/add/", AddBusinessDaysView.as_view(), name="add-business-days"),
    path("timezones/", TimezoneListView.as_view(), name="timezones"),
]
