# apps/calendarapp/admin.py
from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from algorithms.scheduling import recurrence
from apps.calendarapp.models import CalendarEvent, OwnerScheduleLock


@admin.register(CalendarEvent)
class CalendarEventAdmin(admin.ModelAdmin):
    """Admin configuration for calendar events"""

    list_display = ["id", "title", "owner_id", "start_time", "end_time", "is_busy", "recurrence_summary"]
    list_filter = ["is_busy", "all_day", "timezone", "start_time"]
    search_fields = ["title", "owner_id"]
    readonly_fields = ["recurrence_end", "created_at", "updated_at"]
    date_hierarchy = "start_time"

    def recurrence_summary(self, obj):
        return recurrence.describe(obj.rule)

    recurrence_summary.short_description = _("Repeats")


@admin.register(OwnerScheduleLock)
class OwnerScheduleLockAdmin(admin.ModelAdmin):
    list_display = ["owner_id", "created_at"]
    search_fields = ["owner_id"]
