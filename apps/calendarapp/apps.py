# apps/calendarapp/apps.py
from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class CalendarAppConfig(AppConfig):
    name = "apps.calendarapp"
    label = "calendarapp"
    default_auto_field = "django.db.models.BigAutoField"
    verbose_name = _("Calendar & Scheduling")
