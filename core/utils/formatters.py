"""
Data formatting utilities for the Chronos backend.

This module provides helpers that turn scheduling values into display
strings for API payloads.
"""

from django.utils.translation import gettext as _

from algorithms.scheduling import timezone_normalizer

_UNIT_SECONDS = {"seconds": 1, "minutes": 60, "hours": 3600, "days": 86400}


def format_duration(seconds, detailed=False):
    """
    Format duration in human-readable format.

    Args:
        seconds (int): Duration in seconds
        detailed (bool): Whether to use detailed format

    Returns:
        str: Formatted duration
    """
    # Handle edge cases
    if seconds < 0:
        return "0m"

    minutes = int(seconds) // 60
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)

    if detailed:
        # Detailed format (e.g., "2 days, 3 hours, 45 minutes")
        components = []

        if days > 0:
            components.append(
                _("%(days)d day") % {"days": days} if days == 1 else _("%(days)d days") % {"days": days}
            )

        if hours > 0:
            components.append(
                _("%(hours)d hour") % {"hours": hours}
                if hours == 1
                else _("%(hours)d hours") % {"hours": hours}
            )

        if minutes > 0 or not components:
            components.append(
                _("%(minutes)d minute") % {"minutes": minutes}
                if minutes == 1
                else _("%(minutes)d minutes") % {"minutes": minutes}
            )

        return ", ".join(components)

    # Simple format (e.g., "2d 3h 45m" or "3h 45m" or "45m")
    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    elif hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_human_duration(duration, unit="minutes"):
    """
    Format a duration given in `unit` as e.g. "1 day, 2 hours, 30 minutes".

    Args:
        duration (float): Amount of time
        unit (str): One of seconds, minutes, hours, days

    Returns:
        str: Detailed duration text
    """
    if unit not in _UNIT_SECONDS:
        raise ValueError(f"Unsupported duration unit: {unit}")
    return format_duration(duration * _UNIT_SECONDS[unit], detailed=True)


def format_time_range(time_range, tz="UTC"):
    """
    Format a TimeRange as local wall-clock text.

    Args:
        time_range: TimeRange to format
        tz (str): IANA zone for display

    Returns:
        str: e.g. "Mon 15 Jan 2024, 09:00 - 09:30"
    """
    start = timezone_normalizer.to_zoned(time_range.start, tz)
    end = timezone_normalizer.to_zoned(time_range.end, tz)

    if start.date() == end.date():
        return f"{start:%a %d %b %Y}, {start:%H:%M} - {end:%H:%M}"
    return f"{start:%a %d %b %Y, %H:%M} - {end:%a %d %b %Y, %H:%M}"
