"""
Chronos Algorithms Package.

This package contains the pure scheduling engine used by the calendar
application. It has no Django dependency and can be used on its own.

The algorithms are organized into the following subpackages:
- scheduling: Time ranges, time zones, business days, recurrence rules,
  slot generation and conflict detection
"""

__version__ = "1.0.0"
