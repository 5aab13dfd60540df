"""
Test settings for Chronos project.

These settings override the base settings for test environments.
"""

from .base import *  # noqa: F401,F403

# In-memory SQLite keeps the suite independent of PostgreSQL
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

# Password hashers are slow; use fast ones for tests
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

# Make tests faster by avoiding real translations
USE_I18N = False

# Deterministic engine policy for tests
CHRONOS = {
    "SCHEDULING": {
        "WORKING_DAYS": ["MO", "TU", "WE", "TH", "FR"],
        "WORKING_HOURS": {"start": "09:00", "end": "17:00"},
        "DAY_WINDOWS": {},
        "HOLIDAYS": [{"date": "2024-01-01", "name": "New Year's Day", "kind": "PUBLIC"}],
        "SLOT_DURATION": 30,
        "TIMEZONE": "UTC",
        "BUSINESS_HOURS_ONLY": False,
        "MAX_OCCURRENCES": 500,
        "CONFLICT_HORIZON_DAYS": 366,
    },
}

# Disable logging during tests to speed them up
LOGGING = {
    "version": 1,
    "disable_existing_loggers": True,
    "handlers": {
        "null": {
            "class": "logging.NullHandler",
        },
    },
    "loggers": {
        "": {
            "handlers": ["null"],
            "level": "CRITICAL",
        },
    },
}
