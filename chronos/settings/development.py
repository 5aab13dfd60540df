"""
Development settings for Chronos project.

These settings override the base settings for local development environments.
"""

from .base import *  # noqa: F401,F403

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = env("DEBUG", "True") == "True"

# Allow all hosts in development (for convenience)
ALLOWED_HOSTS = ["*"]

# Browsable API is handy while developing
REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"] = (
    "rest_framework.renderers.JSONRenderer",
    "rest_framework.renderers.BrowsableAPIRenderer",
)

LOGGING["handlers"]["console"]["level"] = "DEBUG"
LOGGING["loggers"]["algorithms"]["level"] = "DEBUG"
