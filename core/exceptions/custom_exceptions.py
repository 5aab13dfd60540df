"""
API exceptions for the Chronos backend.

This module defines the exceptions views raise to produce consistent error
responses. Engine errors from `core.exceptions` are converted into these by
`from_engine_error` in the exception handler.
"""

from django.utils.translation import gettext_lazy as _
from rest_framework import status


class APIException(Exception):
    """Base exception for all API-related exceptions."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = _("An unexpected error occurred.")
    error_code = "server_error"

    def __init__(self, message=None, status_code=None, errors=None):
        self.message = message or self.default_message
        if status_code:
            self.status_code = status_code
        self.errors = errors
        super().__init__(self.message)

    def to_dict(self):
        """Convert exception to dictionary representation."""
        error_dict = {
            "error": self.error_code,
            "message": str(self.message),
            "status_code": self.status_code,
            "code": self.__class__.__name__,
        }

        if self.errors:
            error_dict["errors"] = self.errors

        return error_dict


class InvalidDataException(APIException):
    """Exception raised when request data is invalid."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = _("Invalid data provided.")
    error_code = "invalid_data"


class ResourceNotFoundException(APIException):
    """Exception raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = _("The requested resource was not found.")
    error_code = "not_found"


class ValidationException(APIException):
    """Exception raised when a valid request cannot be satisfied."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = _("Validation failed.")
    error_code = "unprocessable"


class SchedulingConflictException(APIException):
    """Exception raised when there's a scheduling conflict."""

    status_code = status.HTTP_409_CONFLICT
    default_message = _("A scheduling conflict was detected.")
    error_code = "scheduling_conflict"

    def __init__(self, conflicting_event_ids, message=None):
        self.conflicting_event_ids = [str(event_id) for event_id in conflicting_event_ids]
        super().__init__(
            message=message,
            errors={"conflicting_event_ids": self.conflicting_event_ids},
        )
