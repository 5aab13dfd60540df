"""
Global exception handler for the Chronos API.

This module provides a custom exception handler for DRF that converts
scheduling engine errors and custom API exceptions into consistent error
responses.
"""

import logging
from typing import Any, Dict, Optional

from django.core.exceptions import ObjectDoesNotExist
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.utils import IntegrityError
from django.http import Http404
from django.utils.translation import gettext_lazy as _
from rest_framework import status
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from . import InvalidRange, InvalidRuleSyntax, InvalidTimezone, NoBusinessDayFound, SchedulingConflict
from .custom_exceptions import (
    APIException,
    InvalidDataException,
    SchedulingConflictException,
    ValidationException,
)

logger = logging.getLogger(__name__)


def from_engine_error(exc: Exception) -> Optional[APIException]:
    """
    Map a scheduling engine error to its API exception.

    Args:
        exc: Any exception

    Returns:
        The matching APIException, or None if `exc` is not an engine error
    """
    if isinstance(exc, SchedulingConflict):
        return SchedulingConflictException(exc.conflicting_event_ids, message=str(exc))
    if isinstance(exc, (InvalidRange, InvalidTimezone)):
        return InvalidDataException(message=str(exc))
    if isinstance(exc, InvalidRuleSyntax):
        errors = {"rule": exc.rule_text} if exc.rule_text else None
        return InvalidDataException(message=str(exc), errors=errors)
    if isinstance(exc, NoBusinessDayFound):
        return ValidationException(message=str(exc))
    return None


def get_error_code(exception: Exception) -> str:
    """
    Get standardized error code from exception.

    Args:
        exception: The exception to get code for

    Returns:
        str: Standardized error code
    """
    if isinstance(exception, ValidationError):
        return "validation_error"
    elif isinstance(exception, (Http404, NotFound, ObjectDoesNotExist)):
        return "not_found"
    elif isinstance(exception, IntegrityError):
        return "integrity_error"
    elif isinstance(exception, APIException):
        return exception.error_code
    else:
        # Convert exception class name to snake case
        return exception.__class__.__name__.lower().replace("error", "").replace("exception", "")


def get_error_details(exception: Exception) -> Optional[Dict[str, Any]]:
    """
    Get detailed error information from exception.

    Args:
        exception: The exception

    Returns:
        Optional[Dict]: Error details if available
    """
    if (
        isinstance(exception, ValidationError)
        and hasattr(exception, "detail")
        and not isinstance(exception.detail, str)
    ):
        if isinstance(exception.detail, list):
            return {"validation_errors": exception.detail}
        return exception.detail

    return None


def custom_exception_handler(exc: Exception, context: Dict[str, Any]) -> Response:
    """
    Custom exception handler for DRF views.

    Handles engine, custom and DRF exceptions, providing a consistent
    response format with `error`, `message`, `code` and `status_code` keys.

    Args:
        exc: The exception
        context: The exception context

    Returns:
        Response: Consistent error response
    """
    # Handle Django ValidationError by converting to DRF ValidationError
    if isinstance(exc, DjangoValidationError):
        if hasattr(exc, "message_dict"):
            exc = ValidationError(detail=exc.message_dict)
        else:
            exc = ValidationError(detail=exc.messages)

    api_exc = from_engine_error(exc) or (exc if isinstance(exc, APIException) else None)
    if api_exc is not None:
        if api_exc.status_code >= 500:
            logger.exception("API exception", exc_info=exc)
        else:
            logger.warning(f"Exception: {api_exc.error_code} - {api_exc.message}")
        return Response(api_exc.to_dict(), status=api_exc.status_code)

    response = drf_exception_handler(exc, context)
    error_code = get_error_code(exc)

    if response is not None:
        logger.warning(f"Exception: {error_code} - {exc}")
        details = get_error_details(exc)
        message = exc.detail if isinstance(getattr(exc, "detail", None), str) else str(_("Invalid request."))
        response.data = {
            "error": error_code,
            "message": message,
            "code": exc.__class__.__name__,
            "status_code": response.status_code,
            **({"details": details} if details is not None else {}),
        }
        return response

    if isinstance(exc, IntegrityError):
        logger.error(f"Integrity error: {exc}")
        return Response(
            {
                "error": error_code,
                "message": str(_("A conflict occurred with the existing data")),
                "code": exc.__class__.__name__,
                "status_code": status.HTTP_409_CONFLICT,
            },
            status=status.HTTP_409_CONFLICT,
        )

    # Unhandled exceptions
    logger.exception("Unhandled API exception", exc_info=exc, extra={"view": context.get("view")})
    return Response(
        {
            "error": error_code,
            "message": str(_("An unexpected error occurred.")),
            "code": exc.__class__.__name__,
            "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
        },
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
