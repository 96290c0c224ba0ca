"""
Error taxonomy of the library lifecycle.

Services raise these directly; DRF turns them into responses through
``library_exception_handler`` so every failure reaches the client as
``{"error": <message>, "code": <kind>}``.
"""

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class LibraryError(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The request conflicts with the current library state."
    default_code = "conflict"


class NotFound(exceptions.NotFound):
    default_detail = "Not found."
    default_code = "not_found"


class Forbidden(exceptions.PermissionDenied):
    default_detail = "You do not own this resource."
    default_code = "forbidden"


class InvalidRating(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Rating must be an integer between 1 and 5."
    default_code = "invalid_rating"


class Conflict(LibraryError):
    default_code = "conflict"


class InvariantViolation(LibraryError):
    default_detail = "Copy count would leave the allowed range."
    default_code = "invariant_violation"


class AlreadyBorrowed(LibraryError):
    default_detail = "You already have an open loan for this book."
    default_code = "already_borrowed"


class AlreadyReturned(LibraryError):
    default_detail = "This loan has already been returned."
    default_code = "already_returned"


class AlreadyReserved(LibraryError):
    default_detail = "You already have an active reservation for this book."
    default_code = "already_reserved"


class BookAvailable(LibraryError):
    default_detail = "This book has free copies, borrow it directly."
    default_code = "book_available"


class NoCopiesAvailable(LibraryError):
    default_detail = "No copies of this book are available."
    default_code = "no_copies_available"


class StatusBlocked(LibraryError):
    default_detail = "This book cannot be borrowed in its current status."
    default_code = "status_blocked"


class Duplicate(LibraryError):
    default_detail = "A review already exists for this loan."
    default_code = "duplicate"


def _first_message(detail):
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
        return ""
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ""
    return str(detail)


def _error_code(exc, detail):
    if isinstance(exc, exceptions.ValidationError):
        return "validation_error"
    codes = exc.get_codes() if isinstance(exc, exceptions.APIException) else None
    if isinstance(codes, str):
        return codes
    return getattr(exc, "default_code", "error")


def library_exception_handler(exc, context):
    """
    Render every error as {"error", "code"} (and "details" for field errors).
    """
    if isinstance(exc, DjangoValidationError):
        detail = exc.message_dict if hasattr(exc, "error_dict") else exc.messages
        exc = exceptions.ValidationError(detail=detail)
    elif isinstance(exc, Http404):
        exc = NotFound()

    response = exception_handler(exc, context)
    if response is None:
        return None

    detail = response.data
    body = {
        "error": _first_message(detail),
        "code": _error_code(exc, detail),
    }
    if isinstance(exc, exceptions.ValidationError):
        body["details"] = detail

    if response.status_code >= 500:
        logger.error("Unhandled API error: %s", body["error"])

    response.data = body
    return response
