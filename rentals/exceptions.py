"""
Errors raised by the booking engine.

Each error also derives from the Django exception with the same meaning,
so views can let ``Forbidden`` and ``NotFound`` reach Django's 403/404
handlers and treat the rest like form validation errors.
"""

from __future__ import annotations

from django.core.exceptions import PermissionDenied, ValidationError
from django.http import Http404


class BookingError(Exception):
    """Base class for every booking engine error."""

    kind = "booking_error"

    @property
    def message_text(self) -> str:
        messages = getattr(self, "messages", None)
        if messages:
            return " ".join(str(message) for message in messages)
        return str(self)


class InvalidDateRange(BookingError, ValidationError):
    kind = "invalid_date_range"


class CarUnavailable(BookingError, ValidationError):
    kind = "car_unavailable"


class InvalidTransition(BookingError, ValidationError):
    kind = "invalid_transition"


class Forbidden(BookingError, PermissionDenied):
    kind = "forbidden"


class NotFound(BookingError, Http404):
    kind = "not_found"
