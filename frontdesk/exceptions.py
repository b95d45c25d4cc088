"""Front-desk error taxonomy.

Every error is a DRF ``APIException`` so views can let it propagate and
the framework renders it. The custom ``exception_handler`` adds a stable
machine-readable ``code`` to each body, maps transient database failures
to 503 and logs the rejection.
"""
from django.db import InterfaceError, OperationalError
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler as drf_exception_handler

from hotel_backoffice.logging import get_logger

logger = get_logger(__name__)


class BookingError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Booking request rejected."
    default_code = "booking_error"


# Validation: detectable before any write

class BookingValidationError(BookingError):
    default_detail = "Invalid booking request."
    default_code = "validation_error"


class MissingGuest(BookingValidationError):
    default_detail = "Provide either an existing guest_id or guest_details with full_name and id_number."
    default_code = "missing_guest"


class MissingRoomType(BookingValidationError):
    default_detail = "room_type_id is required."
    default_code = "missing_room_type"


class MissingDates(BookingValidationError):
    default_detail = "check_in_date and check_out_date are required."
    default_code = "missing_dates"


class PastCheckIn(BookingValidationError):
    default_detail = "Check-in date cannot be in the past."
    default_code = "past_check_in"


class InvertedDateRange(BookingValidationError):
    default_detail = "Check-in date must be before check-out date."
    default_code = "inverted_date_range"


class InvalidAmount(BookingValidationError):
    default_detail = "Amount must not be negative."
    default_code = "invalid_amount"


class RoomTypeMismatch(BookingValidationError):
    default_detail = "Room does not belong to the booking's room type."
    default_code = "room_type_mismatch"


class GuestIdentityRequired(BookingValidationError):
    default_detail = "Guest ID type and ID number are both required before check-in."
    default_code = "guest_identity_required"


# Conflicts: recoverable by choosing different input

class ConflictError(BookingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Request conflicts with the current state."
    default_code = "conflict"


class RoomConflict(ConflictError):
    default_detail = "This room is already booked for the selected dates."
    default_code = "room_conflict"


class RoomNoLongerAvailable(ConflictError):
    default_detail = "The selected room is no longer available. Choose another room."
    default_code = "room_no_longer_available"


class ReferencedResource(ConflictError):
    default_detail = "This record is still referenced and cannot be deleted."
    default_code = "referenced_resource"


class InvalidTransition(BookingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "This booking cannot change to the requested status."
    default_code = "invalid_transition"

    def __init__(self, current=None, target=None, detail=None):
        if detail is None and current is not None:
            detail = f"Invalid booking transition: {current} -> {target}"
        super().__init__(detail)
        self.current = current
        self.target = target


class ResourceNotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"

    def __init__(self, model_name=None, pk=None):
        detail = None
        if model_name is not None:
            detail = f"{model_name} {pk} does not exist."
        super().__init__(detail)


class TransientError(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Temporary server failure. Please retry."
    default_code = "transient_error"


def get_or_not_found(queryset, pk):
    """Fetch ``pk`` from ``queryset`` or raise ResourceNotFound."""
    model = queryset.model
    try:
        return queryset.get(pk=pk)
    except (model.DoesNotExist, ValueError, TypeError):
        raise ResourceNotFound(model.__name__, pk)


def exception_handler(exc, context):
    if isinstance(exc, (OperationalError, InterfaceError)):
        logger.error("database unavailable", error=str(exc))
        exc = TransientError()

    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, APIException) and isinstance(response.data, dict) and "detail" in response.data:
        codes = exc.get_codes()
        response.data["code"] = codes if isinstance(codes, str) else exc.default_code

    if isinstance(exc, BookingError):
        view = context.get("view")
        logger.warning(
            "request rejected",
            code=response.data.get("code") if isinstance(response.data, dict) else None,
            detail=str(exc.detail),
            view=type(view).__name__ if view is not None else None,
        )
    return response
