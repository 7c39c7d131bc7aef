"""Typed booking errors.

Every error here is recoverable from the caller's point of view and is rendered
by the API as ``{"error": code, "detail": message}`` with ``status_code``.
Storage connectivity failures are not listed here: they propagate as
SQLAlchemy errors and become a generic 503.
"""

from typing import Optional


class BookingError(Exception):
    """Base class for all booking domain errors"""

    code = "booking_error"
    status_code = 400
    default_detail = "Booking request failed"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.detail}


class SlotUnavailable(BookingError):
    """The requested interval overlaps a booking that still holds the slot"""

    code = "slot_unavailable"
    status_code = 409
    default_detail = "The selected slot is no longer available. Please pick another slot."


class InvalidTransition(BookingError):
    code = "invalid_transition"
    status_code = 409
    default_detail = "This booking cannot move to the requested status"


class StaleStateError(BookingError):
    """Someone else changed the booking between our read and our write"""

    code = "stale_state"
    status_code = 409
    default_detail = "The booking was changed by someone else. Refresh and try again."


class NonContiguousSelection(BookingError):
    code = "non_contiguous_selection"
    status_code = 422
    default_detail = "Selected slots must be consecutive"


class InvalidSlotSelection(BookingError):
    """Interval is empty, misaligned with the slot unit, or outside the ground's window"""

    code = "invalid_slot_selection"
    status_code = 422
    default_detail = "Selected time is not a valid slot for this ground"


class SlotInPast(BookingError):
    code = "slot_in_past"
    status_code = 422
    default_detail = "Selected slot has already passed"


class NotFound(BookingError):
    code = "not_found"
    status_code = 404
    default_detail = "Not found"


class PermissionDenied(BookingError):
    code = "permission_denied"
    status_code = 403
    default_detail = "You are not allowed to perform this action"


class ResourceInactive(BookingError):
    code = "resource_inactive"
    status_code = 409
    default_detail = "This ground is not accepting new bookings"
