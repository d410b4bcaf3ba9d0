"""
Booking core exceptions

Each error carries the machine-readable code and HTTP status the API layer
renders, so services never import FastAPI.
"""
from typing import Optional


class BookingCoreError(Exception):
    """Base exception for booking core errors."""
    error_code = "BOOKING_ERROR"
    status_code = 400

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.__doc__)
        self.message = message or self.__doc__

    def to_dict(self) -> dict:
        return {"error_code": self.error_code, "detail": self.message}


class BookingValidationError(BookingCoreError):
    """Malformed or missing input."""
    error_code = "VALIDATION_ERROR"
    status_code = 422


class EntitlementDenied(BookingCoreError):
    """The establishment cannot accept new bookings."""
    status_code = 403

    def __init__(self, reason: str, message: Optional[str] = None):
        super().__init__(message or reason)
        self.reason = reason
        self.error_code = reason


class SlotUnavailable(BookingCoreError):
    """The selected time is no longer available. Refresh and pick another slot."""
    error_code = "SLOT_UNAVAILABLE"
    status_code = 409


class DuplicateBooking(SlotUnavailable):
    """This customer already holds a booking at this time."""
    error_code = "DUPLICATE_BOOKING"


class InvalidToken(BookingCoreError):
    """Invalid manage token."""
    error_code = "INVALID_TOKEN"
    status_code = 403


class NotFound(BookingCoreError):
    """Not found."""
    error_code = "NOT_FOUND"
    status_code = 404


class NotModifiable(BookingCoreError):
    """The appointment can no longer be changed."""
    error_code = "NOT_MODIFIABLE"
    status_code = 409


class TenantAccessDenied(BookingCoreError):
    """You don't have access to this establishment."""
    error_code = "FORBIDDEN"
    status_code = 403
