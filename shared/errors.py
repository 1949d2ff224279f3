"""
Booking error taxonomy.

Each error carries a stable ``error_code`` and the HTTP ``status_code`` the API
surfaces it with. The message (``str(exc)``) is user-facing.
"""


class BookingError(Exception):
    """Base class for all booking workflow errors."""

    error_code = "BOOKING_ERROR"
    status_code = 400
    default_message = "Booking request failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class InvalidInterval(BookingError):
    error_code = "INVALID_INTERVAL"
    status_code = 400
    default_message = "Invalid times"


class RoomNotFound(BookingError):
    error_code = "ROOM_NOT_FOUND"
    status_code = 404
    default_message = "Room not found"


class DurationExceeded(BookingError):
    error_code = "DURATION_EXCEEDED"
    status_code = 400
    default_message = "Exceeds max duration"


class SlotTaken(BookingError):
    error_code = "SLOT_TAKEN"
    status_code = 409
    default_message = "Time slot already booked"


class PaymentSetupFailed(BookingError):
    error_code = "PAYMENT_SETUP_FAILED"
    status_code = 400
    default_message = "Payment could not be initialised"


class InvalidSignature(BookingError):
    error_code = "INVALID_SIGNATURE"
    status_code = 400
    default_message = "Invalid payment signature"


class BookingAlreadyFinalized(BookingError):
    """Raised when a terminal status would be overwritten by another one."""

    error_code = "ALREADY_FINALIZED"
    status_code = 409
    default_message = "Booking already finalized"


class MissingGuestIdentity(BookingError):
    error_code = "UNAUTHORIZED"
    status_code = 401
    default_message = "Missing or invalid X-Guest-Id header"
