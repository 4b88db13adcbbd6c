"""
Typed errors raised by the booking library.

Each error carries a stable ``code`` and the HTTP status the web layer maps
it to, so route handlers never have to branch on message text.
"""


class BookingError(Exception):
    code = "BOOKING_ERROR"
    http_status = 400
    default_message = "Booking request failed"

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        out = {"error": self.message, "code": self.code}
        if self.details:
            out["details"] = self.details
        return out


class InvalidDateRange(BookingError):
    code = "INVALID_DATE_RANGE"
    http_status = 400
    default_message = "End date must be after start date"


class OutsideAvailabilityWindow(BookingError):
    code = "OUTSIDE_AVAILABILITY_WINDOW"
    http_status = 409
    default_message = "Requested dates are outside the car's availability"


class ConflictsWithExistingBooking(BookingError):
    code = "BOOKING_CONFLICT"
    http_status = 409
    default_message = "Car is already booked for the requested dates"


class SelfBookingNotAllowed(BookingError):
    code = "SELF_BOOKING_NOT_ALLOWED"
    http_status = 403
    default_message = "You cannot book your own car"


class IllegalTransition(BookingError):
    code = "ILLEGAL_TRANSITION"
    http_status = 409
    default_message = "Booking status change not allowed"


class NotFound(BookingError):
    code = "NOT_FOUND"
    http_status = 404
    default_message = "Not found"


class InvalidPayload(BookingError):
    code = "INVALID_PAYLOAD"
    http_status = 400
    default_message = "Invalid request body"


class ActiveBookingsExist(BookingError):
    code = "ACTIVE_BOOKINGS_EXIST"
    http_status = 409
    default_message = "Cannot delete a car with active bookings"


class PersistenceConflict(Exception):
    """
    Raised by a store when a conditional write lost a race. Never crosses
    the library boundary; the lifecycle manager turns it into a BookingError.
    """
