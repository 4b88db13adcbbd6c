"""
Booking library: pricing, availability and the booking status lifecycle.

Framework independent; persistence is passed in as a store object.
"""
from .availability import AvailabilityChecker
from .booking_status import (
    ActorRole,
    BookingStatus,
    SLOT_HOLDING_STATUSES,
    TERMINAL_STATUSES,
    TRANSITIONS,
)
from .errors import (
    ActiveBookingsExist,
    BookingError,
    ConflictsWithExistingBooking,
    IllegalTransition,
    InvalidDateRange,
    InvalidPayload,
    NotFound,
    OutsideAvailabilityWindow,
    SelfBookingNotAllowed,
)
from .lifecycle import BookingLifecycleManager
from .pricing import Cost, compute_cost


def check_availability(store, car_id, start, end, exclude_booking_id=None):
    return AvailabilityChecker(store).check(car_id, start, end, exclude_booking_id)


def create_booking(store, car_id, renter_id, start, end, notes=None):
    return BookingLifecycleManager(store).create(car_id, renter_id, start, end, notes=notes)


def transition_booking(store, booking_id, actor_id, actor_role, target_status, reason=None, now=None):
    return BookingLifecycleManager(store).transition(
        booking_id, actor_id, actor_role, target_status, reason=reason, now=now
    )
