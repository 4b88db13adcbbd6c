from services.dates import parse_range
from services.errors import (
    ConflictsWithExistingBooking,
    NotFound,
    OutsideAvailabilityWindow,
)


def overlaps(start, end, other_start, other_end) -> bool:
    """Half-open interval test: touching ranges do not overlap."""
    return start < other_end and other_start < end


class AvailabilityChecker:
    """Read-only check of a candidate [start, end) against a car's calendar."""

    def __init__(self, store):
        self.store = store

    def check(self, car_id, start, end, exclude_booking_id=None):
        """
        Returns (True, None) when the range is bookable, otherwise
        (False, error) where error is OutsideAvailabilityWindow,
        ConflictsWithExistingBooking or NotFound.

        Raises InvalidDateRange if the dates don't parse or start >= end.
        """
        start, end = parse_range(start, end)

        car = self.store.get_car(car_id)
        if car is None or not car.is_listed:
            return False, NotFound("Car not found")

        if car.status != "active":
            return False, OutsideAvailabilityWindow("Car is not currently available for booking")

        if start < car.available_from or end > car.available_to:
            return False, OutsideAvailabilityWindow(
                available_from=car.available_from.isoformat(),
                available_to=car.available_to.isoformat(),
            )

        for booking in self.store.slot_holding_bookings(car.id, exclude_booking_id):
            if overlaps(start, end, booking.start_date, booking.end_date):
                return False, ConflictsWithExistingBooking(booking_id=booking.id)

        return True, None

    def ensure(self, car_id, start, end, exclude_booking_id=None):
        ok, error = self.check(car_id, start, end, exclude_booking_id)
        if not ok:
            raise error
