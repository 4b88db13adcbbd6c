from datetime import datetime

import pytest

from services import AvailabilityChecker, BookingStatus, SLOT_HOLDING_STATUSES
from services.errors import (
    ConflictsWithExistingBooking,
    InvalidDateRange,
    NotFound,
    OutsideAvailabilityWindow,
)
from tests.fakes import InMemoryBookingStore


@pytest.fixture
def store():
    store = InMemoryBookingStore()
    store.add_car(car_id=1, owner_id=10)
    return store


@pytest.fixture
def checker(store):
    return AvailabilityChecker(store)


def test_free_range_inside_window(checker):
    assert checker.check(1, datetime(2024, 1, 5), datetime(2024, 1, 8)) == (True, None)


def test_whole_window_is_bookable(checker):
    ok, _ = checker.check(1, datetime(2024, 1, 1), datetime(2024, 1, 31))
    assert ok


@pytest.mark.parametrize("start,end", [
    (datetime(2023, 12, 30), datetime(2024, 1, 3)),
    (datetime(2024, 1, 29), datetime(2024, 2, 2)),
    (datetime(2024, 2, 5), datetime(2024, 2, 8)),
])
def test_outside_window(checker, start, end):
    ok, error = checker.check(1, start, end)
    assert not ok
    assert isinstance(error, OutsideAvailabilityWindow)


@pytest.mark.parametrize("status", sorted(SLOT_HOLDING_STATUSES))
def test_slot_holding_bookings_conflict(store, checker, status):
    store.seed_booking(1, 20, datetime(2024, 1, 5), datetime(2024, 1, 8), status=status)
    ok, error = checker.check(1, datetime(2024, 1, 7), datetime(2024, 1, 10))
    assert not ok
    assert isinstance(error, ConflictsWithExistingBooking)


@pytest.mark.parametrize("status", [
    BookingStatus.CANCELLED, BookingStatus.REJECTED, BookingStatus.COMPLETED,
])
def test_released_bookings_do_not_conflict(store, checker, status):
    store.seed_booking(1, 20, datetime(2024, 1, 5), datetime(2024, 1, 8), status=status)
    assert checker.check(1, datetime(2024, 1, 5), datetime(2024, 1, 8)) == (True, None)


def test_touching_ranges_are_available(store, checker):
    store.seed_booking(1, 20, datetime(2024, 1, 5), datetime(2024, 1, 8))
    assert checker.check(1, datetime(2024, 1, 2), datetime(2024, 1, 5))[0]
    assert checker.check(1, datetime(2024, 1, 8), datetime(2024, 1, 12))[0]


def test_range_enclosing_a_booking_conflicts(store, checker):
    store.seed_booking(1, 20, datetime(2024, 1, 5), datetime(2024, 1, 8))
    ok, error = checker.check(1, datetime(2024, 1, 1), datetime(2024, 1, 20))
    assert isinstance(error, ConflictsWithExistingBooking)


def test_excluded_booking_is_ignored(store, checker):
    booking = store.seed_booking(1, 20, datetime(2024, 1, 5), datetime(2024, 1, 8))
    ok, _ = checker.check(1, datetime(2024, 1, 5), datetime(2024, 1, 8), exclude_booking_id=booking.id)
    assert ok


def test_unknown_car(checker):
    ok, error = checker.check(99, datetime(2024, 1, 5), datetime(2024, 1, 8))
    assert not ok
    assert isinstance(error, NotFound)


def test_deleted_car(store, checker):
    store.cars[1].status = "deleted"
    ok, error = checker.check(1, datetime(2024, 1, 5), datetime(2024, 1, 8))
    assert isinstance(error, NotFound)


def test_inactive_car_is_not_bookable(store, checker):
    store.cars[1].status = "inactive"
    ok, error = checker.check(1, datetime(2024, 1, 5), datetime(2024, 1, 8))
    assert isinstance(error, OutsideAvailabilityWindow)


def test_invalid_range_raises(checker):
    with pytest.raises(InvalidDateRange):
        checker.check(1, datetime(2024, 1, 8), datetime(2024, 1, 5))


def test_ensure_raises_the_error(store, checker):
    store.seed_booking(1, 20, datetime(2024, 1, 5), datetime(2024, 1, 8))
    with pytest.raises(ConflictsWithExistingBooking):
        checker.ensure(1, datetime(2024, 1, 6), datetime(2024, 1, 7))
