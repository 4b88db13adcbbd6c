from datetime import datetime

from services.availability import AvailabilityChecker
from services.booking_status import ActorRole, BookingStatus, allowed_roles
from services.dates import parse_range
from services.errors import (
    BookingError,
    ConflictsWithExistingBooking,
    IllegalTransition,
    NotFound,
    PersistenceConflict,
    SelfBookingNotAllowed,
)
from services.pricing import compute_cost, to_money

# timestamp column stamped when a booking enters the status
STATUS_TIMESTAMPS = {
    BookingStatus.APPROVED: "approved_at",
    BookingStatus.CONFIRMED: "confirmed_at",
    BookingStatus.COMPLETED: "completed_at",
    BookingStatus.CANCELLED: "cancelled_at",
    BookingStatus.REJECTED: "rejected_at",
}


class BookingLifecycleManager:
    """
    Owns booking creation and every status change.

    ``store`` is the persistence collaborator (see SqlBookingStore) and
    ``clock`` returns the current naive-UTC datetime. Callers pass an
    already-authenticated actor id and role.
    """

    def __init__(self, store, clock=datetime.utcnow, availability=None):
        self.store = store
        self.clock = clock
        self.availability = availability or AvailabilityChecker(store)

    def create(self, car_id, renter_id, start, end, notes=None):
        start, end = parse_range(start, end)
        try:
            car = self.store.lock_car(car_id)
            if car is None or not car.is_listed:
                raise NotFound("Car not found")

            cost = compute_cost(car.daily_rate, start, end)

            if renter_id == car.owner_id:
                raise SelfBookingNotAllowed()

            seen_version = car.booking_version or 0
            self.availability.ensure(car.id, start, end)

            if not self.store.claim_car(car.id, seen_version):
                raise PersistenceConflict("car booking version moved")

            booking = self.store.add_booking(
                car_id=car.id,
                renter_id=renter_id,
                start_date=start,
                end_date=end,
                days=cost.days,
                daily_rate=to_money(car.daily_rate),
                total_amount=cost.total,
                status=BookingStatus.PENDING,
                renter_notes=notes,
            )
            self.store.commit()
        except PersistenceConflict:
            self.store.rollback()
            raise ConflictsWithExistingBooking()
        except BookingError:
            self.store.rollback()
            raise
        return booking

    def transition(self, booking_id, actor_id, actor_role, target_status, reason=None, now=None):
        target = BookingStatus.parse(target_status)
        if target is None:
            raise IllegalTransition(f"Unknown booking status: {target_status!r}")
        try:
            role = ActorRole(actor_role)
        except ValueError:
            raise IllegalTransition(f"Unknown actor role: {actor_role!r}")

        booking = self.store.get_booking(booking_id)
        if booking is None:
            raise NotFound("Booking not found")

        current = BookingStatus.parse(booking.status)
        if role not in allowed_roles(current, target):
            raise IllegalTransition(
                f"Cannot change booking from {current.value} to {target.value} as {role.value}",
                current=current.value,
                target=target.value,
            )

        if role is ActorRole.OWNER:
            car = self.store.get_car(booking.car_id)
            if car is None or car.owner_id != actor_id:
                raise IllegalTransition("Only the car owner can do this")
        elif role is ActorRole.RENTER and booking.renter_id != actor_id:
            raise IllegalTransition("Only the renter can do this")

        now = now or self.clock()
        if target is BookingStatus.COMPLETED and booking.end_date > now:
            raise IllegalTransition("Booking has not ended yet")

        changes = {STATUS_TIMESTAMPS[target]: now}
        if target is BookingStatus.CANCELLED:
            changes["cancelled_by"] = role.value
            changes["cancellation_reason"] = reason
        elif target is BookingStatus.REJECTED:
            changes["cancellation_reason"] = reason

        try:
            if not self.store.compare_and_set_status(booking, current, target, changes):
                raise PersistenceConflict("booking status moved")
            self.store.commit()
        except PersistenceConflict:
            self.store.rollback()
            raise IllegalTransition("Booking was changed by someone else, reload and retry")
        return booking

    def complete_due(self, now=None):
        """
        Scheduled sweep: complete every confirmed/active booking whose end
        date has passed. Bookings that move concurrently are skipped.
        """
        now = now or self.clock()
        completed = []
        for booking in self.store.due_for_completion(now):
            try:
                completed.append(
                    self.transition(booking.id, None, ActorRole.SYSTEM, BookingStatus.COMPLETED, now=now)
                )
            except IllegalTransition:
                continue
        return completed
