from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError

from models.booking import Booking
from models.car import Car
from services.booking_status import BookingStatus, SLOT_HOLDING_STATUSES
from services.errors import PersistenceConflict


class SqlBookingStore:
    """
    Persistence collaborator for the booking library, backed by a
    SQLAlchemy session (normally ``db.session``).

    Writes are only flushed here; the lifecycle manager decides when a unit
    of work is committed or rolled back.
    """

    def __init__(self, session):
        self.session = session

    # ---------- reads ----------
    def get_car(self, car_id):
        if car_id is None:
            return None
        return self.session.get(Car, car_id)

    def lock_car(self, car_id):
        """Load the car row FOR UPDATE (ignored on SQLite) with fresh state."""
        if car_id is None:
            return None
        stmt = (
            select(Car)
            .where(Car.id == car_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalars().first()

    def get_booking(self, booking_id):
        if booking_id is None:
            return None
        return self.session.get(Booking, booking_id)

    def slot_holding_bookings(self, car_id, exclude_booking_id=None):
        stmt = select(Booking).where(
            Booking.car_id == car_id,
            Booking.status.in_(list(SLOT_HOLDING_STATUSES)),
        )
        if exclude_booking_id is not None:
            stmt = stmt.where(Booking.id != exclude_booking_id)
        return list(self.session.execute(stmt.order_by(Booking.start_date)).scalars())

    def due_for_completion(self, now):
        stmt = (
            select(Booking)
            .where(
                Booking.status.in_([BookingStatus.CONFIRMED, BookingStatus.ACTIVE]),
                Booking.end_date <= now,
            )
            .order_by(Booking.end_date)
        )
        return list(self.session.execute(stmt).scalars())

    # ---------- writes ----------
    def claim_car(self, car_id, seen_version) -> bool:
        """Optimistic version bump; False if another booking got there first."""
        result = self._execute(
            update(Car)
            .where(Car.id == car_id, Car.booking_version == seen_version)
            .values(booking_version=seen_version + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def add_booking(self, **fields):
        booking = Booking(**fields)
        self.session.add(booking)
        self._flush()
        return booking

    def compare_and_set_status(self, booking, expected, target, changes=None) -> bool:
        values = dict(changes or {})
        values["status"] = target
        result = self._execute(
            update(Booking)
            .where(Booking.id == booking.id, Booking.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        self.session.refresh(booking)
        return True

    def commit(self):
        try:
            self.session.commit()
        except (IntegrityError, OperationalError) as exc:
            self.session.rollback()
            raise PersistenceConflict(str(exc)) from exc

    def rollback(self):
        self.session.rollback()

    def _execute(self, stmt):
        try:
            return self.session.execute(stmt)
        except (IntegrityError, OperationalError) as exc:
            self.session.rollback()
            raise PersistenceConflict(str(exc)) from exc

    def _flush(self):
        try:
            self.session.flush()
        except (IntegrityError, OperationalError) as exc:
            self.session.rollback()
            raise PersistenceConflict(str(exc)) from exc
