from datetime import datetime
from models.db import db
from services.booking_status import BookingStatus

class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    car_id = db.Column(db.Integer, db.ForeignKey("cars.id"), nullable=False, index=True)
    renter_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # half-open range [start_date, end_date)
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)

    days = db.Column(db.Integer, nullable=False)
    daily_rate = db.Column(db.Numeric(10, 2), nullable=False)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)

    status = db.Column(
        db.Enum(
            BookingStatus,
            name="booking_status",
            native_enum=False,
            length=20,
            values_callable=lambda enum_cls: [m.value for m in enum_cls],
        ),
        nullable=False,
        default=BookingStatus.PENDING,
    )

    renter_notes = db.Column(db.String(500), nullable=True)
    cancellation_reason = db.Column(db.String(255), nullable=True)
    cancelled_by = db.Column(db.String(20), nullable=True)  # renter / owner / system

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    approved_at = db.Column(db.DateTime, nullable=True)
    confirmed_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    rejected_at = db.Column(db.DateTime, nullable=True)

    car = db.relationship("Car")
    renter = db.relationship("User")

    __table_args__ = (
        db.CheckConstraint("start_date < end_date", name="ck_booking_date_order"),
        db.Index("ix_bookings_car_status", "car_id", "status"),
    )
