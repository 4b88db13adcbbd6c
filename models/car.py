from datetime import datetime
from decimal import Decimal

from models.db import db

CAR_STATUSES = ("active", "inactive", "deleted")
TRANSMISSIONS = ("Automatic", "Manual", "CVT", "Semi-Automatic")
FUEL_TYPES = ("Petrol", "Diesel", "Electric", "Hybrid", "Plug-in Hybrid")
# largest value Numeric(10, 2) holds
MAX_DAILY_RATE = Decimal("99999999.99")

class Car(db.Model):
    __tablename__ = "cars"

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    title = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=False)
    city = db.Column(db.String(80), nullable=False, index=True)

    daily_rate = db.Column(db.Numeric(10, 2), nullable=False)  # AED
    images = db.Column(db.JSON, nullable=False, default=list)  # list of image URLs

    available_from = db.Column(db.DateTime, nullable=False)
    available_to = db.Column(db.DateTime, nullable=False)

    transmission = db.Column(db.String(20), nullable=False, default="Automatic")
    fuel_type = db.Column(db.String(20), nullable=False, default="Petrol")
    year = db.Column(db.Integer, nullable=True)

    status = db.Column(db.String(20), nullable=False, default="active")
    deleted_at = db.Column(db.DateTime, nullable=True)

    # admin moderation
    rejection_reason = db.Column(db.String(255), nullable=True)
    moderated_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    moderated_at = db.Column(db.DateTime, nullable=True)

    # bumped on every booking insert; serializes concurrent creates per car
    booking_version = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    owner = db.relationship("User", foreign_keys=[owner_id])

    __table_args__ = (
        db.CheckConstraint("available_from <= available_to", name="ck_car_availability_window"),
        db.CheckConstraint("daily_rate > 0", name="ck_car_daily_rate_positive"),
    )

    @property
    def is_listed(self) -> bool:
        return self.status != "deleted"
