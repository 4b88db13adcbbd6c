from datetime import datetime
from models.db import db

PAYMENT_STATUSES = ("INIT", "PAID", "FAILED")

class Payment(db.Model):
    """One Stripe Checkout payment per confirmed booking."""
    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False, index=True)

    provider = db.Column(db.String(20), nullable=False, default="STRIPE")
    # fils; 1 AED = 100
    amount = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(10), nullable=False, default="AED")

    status = db.Column(db.String(20), nullable=False, default="INIT")
    stripe_session_id = db.Column(db.String(255), nullable=True, unique=True, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    paid_at = db.Column(db.DateTime, nullable=True)

    booking = db.relationship("Booking")

    @property
    def is_paid(self) -> bool:
        return self.status == "PAID"

    def mark_paid(self, when=None):
        self.status = "PAID"
        self.paid_at = when or datetime.utcnow()

    def mark_failed(self):
        self.status = "FAILED"
