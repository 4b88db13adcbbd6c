from urllib.parse import urlencode, urlparse, parse_qsl, urlunparse

import stripe
from flask import Blueprint, jsonify, current_app, g

from models import db
from models.booking import Booking
from models.payment import Payment
from services import BookingStatus
from services.errors import NotFound
from utils.audit import log_event
from utils.auth_context import login_required
from utils.payload import json_body, get_int
from utils.serializers import payment_json

payments_bp = Blueprint("payments", __name__, url_prefix="/payments")

def _append_query(url: str, params: dict) -> str:
    if not url:
        return url
    parts = urlparse(url)
    query = dict(parse_qsl(parts.query))
    query.update({k: v for k, v in params.items() if v is not None})
    return urlunparse(parts._replace(query=urlencode(query)))


def _renters_booking(booking_id: int) -> Booking:
    booking = db.session.get(Booking, booking_id)
    if not booking or booking.renter_id != g.user.id:
        raise NotFound("Booking not found")
    return booking


@payments_bp.post("/start")
@login_required
def start_payment():
    cfg = current_app.config
    api_key = cfg.get("STRIPE_SECRET_KEY")
    success_url = cfg.get("STRIPE_SUCCESS_URL")
    cancel_url = cfg.get("STRIPE_CANCEL_URL")
    if not api_key:
        return jsonify(error="Stripe secret key missing (STRIPE_SECRET_KEY)"), 500
    if not success_url or not cancel_url:
        return jsonify(error="Stripe success/cancel URLs not configured"), 500

    booking = _renters_booking(get_int(json_body(), "booking_id"))
    if booking.status is not BookingStatus.CONFIRMED:
        return jsonify(error="Only confirmed bookings can be paid"), 400

    payment = Payment.query.filter_by(booking_id=booking.id).first()
    if not payment:
        return jsonify(error="No payment opened for this booking"), 404
    if payment.is_paid:
        return jsonify(error="Booking already paid"), 400

    stripe.api_key = api_key
    session = stripe.checkout.Session.create(
        mode="payment",
        line_items=[{
            "price_data": {
                "currency": payment.currency.lower(),
                "product_data": {"name": f"{booking.car.title} ({booking.days} days, booking #{booking.id})"},
                "unit_amount": payment.amount,
            },
            "quantity": 1,
        }],
        success_url=_append_query(success_url, {"booking_id": str(booking.id)}),
        cancel_url=_append_query(cancel_url, {"booking_id": str(booking.id), "payment_id": str(payment.id)}),
        metadata={
            "booking_id": str(booking.id),
            "payment_id": str(payment.id),
            "user_id": str(g.user.id),
        },
    )

    payment.stripe_session_id = session["id"]
    payment.status = "INIT"
    db.session.commit()

    log_event("PAYMENT_SESSION_CREATED", user_id=g.user.id, entity="payment", entity_id=payment.id, metadata={"stripe_session_id": session["id"]})
    return jsonify(checkout_url=session["url"], payment_id=payment.id), 200


@payments_bp.get("/booking/<int:booking_id>")
@login_required
def booking_payment(booking_id: int):
    booking = _renters_booking(booking_id)
    payment = Payment.query.filter_by(booking_id=booking.id).first()
    if not payment:
        raise NotFound("Payment not found")
    return jsonify(payment_json(payment)), 200


@payments_bp.get("/me")
@login_required
def payment_history():
    """Settled payments (paid or failed) across the renter's bookings, newest first."""
    rows = (
        Payment.query
        .join(Booking, Payment.booking_id == Booking.id)
        .filter(Booking.renter_id == g.user.id, Payment.status.in_(("PAID", "FAILED")))
        .order_by(Payment.paid_at.desc(), Payment.created_at.desc())
        .all()
    )
    out = []
    for p in rows:
        item = payment_json(p)
        item["booking"] = {
            "id": p.booking.id,
            "car_id": p.booking.car_id,
            "car_title": p.booking.car.title,
            "start_date": p.booking.start_date.isoformat(),
            "end_date": p.booking.end_date.isoformat(),
        }
        out.append(item)
    return jsonify(out), 200
