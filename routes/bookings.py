from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.booking import Booking
from models.car import Car
from models.payment import Payment
from security.rbac import require_roles, is_admin
from services import ActorRole, BookingLifecycleManager, BookingStatus
from services.errors import BookingError, InvalidPayload, NotFound
from services.pricing import to_minor_units
from services.store import SqlBookingStore
from utils.audit import log_event
from utils.auth_context import login_required
from utils.emailer import notify_booking_status
from utils.payload import json_body, get_int, get_str, get_datetime
from utils.serializers import booking_json

bookings_bp = Blueprint("bookings", __name__, url_prefix="/bookings")


def _manager() -> BookingLifecycleManager:
    return BookingLifecycleManager(SqlBookingStore(db.session))


def _status_filter():
    raw = request.args.get("status")
    if not raw:
        return None
    status = BookingStatus.parse(raw)
    if status is None:
        raise InvalidPayload(f"Unknown status: {raw}", field="status")
    return status


def _open_payment(booking: Booking) -> Payment:
    payment = Payment.query.filter_by(booking_id=booking.id).first()
    if payment:
        return payment
    payment = Payment(
        booking_id=booking.id,
        provider="STRIPE",
        amount=to_minor_units(booking.total_amount),
        currency=current_app.config.get("CURRENCY", "AED"),
        status="INIT",
    )
    db.session.add(payment)
    db.session.commit()
    return payment


# ---------- RENTERS: request a booking ----------
@bookings_bp.post("")
@require_roles("RENTER")
def create_booking():
    data = json_body()
    car_id = get_int(data, "car_id")
    start = get_datetime(data, "start_date")
    end = get_datetime(data, "end_date")
    notes = get_str(data, "notes", required=False, max_length=500)

    try:
        booking = _manager().create(car_id, g.user.id, start, end, notes=notes)
    except BookingError as exc:
        log_event(f"BOOKING_FAIL_{exc.code}", user_id=g.user.id, entity="car", entity_id=car_id)
        raise

    log_event(
        "BOOKING_CREATE",
        user_id=g.user.id,
        entity="booking",
        entity_id=booking.id,
        metadata={"car_id": car_id, "total": str(booking.total_amount)},
    )
    notify_booking_status(booking)
    return jsonify(booking_json(booking)), 201


@bookings_bp.get("/me")
@login_required
def my_bookings():
    q = Booking.query.filter_by(renter_id=g.user.id)
    status = _status_filter()
    if status:
        q = q.filter(Booking.status == status)
    rows = q.order_by(Booking.created_at.desc()).all()
    return jsonify([booking_json(b, include_car=True) for b in rows]), 200


@bookings_bp.get("/owner")
@require_roles("OWNER")
def owner_bookings():
    q = Booking.query.join(Car, Booking.car_id == Car.id).filter(Car.owner_id == g.user.id)
    status = _status_filter()
    if status:
        q = q.filter(Booking.status == status)
    rows = q.order_by(Booking.start_date.asc()).all()
    return jsonify([booking_json(b, include_car=True) for b in rows]), 200


@bookings_bp.get("/<int:booking_id>")
@login_required
def get_booking(booking_id: int):
    booking = db.session.get(Booking, booking_id)
    if not booking:
        raise NotFound("Booking not found")
    if g.user.id not in (booking.renter_id, booking.car.owner_id) and not is_admin():
        raise NotFound("Booking not found")
    return jsonify(booking_json(booking, include_car=True)), 200


# ---------- OWNER/RENTER: move a booking through its lifecycle ----------
@bookings_bp.post("/<int:booking_id>/status")
@login_required
def change_status(booking_id: int):
    data = json_body()
    target = get_str(data, "status")
    reason = get_str(data, "reason", required=False, max_length=255)

    booking = db.session.get(Booking, booking_id)
    if not booking:
        raise NotFound("Booking not found")
    role = ActorRole.OWNER if booking.car.owner_id == g.user.id else ActorRole.RENTER

    try:
        booking = _manager().transition(booking_id, g.user.id, role, target, reason=reason)
    except BookingError as exc:
        log_event(
            f"BOOKING_STATUS_FAIL_{exc.code}",
            user_id=g.user.id,
            entity="booking",
            entity_id=booking_id,
            metadata={"target": target, "role": role.value},
        )
        raise

    log_event(
        f"BOOKING_STATUS_{booking.status.value.upper()}",
        user_id=g.user.id,
        entity="booking",
        entity_id=booking.id,
        metadata={"role": role.value, "reason": reason},
    )

    body = booking_json(booking)
    if booking.status is BookingStatus.CONFIRMED:
        payment = _open_payment(booking)
        body["payment_id"] = payment.id

    notify_booking_status(booking)
    return jsonify(body), 200
