from datetime import datetime

from flask import Blueprint, jsonify, g, request
from sqlalchemy import func

from security.rbac import require_roles
from utils.audit import log_event
from models import db
from models.user import User, Role
from models.car import Car
from models.booking import Booking
from models.payment import Payment, PAYMENT_STATUSES
from services import BookingStatus
from services.errors import InvalidPayload, NotFound
from utils.payload import json_body, get_choice, get_str
from utils.serializers import user_json, booking_json, car_json

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _set_approval(user_id: int, approved: bool):
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    user.is_approved = approved
    db.session.commit()
    log_event(
        "ADMIN_USER_APPROVE" if approved else "ADMIN_USER_REJECT",
        user_id=g.user.id,
        entity="user",
        entity_id=user.id,
    )
    return jsonify(user_json(user)), 200


@admin_bp.get("/users")
@require_roles("ADMIN")
def list_users():
    q = User.query
    role = (request.args.get("role") or "").strip().upper()
    if role:
        q = q.filter(User.roles.any(Role.name == role))
    approved = request.args.get("approved")
    if approved in ("true", "false"):
        q = q.filter(User.is_approved.is_(approved == "true"))
    rows = q.order_by(User.created_at.desc()).limit(500).all()
    return jsonify([user_json(u) for u in rows]), 200


@admin_bp.post("/users/<int:user_id>/approve")
@require_roles("ADMIN")
def approve_user(user_id: int):
    return _set_approval(user_id, True)


@admin_bp.post("/users/<int:user_id>/reject")
@require_roles("ADMIN")
def reject_user(user_id: int):
    return _set_approval(user_id, False)


@admin_bp.get("/bookings")
@require_roles("ADMIN")
def list_bookings():
    q = Booking.query
    raw = request.args.get("status")
    if raw:
        status = BookingStatus.parse(raw)
        if status is None:
            raise InvalidPayload(f"Unknown status: {raw}", field="status")
        q = q.filter(Booking.status == status)
    rows = q.order_by(Booking.created_at.desc()).limit(200).all()
    return jsonify([booking_json(b, include_car=True) for b in rows]), 200


@admin_bp.get("/cars")
@require_roles("ADMIN")
def list_cars():
    q = Car.query
    status = (request.args.get("status") or "").strip().lower()
    if status:
        q = q.filter(Car.status == status)
    else:
        q = q.filter(Car.status != "deleted")
    city = (request.args.get("city") or "").strip()
    if city:
        q = q.filter(Car.city.ilike(city))
    search = (request.args.get("search") or "").strip()
    if search:
        q = q.filter(Car.title.ilike(f"%{search}%"))

    rows = q.order_by(Car.created_at.desc()).limit(200).all()
    return jsonify([car_json(c) for c in rows]), 200


@admin_bp.post("/cars/<int:car_id>/status")
@require_roles("ADMIN")
def moderate_car(car_id: int):
    """Approve (active) or reject (inactive) a listing."""
    data = json_body()
    status = get_choice(data, "status", ("active", "inactive"), required=True)
    reason = get_str(data, "reason", required=False, max_length=255)

    car = db.session.get(Car, car_id)
    if not car or not car.is_listed:
        raise NotFound("Car not found")

    car.status = status
    car.rejection_reason = (reason or "Rejected by an admin") if status == "inactive" else None
    car.moderated_by = g.user.id
    car.moderated_at = datetime.utcnow()
    db.session.commit()

    log_event(
        "ADMIN_CAR_APPROVE" if status == "active" else "ADMIN_CAR_REJECT",
        user_id=g.user.id,
        entity="car",
        entity_id=car.id,
        metadata={"reason": reason},
    )
    return jsonify(car_json(car)), 200


@admin_bp.get("/stats")
@require_roles("ADMIN")
def stats():
    by_status = dict(
        db.session.query(Booking.status, func.count(Booking.id)).group_by(Booking.status).all()
    )
    by_payment = dict(
        db.session.query(Payment.status, func.count(Payment.id)).group_by(Payment.status).all()
    )
    revenue = (
        db.session.query(func.coalesce(func.sum(Payment.amount), 0))
        .filter(Payment.status == "PAID")
        .scalar()
    )
    return jsonify(
        users=User.query.count(),
        pending_approvals=User.query.filter_by(is_approved=False).filter(User.roles.any(Role.name == "OWNER")).count(),
        cars=Car.query.filter(Car.status != "deleted").count(),
        bookings={s.value: by_status.get(s, 0) for s in BookingStatus},
        payments={s: by_payment.get(s, 0) for s in PAYMENT_STATUSES},
        paid_revenue_minor=int(revenue or 0),
    ), 200
