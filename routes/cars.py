from datetime import datetime

from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.car import Car, CAR_STATUSES, TRANSMISSIONS, FUEL_TYPES, MAX_DAILY_RATE
from models.user import User
from security.rbac import require_roles, require_approved, is_admin
from services import AvailabilityChecker, compute_cost
from services.availability import overlaps
from services.errors import ActiveBookingsExist, InvalidPayload, NotFound
from services.store import SqlBookingStore
from utils.audit import log_event
from utils.auth_context import login_required
from utils.payload import (
    json_body,
    get_str,
    get_int,
    get_choice,
    get_decimal,
    get_datetime,
    get_str_list,
)
from utils.serializers import car_json

cars_bp = Blueprint("cars", __name__, url_prefix="/cars")

EDITABLE_TEXT_FIELDS = {"title": 120, "description": 5000, "city": 80}


def _get_listed_car(car_id: int) -> Car:
    car = db.session.get(Car, car_id)
    if not car or not car.is_listed:
        raise NotFound("Car not found")
    return car


def _validate_year(year):
    if year is None:
        return None
    if not 1990 <= year <= datetime.utcnow().year + 1:
        raise InvalidPayload("year is out of range", field="year")
    return year


def _validate_images(images):
    min_images = current_app.config.get("MIN_CAR_IMAGES", 3)
    if len(images) < min_images:
        raise InvalidPayload(f"Minimum {min_images} images required", field="images")
    return images


def _validate_window(available_from, available_to):
    if available_from > available_to:
        raise InvalidPayload("available_from must not be after available_to", field="available_to")


# ---------- OWNERS: list a car ----------
@cars_bp.post("")
@require_roles("OWNER")
@require_approved
def create_car():
    data = json_body()
    available_from = get_datetime(data, "available_from")
    available_to = get_datetime(data, "available_to")
    _validate_window(available_from, available_to)

    car = Car(
        owner_id=g.user.id,
        title=get_str(data, "title", max_length=120),
        description=get_str(data, "description", max_length=5000),
        city=get_str(data, "city", max_length=80),
        daily_rate=get_decimal(data, "daily_rate", max_value=MAX_DAILY_RATE),
        images=_validate_images(get_str_list(data, "images")),
        available_from=available_from,
        available_to=available_to,
        transmission=get_choice(data, "transmission", TRANSMISSIONS) or "Automatic",
        fuel_type=get_choice(data, "fuel_type", FUEL_TYPES) or "Petrol",
        year=_validate_year(get_int(data, "year", required=False)),
        status="active",
    )
    db.session.add(car)
    db.session.commit()

    log_event("CAR_CREATE", user_id=g.user.id, entity="car", entity_id=car.id)
    return jsonify(car_json(car)), 201


# ---------- PUBLIC: browse cars ----------
@cars_bp.get("")
def list_cars():
    args = request.args
    city = get_str(args, "city", required=False)
    min_price = get_decimal(args, "min_price", required=False)
    max_price = get_decimal(args, "max_price", required=False)
    available_on = get_datetime(args, "available_on", required=False)

    q = Car.query.filter(Car.status == "active")
    if city:
        q = q.filter(Car.city.ilike(f"%{city}%"))
    if min_price is not None:
        q = q.filter(Car.daily_rate >= min_price)
    if max_price is not None:
        q = q.filter(Car.daily_rate <= max_price)
    if available_on is not None:
        q = q.filter(Car.available_from <= available_on, Car.available_to >= available_on)

    rows = q.order_by(Car.created_at.desc()).limit(200).all()
    return jsonify([car_json(c) for c in rows]), 200


@cars_bp.get("/mine")
@require_roles("OWNER")
def my_cars():
    rows = (
        Car.query
        .filter(Car.owner_id == g.user.id, Car.status != "deleted")
        .order_by(Car.created_at.desc())
        .all()
    )
    return jsonify([car_json(c) for c in rows]), 200


@cars_bp.get("/owner/<int:owner_id>")
def cars_by_owner(owner_id: int):
    if not db.session.get(User, owner_id):
        raise NotFound("Owner not found")
    status = get_choice(request.args, "status", ("active", "inactive", "all")) or "active"

    q = Car.query.filter(Car.owner_id == owner_id)
    if status == "all":
        q = q.filter(Car.status != "deleted")
    else:
        q = q.filter(Car.status == status)
    rows = q.order_by(Car.created_at.desc()).all()
    return jsonify([car_json(c) for c in rows]), 200


@cars_bp.get("/<int:car_id>")
def get_car(car_id: int):
    return jsonify(car_json(_get_listed_car(car_id))), 200


# ---------- OWNERS: edit a car ----------
@cars_bp.patch("/<int:car_id>")
@login_required
def update_car(car_id: int):
    car = _get_listed_car(car_id)
    if car.owner_id != g.user.id:
        return jsonify(error="You can only edit your own cars"), 403

    data = json_body()
    for field, max_length in EDITABLE_TEXT_FIELDS.items():
        if field in data:
            setattr(car, field, get_str(data, field, max_length=max_length))
    if "daily_rate" in data:
        car.daily_rate = get_decimal(data, "daily_rate", max_value=MAX_DAILY_RATE)
    if "images" in data:
        car.images = _validate_images(get_str_list(data, "images"))
    if "transmission" in data:
        car.transmission = get_choice(data, "transmission", TRANSMISSIONS, required=True)
    if "fuel_type" in data:
        car.fuel_type = get_choice(data, "fuel_type", FUEL_TYPES, required=True)
    if "year" in data:
        car.year = _validate_year(get_int(data, "year", required=False))
    if "status" in data:
        status = get_choice(data, "status", [s for s in CAR_STATUSES if s != "deleted"], required=True)
        if status == "active" and car.rejection_reason:
            reason = car.rejection_reason
            db.session.rollback()
            return jsonify(error="Listing was rejected by an admin", reason=reason), 403
        car.status = status

    if "available_from" in data or "available_to" in data:
        new_from = get_datetime(data, "available_from", required=False) or car.available_from
        new_to = get_datetime(data, "available_to", required=False) or car.available_to
        _validate_window(new_from, new_to)

        # held bookings must stay inside the window
        store = SqlBookingStore(db.session)
        for booking in store.slot_holding_bookings(car.id):
            if booking.start_date < new_from or booking.end_date > new_to:
                db.session.rollback()
                raise ActiveBookingsExist(
                    "New availability window excludes existing bookings",
                    booking_id=booking.id,
                )
        car.available_from = new_from
        car.available_to = new_to

    db.session.commit()
    log_event("CAR_UPDATE", user_id=g.user.id, entity="car", entity_id=car.id, metadata={"fields": sorted(data.keys())})
    return jsonify(car_json(car)), 200


# ---------- OWNERS/ADMIN: soft delete ----------
@cars_bp.delete("/<int:car_id>")
@login_required
def delete_car(car_id: int):
    car = _get_listed_car(car_id)
    if car.owner_id != g.user.id and not is_admin():
        return jsonify(error="You can only delete your own cars"), 403

    if SqlBookingStore(db.session).slot_holding_bookings(car.id):
        raise ActiveBookingsExist()

    car.status = "deleted"
    car.deleted_at = datetime.utcnow()
    db.session.commit()

    log_event("CAR_DELETE", user_id=g.user.id, entity="car", entity_id=car.id)
    return jsonify(message="Car deleted"), 200


# ---------- PUBLIC: calendar and price ----------
@cars_bp.get("/<int:car_id>/availability")
def car_availability(car_id: int):
    args = request.args
    start = get_datetime(args, "start_date")
    end = get_datetime(args, "end_date")
    exclude_id = get_int(args, "exclude_booking_id", required=False)

    ok, error = AvailabilityChecker(SqlBookingStore(db.session)).check(car_id, start, end, exclude_id)
    if not ok and isinstance(error, NotFound):
        raise error

    body = {"car_id": car_id, "available": ok}
    if error is not None:
        body.update(error.to_dict())
    return jsonify(body), 200


@cars_bp.get("/<int:car_id>/booked")
def booked_ranges(car_id: int):
    car = _get_listed_car(car_id)
    window_start = get_datetime(request.args, "from", required=False)
    window_end = get_datetime(request.args, "to", required=False)
    rows = SqlBookingStore(db.session).slot_holding_bookings(car.id)
    if window_start and window_end:
        rows = [b for b in rows if overlaps(window_start, window_end, b.start_date, b.end_date)]
    return jsonify([
        {"start_date": b.start_date.isoformat(), "end_date": b.end_date.isoformat()}
        for b in rows
    ]), 200


@cars_bp.get("/<int:car_id>/quote")
def quote(car_id: int):
    car = _get_listed_car(car_id)
    start = get_datetime(request.args, "start_date")
    end = get_datetime(request.args, "end_date")
    cost = compute_cost(car.daily_rate, start, end)
    return jsonify(
        car_id=car.id,
        days=cost.days,
        daily_rate=str(car.daily_rate),
        total=str(cost.total),
        currency=current_app.config.get("CURRENCY", "AED"),
    ), 200
