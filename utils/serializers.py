def _iso(value):
    return value.isoformat() if value else None

def _money(value):
    return str(value) if value is not None else None

def user_json(user):
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "phone_number": user.phone_number,
        "roles": [r.lower() for r in user.role_names],
        "is_approved": user.is_approved,
        "created_at": _iso(user.created_at),
    }

def car_json(car):
    return {
        "id": car.id,
        "owner_id": car.owner_id,
        "title": car.title,
        "description": car.description,
        "city": car.city,
        "daily_rate": _money(car.daily_rate),
        "images": list(car.images or []),
        "available_from": _iso(car.available_from),
        "available_to": _iso(car.available_to),
        "transmission": car.transmission,
        "fuel_type": car.fuel_type,
        "year": car.year,
        "status": car.status,
        "rejection_reason": car.rejection_reason,
        "created_at": _iso(car.created_at),
    }

def booking_json(booking, include_car=False):
    out = {
        "id": booking.id,
        "car_id": booking.car_id,
        "renter_id": booking.renter_id,
        "start_date": _iso(booking.start_date),
        "end_date": _iso(booking.end_date),
        "days": booking.days,
        "daily_rate": _money(booking.daily_rate),
        "total_amount": _money(booking.total_amount),
        "status": booking.status.value,
        "notes": booking.renter_notes,
        "cancellation_reason": booking.cancellation_reason,
        "cancelled_by": booking.cancelled_by,
        "created_at": _iso(booking.created_at),
        "approved_at": _iso(booking.approved_at),
        "confirmed_at": _iso(booking.confirmed_at),
        "completed_at": _iso(booking.completed_at),
        "cancelled_at": _iso(booking.cancelled_at),
        "rejected_at": _iso(booking.rejected_at),
    }
    if include_car and booking.car is not None:
        out["car"] = {"id": booking.car.id, "title": booking.car.title, "city": booking.car.city}
    return out

def payment_json(payment):
    return {
        "id": payment.id,
        "booking_id": payment.booking_id,
        "amount": payment.amount,
        "currency": payment.currency,
        "status": payment.status,
        "created_at": _iso(payment.created_at),
        "paid_at": _iso(payment.paid_at),
    }
