from datetime import datetime

import pytest

from models import db
from models.audit_log import AuditLog
from models.booking import Booking
from models.payment import Payment
from services import BookingStatus
from tests.conftest import login, make_car, make_user


def _book(client, car_id, start="2024-01-05", end="2024-01-08", **extra):
    return client.post("/bookings", json={"car_id": car_id, "start_date": start, "end_date": end, **extra})


@pytest.fixture
def second_renter(app):
    make_user(app, "second@example.com")
    return login(app, "second@example.com")


def test_booking_scenario(app, owner_client, renter_client, second_renter, car_id):
    resp = _book(renter_client, car_id, notes="Pick up at DXB")
    assert resp.status_code == 201
    first = resp.get_json()
    assert first["days"] == 3
    assert first["total_amount"] == "300.00"
    assert first["status"] == "pending"
    assert first["notes"] == "Pick up at DXB"

    resp = _book(second_renter, car_id, "2024-01-07", "2024-01-10")
    assert resp.status_code == 409
    assert resp.get_json()["code"] == "BOOKING_CONFLICT"

    resp = renter_client.post(f"/bookings/{first['id']}/status", json={"status": "approved"})
    assert resp.status_code == 409
    assert resp.get_json()["code"] == "ILLEGAL_TRANSITION"

    resp = owner_client.post(f"/bookings/{first['id']}/status", json={"status": "approved"})
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "approved"

    with app.app_context():
        actions = [r.action for r in AuditLog.query.order_by(AuditLog.id).all()]
    assert "BOOKING_CREATE" in actions
    assert "BOOKING_FAIL_BOOKING_CONFLICT" in actions
    assert "BOOKING_STATUS_FAIL_ILLEGAL_TRANSITION" in actions
    assert "BOOKING_STATUS_APPROVED" in actions


def test_touching_bookings_are_allowed(renter_client, second_renter, car_id):
    assert _book(renter_client, car_id, "2024-01-05", "2024-01-08").status_code == 201
    assert _book(second_renter, car_id, "2024-01-08", "2024-01-10").status_code == 201


def test_owner_cannot_book_own_car(app):
    user_id = make_user(app, "both@example.com", roles=("OWNER", "RENTER"))
    client = login(app, "both@example.com")
    own_car = make_car(app, user_id)
    resp = _book(client, own_car)
    assert resp.status_code == 403
    assert resp.get_json()["code"] == "SELF_BOOKING_NOT_ALLOWED"


def test_owner_only_account_cannot_rent(owner_client, car_id):
    assert _book(owner_client, car_id).status_code == 403


def test_booking_outside_window(renter_client, car_id):
    resp = _book(renter_client, car_id, "2024-01-28", "2024-02-03")
    assert resp.status_code == 409
    assert resp.get_json()["code"] == "OUTSIDE_AVAILABILITY_WINDOW"


def test_booking_unknown_car(renter_client):
    resp = _book(renter_client, 4242)
    assert resp.status_code == 404
    assert resp.get_json()["code"] == "NOT_FOUND"


@pytest.mark.parametrize("body,code", [
    ({"car_id": "abc", "start_date": "2024-01-05", "end_date": "2024-01-08"}, "INVALID_PAYLOAD"),
    ({"start_date": "2024-01-05", "end_date": "2024-01-08"}, "INVALID_PAYLOAD"),
    ({"car_id": 1, "start_date": "05/01/2024", "end_date": "2024-01-08"}, "INVALID_DATE_RANGE"),
    ({"car_id": 1, "start_date": "2024-01-08", "end_date": "2024-01-05"}, "INVALID_DATE_RANGE"),
])
def test_malformed_requests(renter_client, car_id, body, code):
    resp = renter_client.post("/bookings", json=body)
    assert resp.status_code == 400
    assert resp.get_json()["code"] == code


def test_non_object_body_is_rejected(renter_client, car_id):
    resp = renter_client.post("/bookings", json=[car_id, "2024-01-05", "2024-01-08"])
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "INVALID_PAYLOAD"


def test_confirming_opens_a_payment(app, owner_client, renter_client, car_id):
    booking = _book(renter_client, car_id).get_json()
    owner_client.post(f"/bookings/{booking['id']}/status", json={"status": "approved"})
    resp = owner_client.post(f"/bookings/{booking['id']}/status", json={"status": "confirmed"})

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "confirmed"
    with app.app_context():
        payment = db.session.get(Payment, body["payment_id"])
        assert payment.amount == 30000
        assert payment.currency == "AED"
        assert payment.status == "INIT"


def test_renter_cancels_and_owner_rejects(owner_client, renter_client, second_renter, car_id):
    first = _book(renter_client, car_id).get_json()
    resp = renter_client.post(f"/bookings/{first['id']}/status", json={"status": "cancelled", "reason": "Flight moved"})
    assert resp.status_code == 200
    assert resp.get_json()["cancelled_by"] == "renter"

    second = _book(second_renter, car_id).get_json()
    resp = owner_client.post(f"/bookings/{second['id']}/status", json={"status": "rejected", "reason": "Car in service"})
    assert resp.get_json()["status"] == "rejected"
    assert resp.get_json()["cancellation_reason"] == "Car in service"

    # terminal: nothing moves it again
    resp = owner_client.post(f"/bookings/{second['id']}/status", json={"status": "approved"})
    assert resp.status_code == 409


def test_owner_cannot_cancel_on_renters_behalf(owner_client, renter_client, car_id):
    booking = _book(renter_client, car_id).get_json()
    resp = owner_client.post(f"/bookings/{booking['id']}/status", json={"status": "cancelled"})
    assert resp.status_code == 409


def test_stranger_cannot_move_a_booking(owner_client, renter_client, second_renter, car_id):
    booking = _book(renter_client, car_id).get_json()
    resp = second_renter.post(f"/bookings/{booking['id']}/status", json={"status": "cancelled"})
    assert resp.status_code == 409
    assert renter_client.get(f"/bookings/{booking['id']}").get_json()["status"] == "pending"


def test_unknown_status_value(owner_client, renter_client, car_id):
    booking = _book(renter_client, car_id).get_json()
    resp = owner_client.post(f"/bookings/{booking['id']}/status", json={"status": "paid"})
    assert resp.status_code == 409
    assert resp.get_json()["code"] == "ILLEGAL_TRANSITION"


def test_listing_and_visibility(app, owner_client, renter_client, second_renter, car_id):
    booking = _book(renter_client, car_id).get_json()

    mine = renter_client.get("/bookings/me").get_json()
    assert [b["id"] for b in mine] == [booking["id"]]
    assert mine[0]["car"]["title"] == "Toyota Camry 2022"
    assert renter_client.get("/bookings/me?status=approved").get_json() == []
    assert renter_client.get("/bookings/me?status=bogus").status_code == 400

    owned = owner_client.get("/bookings/owner").get_json()
    assert [b["id"] for b in owned] == [booking["id"]]

    assert owner_client.get(f"/bookings/{booking['id']}").status_code == 200
    assert second_renter.get(f"/bookings/{booking['id']}").status_code == 404


def test_complete_bookings_command(app, owner_client, renter_client, car_id):
    booking = _book(renter_client, car_id).get_json()
    owner_client.post(f"/bookings/{booking['id']}/status", json={"status": "approved"})
    owner_client.post(f"/bookings/{booking['id']}/status", json={"status": "confirmed"})

    result = app.test_cli_runner().invoke(args=["complete-bookings", "--now", "2024-01-09T00:00:00"])
    assert "Completed 1 booking(s)" in result.output

    with app.app_context():
        stored = db.session.get(Booking, booking["id"])
        assert stored.status is BookingStatus.COMPLETED
        assert stored.completed_at == datetime(2024, 1, 9)


def test_owner_can_complete_after_end(owner_client, renter_client, car_id):
    # car window is in 2024, so the end date is already in the past
    booking = _book(renter_client, car_id).get_json()
    for status in ("approved", "confirmed", "completed"):
        resp = owner_client.post(f"/bookings/{booking['id']}/status", json={"status": status})
        assert resp.status_code == 200
    assert resp.get_json()["completed_at"] is not None
