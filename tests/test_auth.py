from models import db
from models.audit_log import AuditLog
from tests.conftest import PASSWORD, login, make_user


def _register(client, **overrides):
    body = {
        "email": "Layla@Example.com",
        "password": PASSWORD,
        "full_name": "Layla Hassan",
        "phone_number": "+971501234567",
    }
    body.update(overrides)
    return client.post("/auth/register", json=body)


def test_register_defaults_to_renter(app):
    resp = _register(app.test_client())
    assert resp.status_code == 201
    data = resp.get_json()
    assert data["email"] == "layla@example.com"
    assert data["roles"] == ["renter"]
    assert data["is_approved"] is False


def test_register_as_owner_and_renter(app):
    resp = _register(app.test_client(), roles=["owner", "renter"])
    assert resp.status_code == 201
    assert resp.get_json()["roles"] == ["owner", "renter"]


def test_register_cannot_self_assign_admin(app):
    resp = _register(app.test_client(), roles=["admin"])
    assert resp.status_code == 400


def test_register_duplicate_email(app):
    client = app.test_client()
    assert _register(client).status_code == 201
    assert _register(client).status_code == 409


def test_register_validates_phone_and_password(app):
    client = app.test_client()
    assert _register(client, phone_number="12345").status_code == 400
    resp = _register(client, password="short")
    assert resp.status_code == 400
    assert resp.get_json()["details"]


def test_register_missing_name_is_invalid_payload(app):
    resp = _register(app.test_client(), full_name=None)
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "INVALID_PAYLOAD"


def test_login_me_logout(app):
    make_user(app, "sam@example.com", roles=("RENTER", "OWNER"))
    client = login(app, "sam@example.com")

    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.get_json()["roles"] == ["owner", "renter"]

    assert client.post("/auth/logout").status_code == 200
    assert client.get("/auth/me").status_code == 401


def test_login_with_wrong_password_is_audited(app):
    make_user(app, "sam@example.com")
    resp = app.test_client().post("/auth/login", json={"email": "sam@example.com", "password": "nope"})
    assert resp.status_code == 401
    with app.app_context():
        assert db.session.query(AuditLog).filter_by(action="LOGIN_FAIL").count() == 1


def test_new_login_revokes_previous_session(app):
    make_user(app, "sam@example.com")
    first = login(app, "sam@example.com")
    login(app, "sam@example.com")
    assert first.get("/auth/me").status_code == 401


def test_security_headers(app):
    resp = app.test_client().get("/health")
    assert resp.status_code == 200
    assert resp.headers["X-Frame-Options"] == "DENY"


def test_state_changes_need_the_csrf_header(app, owner_client, car_id):
    token = owner_client.environ_base.pop("HTTP_X_CSRF_TOKEN")

    resp = owner_client.patch(f"/cars/{car_id}", json={"title": "Forged"})
    assert resp.status_code == 403
    assert resp.get_json()["code"] == "CSRF_FAILED"

    resp = owner_client.patch(f"/cars/{car_id}", json={"title": "Forged"}, headers={"X-CSRF-Token": "guess"})
    assert resp.status_code == 403

    # reads are not checked
    assert owner_client.get(f"/cars/{car_id}").get_json()["title"] == "Toyota Camry 2022"

    resp = owner_client.patch(f"/cars/{car_id}", json={"title": "Renamed"}, headers={"X-CSRF-Token": token})
    assert resp.status_code == 200


def test_login_sets_a_readable_csrf_cookie(app):
    make_user(app, "sam@example.com")
    resp = app.test_client().post("/auth/login", json={"email": "sam@example.com", "password": PASSWORD})
    cookies = resp.headers.getlist("Set-Cookie")
    csrf = [c for c in cookies if c.startswith("borrowmycar_csrf=")]
    assert csrf and "HttpOnly" not in csrf[0]
    session = [c for c in cookies if c.startswith("borrowmycar_session=")]
    assert "HttpOnly" in session[0]


def test_logout_all(app):
    make_user(app, "sam@example.com")
    client = login(app, "sam@example.com")

    resp = client.post("/auth/logout_all")
    assert resp.status_code == 200
    assert resp.get_json()["revoked_sessions"] == 1
    assert client.get("/auth/me").status_code == 401


def test_profile_read_and_update(app):
    make_user(app, "sam@example.com")
    client = login(app, "sam@example.com")

    assert client.get("/auth/profile").get_json()["email"] == "sam@example.com"

    resp = client.post("/auth/profile", json={"full_name": "Sam Al Marri", "phone_number": "+971 50 765 4321"})
    assert resp.status_code == 200
    assert resp.get_json()["full_name"] == "Sam Al Marri"
    assert resp.get_json()["phone_number"] == "+971507654321"

    assert client.post("/auth/profile", json={"phone_number": "555"}).status_code == 400
    # email and roles are ignored
    resp = client.post("/auth/profile", json={"email": "x@example.com", "roles": ["admin"]})
    assert resp.get_json()["email"] == "sam@example.com"
    assert resp.get_json()["roles"] == ["renter"]


def test_change_password(app):
    make_user(app, "sam@example.com")
    client = login(app, "sam@example.com")

    resp = client.post("/auth/change_password", json={"current_password": "wrong", "new_password": "N3wPassword"})
    assert resp.status_code == 401
    resp = client.post("/auth/change_password", json={"current_password": PASSWORD, "new_password": "short"})
    assert resp.status_code == 400
    resp = client.post("/auth/change_password", json={"current_password": PASSWORD, "new_password": PASSWORD})
    assert resp.status_code == 400

    resp = client.post("/auth/change_password", json={"current_password": PASSWORD, "new_password": "N3wPassword"})
    assert resp.status_code == 200
    login(app, "sam@example.com", password="N3wPassword")
