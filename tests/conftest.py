from datetime import datetime
from decimal import Decimal

import pytest

from app import create_app
from config import Config
from models import db
from models.car import Car
from models.user import User, Role
from security.password import hash_password

PASSWORD = "Passw0rd123"


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    CREATE_TABLES = True
    BCRYPT_ROUNDS = 4
    MIN_CAR_IMAGES = 3
    STRIPE_SECRET_KEY = "sk_test_dummy"
    STRIPE_WEBHOOK_SECRET = "whsec_test_dummy"
    STRIPE_SUCCESS_URL = "http://localhost:5173/payments/success"
    STRIPE_CANCEL_URL = "http://localhost:5173/payments/cancel"
    SMTP_HOST = None


@pytest.fixture
def app():
    app = create_app(TestConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


def make_user(app, email, roles=("RENTER",), approved=True, password=PASSWORD):
    with app.app_context():
        user = User(
            email=email,
            password_hash=hash_password(password, rounds=4),
            full_name=email.split("@")[0].title(),
            phone_number="0501234567",
            is_approved=approved,
        )
        user.roles = Role.query.filter(Role.name.in_(roles)).all()
        db.session.add(user)
        db.session.commit()
        return user.id


def make_car(app, owner_id, **overrides):
    fields = dict(
        owner_id=owner_id,
        title="Toyota Camry 2022",
        description="Clean, well maintained sedan",
        city="Dubai",
        daily_rate=Decimal("100.00"),
        images=["https://img.example/1.jpg", "https://img.example/2.jpg", "https://img.example/3.jpg"],
        available_from=datetime(2024, 1, 1),
        available_to=datetime(2024, 1, 31),
        status="active",
    )
    fields.update(overrides)
    with app.app_context():
        car = Car(**fields)
        db.session.add(car)
        db.session.commit()
        return car.id


def login(app, email, password=PASSWORD):
    client = app.test_client()
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    # echo the double-submit cookie like the frontend does
    client.environ_base["HTTP_X_CSRF_TOKEN"] = client.get_cookie("borrowmycar_csrf").value
    return client


@pytest.fixture
def owner_id(app):
    return make_user(app, "owner@example.com", roles=("OWNER",))


@pytest.fixture
def renter_id(app):
    return make_user(app, "renter@example.com", roles=("RENTER",))


@pytest.fixture
def car_id(app, owner_id):
    return make_car(app, owner_id)


@pytest.fixture
def owner_client(app, owner_id):
    return login(app, "owner@example.com")


@pytest.fixture
def renter_client(app, renter_id):
    return login(app, "renter@example.com")
