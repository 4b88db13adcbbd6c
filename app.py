from datetime import datetime

import click
from flask import Flask, jsonify, request, g
from sqlalchemy.exc import IntegrityError

from config import Config
from routes import (
    health_bp,
    auth_bp,
    cars_bp,
    bookings_bp,
    payments_bp,
    webhook_bp,
    admin_bp,
    audit_bp,
)
from models import db
from models.user import User, Role
from security.csrf import require_csrf
from flask_migrate import Migrate
from services import BookingLifecycleManager
from services.errors import BookingError
from services.store import SqlBookingStore
from utils.audit import log_event
from utils.seed import seed_roles
from utils.auth_context import load_current_user


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Register routes
    for bp in (health_bp, auth_bp, cars_bp, bookings_bp, payments_bp, webhook_bp, admin_bp, audit_bp):
        app.register_blueprint(bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    if app.config.get("CREATE_TABLES"):
        with app.app_context():
            db.create_all()

    # Seed default roles at startup (safe & idempotent)
    with app.app_context():
        seed_roles()

    @app.before_request
    def _load_user():
        load_current_user()

    # bootstrap endpoints and the signed Stripe callback carry no CSRF token
    CSRF_EXEMPT_PATHS = {
        "/auth/login",
        "/auth/register",
        "/health",
        "/webhooks/stripe",
    }

    @app.before_request
    def _csrf_protect():
        if request.method not in ("POST", "PUT", "PATCH", "DELETE"):
            return None
        if request.path in CSRF_EXEMPT_PATHS:
            return None
        # only cookie-authenticated requests can be forged
        if getattr(g, "user", None) is None:
            return None
        return require_csrf()

    @app.errorhandler(BookingError)
    def _booking_error(exc):
        db.session.rollback()
        return jsonify(exc.to_dict()), exc.http_status

    @app.errorhandler(IntegrityError)
    def _integrity_error(exc):
        db.session.rollback()
        return jsonify(error="Conflicts with an existing record"), 409

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------

def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Grant the ADMIN role to a user by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found", err=True)
            raise SystemExit(1)

        admin_role = Role.query.filter_by(name="ADMIN").first()
        if admin_role not in user.roles:
            user.roles.append(admin_role)
        user.is_approved = True
        db.session.commit()

        click.echo(f"{user.email} promoted to ADMIN")

    @app.cli.command("seed-roles")
    def seed_roles_command():
        """Create the default roles if missing."""
        seed_roles()
        click.echo("Roles seeded")

    @app.cli.command("complete-bookings")
    @click.option("--now", "now_str", default=None, help="ISO datetime to treat as now (UTC).")
    def complete_bookings(now_str):
        """Complete confirmed/active bookings whose end date has passed."""
        now = datetime.fromisoformat(now_str) if now_str else datetime.utcnow()
        done = BookingLifecycleManager(SqlBookingStore(db.session)).complete_due(now)
        for booking in done:
            log_event("BOOKING_STATUS_COMPLETED", entity="booking", entity_id=booking.id, metadata={"role": "system"})
        click.echo(f"Completed {len(done)} booking(s)")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    app.run(host="127.0.0.1", port=5002)
