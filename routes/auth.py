import re

from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.user import User, Role
from security.password import hash_password, verify_password, validate_password
from security.csrf import issue_csrf_token, clear_csrf_cookie
from security.session import (
    create_session,
    set_session_cookie,
    clear_session_cookie,
    revoke_session,
    revoke_all_sessions,
)
from utils.audit import log_event
from utils.auth_context import login_required
from utils.payload import json_body, get_str
from utils.serializers import user_json


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

# UAE numbers, with or without the country prefix
PHONE_RE = re.compile(r"^(\+971|00971|971)?[0-9]{8,9}$")
SELF_SERVICE_ROLES = {"renter": "RENTER", "owner": "OWNER"}


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def _normalise_phone(raw: str):
    phone = raw.replace(" ", "")
    return phone if PHONE_RE.match(phone) else None


def _requested_roles(data):
    raw = data.get("roles")
    if raw is None:
        return ["RENTER"]
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list) or not raw:
        return None
    names = []
    for item in raw:
        name = SELF_SERVICE_ROLES.get(str(item).strip().lower())
        if not name:
            return None
        if name not in names:
            names.append(name)
    return names


@auth_bp.post("/register")
def register():
    data = json_body()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    full_name = get_str(data, "full_name", max_length=120)
    phone_number = get_str(data, "phone_number", max_length=30)

    if not _is_valid_email(email):
        return jsonify(error="Invalid email"), 400
    if not _normalise_phone(phone_number):
        return jsonify(error="Please enter a valid UAE phone number"), 400
    errors = validate_password(password)
    if errors:
        return jsonify(error="Password does not meet policy", details=errors), 400

    role_names = _requested_roles(data)
    if role_names is None:
        return jsonify(error="roles must be a list of: renter, owner"), 400

    if User.query.filter_by(email=email).first():
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": email})
        return jsonify(error="Email already registered"), 409

    user = User(
        email=email,
        password_hash=hash_password(password, rounds=current_app.config.get("BCRYPT_ROUNDS", 12)),
        full_name=full_name,
        phone_number=_normalise_phone(phone_number),
    )
    user.roles = Role.query.filter(Role.name.in_(role_names)).all()
    db.session.add(user)
    db.session.commit()

    log_event("REGISTER_SUCCESS", user_id=user.id, metadata={"roles": role_names})
    return jsonify(user_json(user)), 201


@auth_bp.post("/login")
def login():
    data = json_body()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(password, user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        return jsonify(error="Invalid credentials"), 401

    # one live session per user
    revoked_count = revoke_all_sessions(user.id)
    raw_token = create_session(user.id)

    resp = set_session_cookie(jsonify(message="Login OK", user=user_json(user)), raw_token)
    resp = issue_csrf_token(resp)
    log_event("LOGIN_SUCCESS", user_id=user.id, metadata={"revoked_sessions": revoked_count})
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(user_json(g.user)), 200


@auth_bp.post("/logout")
@login_required
def logout():
    raw_token = request.cookies.get(current_app.config.get("AUTH_COOKIE_NAME", "borrowmycar_session"))
    revoke_session(raw_token)
    log_event("LOGOUT", user_id=g.user.id)
    resp = clear_session_cookie(jsonify(message="Logged out"))
    return clear_csrf_cookie(resp), 200


@auth_bp.post("/logout_all")
@login_required
def logout_all():
    count = revoke_all_sessions(g.user.id)
    log_event("LOGOUT_ALL", user_id=g.user.id, metadata={"revoked_sessions": count})

    resp = clear_session_cookie(jsonify(message="Logged out everywhere", revoked_sessions=count))
    return clear_csrf_cookie(resp), 200


@auth_bp.get("/profile")
@login_required
def get_profile():
    return jsonify(user_json(g.user)), 200


@auth_bp.post("/profile")
@login_required
def update_profile():
    """Name and phone only; email, roles and approval are not self-service."""
    data = json_body()
    changed = []

    if "full_name" in data:
        g.user.full_name = get_str(data, "full_name", max_length=120)
        changed.append("full_name")

    if "phone_number" in data:
        phone_number = _normalise_phone(get_str(data, "phone_number", max_length=30))
        if not phone_number:
            return jsonify(error="Please enter a valid UAE phone number"), 400
        g.user.phone_number = phone_number
        changed.append("phone_number")

    db.session.commit()
    log_event("PROFILE_UPDATE", user_id=g.user.id, metadata={"fields": changed})
    return jsonify(user_json(g.user)), 200


@auth_bp.post("/change_password")
@login_required
def change_password():
    data = json_body()
    current_password = data.get("current_password") or ""
    new_password = data.get("new_password") or ""

    if not verify_password(current_password, g.user.password_hash):
        log_event("PASSWORD_CHANGE_FAIL", user_id=g.user.id)
        return jsonify(error="Invalid current password"), 401

    errors = validate_password(new_password)
    if errors:
        return jsonify(error="Password does not meet policy", details=errors), 400
    if verify_password(new_password, g.user.password_hash):
        return jsonify(error="New password must differ from the current one"), 400

    g.user.password_hash = hash_password(new_password, rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    db.session.commit()

    log_event("PASSWORD_CHANGED", user_id=g.user.id)
    return jsonify(message="Password updated"), 200
