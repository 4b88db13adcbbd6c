import hashlib
import secrets
from datetime import datetime, timedelta
from flask import request, current_app

from models import db
from models.session import Session

def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

def _client_ip():
    return request.headers.get("X-Forwarded-For", request.remote_addr)

def create_session(user_id: int) -> str:
    """
    Persists a new session and returns the raw token for the cookie.
    Only its hash is stored.
    """
    raw_token = secrets.token_urlsafe(32)
    lifetime = current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60)

    db.session.add(Session(
        user_id=user_id,
        token_hash=_hash_token(raw_token),
        expires_at=datetime.utcnow() + timedelta(seconds=lifetime),
        ip=_client_ip(),
        user_agent=(request.headers.get("User-Agent") or "")[:255],
    ))
    db.session.commit()
    return raw_token

def set_session_cookie(resp, raw_token: str):
    cfg = current_app.config
    resp.set_cookie(
        cfg.get("AUTH_COOKIE_NAME", "borrowmycar_session"),
        raw_token,
        max_age=cfg.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60),
        httponly=True,
        secure=cfg.get("SESSION_COOKIE_SECURE", False),
        samesite=cfg.get("SESSION_COOKIE_SAMESITE", "Lax"),
        path="/",
    )
    return resp

def clear_session_cookie(resp):
    resp.delete_cookie(current_app.config.get("AUTH_COOKIE_NAME", "borrowmycar_session"), path="/")
    return resp

def get_session_from_request():
    raw_token = request.cookies.get(current_app.config.get("AUTH_COOKIE_NAME", "borrowmycar_session"))
    if not raw_token:
        return None

    sess = Session.query.filter_by(token_hash=_hash_token(raw_token)).first()
    if not sess or sess.revoked:
        return None

    now = datetime.utcnow()
    if sess.expires_at <= now:
        return None

    idle_seconds = current_app.config.get("IDLE_TIMEOUT_SECONDS", 30 * 60)
    last_seen = sess.last_seen_at or sess.created_at
    if last_seen + timedelta(seconds=idle_seconds) <= now:
        return None

    sess.last_seen_at = now
    db.session.commit()
    return sess

def revoke_session(raw_token: str) -> bool:
    if not raw_token:
        return False
    sess = Session.query.filter_by(token_hash=_hash_token(raw_token)).first()
    if not sess or sess.revoked:
        return False
    sess.revoked_at = datetime.utcnow()
    db.session.commit()
    return True

def revoke_all_sessions(user_id: int) -> int:
    sessions = Session.query.filter_by(user_id=user_id, revoked_at=None).all()
    now = datetime.utcnow()
    for s in sessions:
        s.revoked_at = now
    db.session.commit()
    return len(sessions)
