import hmac
import secrets
from flask import request, jsonify, current_app

CSRF_HEADER = "X-CSRF-Token"

def _cookie_name() -> str:
    return current_app.config.get("CSRF_COOKIE_NAME", "borrowmycar_csrf")

def issue_csrf_token(resp):
    """
    Double-submit token: a JS-readable cookie the client echoes back in the
    X-CSRF-Token header on every state-changing request.
    """
    token = secrets.token_urlsafe(32)
    resp.set_cookie(
        _cookie_name(),
        token,
        httponly=False,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        path="/",
    )
    return resp

def clear_csrf_cookie(resp):
    resp.delete_cookie(_cookie_name(), path="/")
    return resp

def require_csrf():
    cookie_token = request.cookies.get(_cookie_name())
    header_token = request.headers.get(CSRF_HEADER)
    if not cookie_token or not header_token or not hmac.compare_digest(cookie_token, header_token):
        return jsonify(error="CSRF validation failed", code="CSRF_FAILED"), 403
    return None
