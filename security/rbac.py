from functools import wraps
from flask import g, jsonify

ADMIN = "ADMIN"
OWNER = "OWNER"
RENTER = "RENTER"

def has_role(role_name: str) -> bool:
    user = getattr(g, "user", None)
    if not user:
        return False
    return user.has_role(role_name)

def is_admin() -> bool:
    return has_role(ADMIN)

def require_roles(*role_names: str):
    """
    Usage: @require_roles("OWNER")
    ADMIN passes every role check.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                return jsonify(error="Authentication required"), 401

            user_roles = set(user.role_names)
            if ADMIN not in user_roles and not user_roles.intersection(role_names):
                return jsonify(error="Forbidden"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator

def require_approved(fn):
    """Owners must be approved by an admin before they can list cars."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        user = getattr(g, "user", None)
        if user is None:
            return jsonify(error="Authentication required"), 401
        if not user.is_approved and not user.has_role(ADMIN):
            return jsonify(error="Your account must be approved before listing cars", code="ACCOUNT_NOT_APPROVED"), 403
        return fn(*args, **kwargs)
    return wrapper
