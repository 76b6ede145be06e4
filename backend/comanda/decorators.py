# Overview: Request decorators for API routes: acting-user resolution and role gating.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import User
from .roles import has_role

USER_HEADER = "X-User-Id"


def require_auth(f):
    """
    Resolve the acting user.

    The identity provider in front of this service authenticates the caller
    and forwards the user id in the X-User-Id header. Sets g.current_user.

    Returns 401 if the header is missing, malformed, unknown or the user is
    deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw_id = request.headers.get(USER_HEADER, "").strip()
        if not raw_id.isdigit():
            return jsonify({"error": "Authentication required"}), 401

        user = db.session.query(User).filter_by(id=int(raw_id)).first()
        if user is None or not user.is_active:
            return jsonify({"error": "Unknown or inactive user"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_role(*allowed_roles):
    """
    Require the acting user to hold one of the given roles.

    Accepts role names or role groups (sets) from comanda.roles.
    """
    allowed = set()
    for role in allowed_roles:
        if isinstance(role, str):
            allowed.add(role)
        else:
            allowed.update(role)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return jsonify({"error": "Authentication required"}), 401

            if not has_role(user, allowed):
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": sorted(allowed),
                    "role": user.role,
                }), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator
