# Overview: Authentication and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, session

from .permissions import Role, role_satisfies
from .services import session_service


def _token_from_request() -> str | None:
    """Bearer header first, then the signed session cookie set at login."""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1]
    return session.get("token")


def require_auth(f):
    """
    Require a valid session.

    Sets on Flask g:
    - g.current_user: the authenticated User
    - g.auth_token: the plaintext token the request carried

    Returns 401 when the token is missing, unknown, expired, idle, revoked,
    or belongs to a deactivated account.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _token_from_request()
        if not token:
            return jsonify({"message": "Authentification requise"}), 401

        user = session_service.validate_session(token)
        if user is None:
            return jsonify({"message": "Session invalide ou expirée"}), 401

        g.current_user = user
        g.auth_token = token
        return f(*args, **kwargs)

    return decorated_function


def require_role(required: Role):
    """
    Require at least `required` in the role order cashier < admin < super_admin.

    Must be stacked under @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return jsonify({"message": "Authentification requise"}), 401
            if not role_satisfies(user.role, required):
                return jsonify({"message": "Forbidden"}), 403
            return f(*args, **kwargs)

        return decorated_function
    return decorator
