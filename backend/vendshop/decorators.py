# Overview: Request decorators for API routes (identity gate).

from functools import wraps
from flask import request, jsonify, g

from .services import session_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_token: The plaintext token (for logout)
    - g.session_context: The full SessionContext object

    Returns 401 if the header is missing, or the token is invalid, expired
    or revoked.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"message": "Unauthorized"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"message": "Unauthorized"}), 401

        g.current_user = context.user
        g.session_token = token
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """
    Require an administrator. Must be stacked under @require_auth.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = getattr(g, "current_user", None)
        if user is None:
            return jsonify({"message": "Unauthorized"}), 401

        if not user.is_admin:
            return jsonify({"message": "Forbidden - Admin access required"}), 403

        return f(*args, **kwargs)

    return decorated_function
