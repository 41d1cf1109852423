# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/vendshop/routes/auth.py
"""
Authentication API routes

- Registration and login return a bearer token plus the user
- Banned accounts cannot log in (403)
- Password reset links are delivered through the notifier
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..validation import ValidationError, NotFoundError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user, status: int):
    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return jsonify({
        "user": user.to_dict(),
        "token": token,
        "session": session.to_dict(),
    }), status


@auth_bp.post("/register")
def register_route():
    """
    Create an account and log it in.

    Body: {email, password}
    """
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.create_user(data.get("email"), data.get("password"))
        current_app.logger.info("Registered user %s (admin=%s)", user.id, user.is_admin)
        return _session_payload(user, 201)

    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"message": "Registration failed"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not email or not password:
            return jsonify({"message": "email and password required"}), 400

        user = auth_service.authenticate(email, password)
        if not user:
            return jsonify({"message": "Invalid email or password"}), 401

        if user.is_banned:
            return jsonify({"message": "Your account has been banned"}), 403

        return _session_payload(user, 200)

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"message": "Login failed"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_session(g.session_token)
        return jsonify({"message": "Logged out successfully"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"message": "Logout failed"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify(g.current_user.to_dict()), 200


@auth_bp.post("/forgot-password")
def forgot_password_route():
    """
    Issue a reset token and send the link.

    Body: {email}
    """
    try:
        data = request.get_json(silent=True) or {}
        base_url = current_app.config.get("PUBLIC_BASE_URL") or request.host_url
        auth_service.request_password_reset(data.get("email"), base_url)
        return jsonify({"message": "Password reset link sent to your email"}), 200

    except NotFoundError as e:
        return jsonify({"message": str(e)}), 404
    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to process password reset request")
        return jsonify({"message": "Failed to process password reset request"}), 500


@auth_bp.post("/reset-password")
def reset_password_route():
    """
    Body: {token, password}
    """
    try:
        data = request.get_json(silent=True) or {}
        auth_service.reset_password(data.get("token"), data.get("password"))
        return jsonify({"message": "Password reset successfully"}), 200

    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to reset password")
        return jsonify({"message": "Failed to reset password"}), 500
