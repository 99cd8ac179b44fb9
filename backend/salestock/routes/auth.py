# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/salestock/routes/auth.py
"""
Authentication API routes

Login issues an opaque bearer token; every other route expects it in the
Authorization header.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import AuthenticationError, ValidationError
from ..extensions import db
from ..services import auth_service, session_service
from ..services.activity_service import ACTION_USER_LOGIN, ACTION_USER_LOGOUT, record_activity
from ..time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and create a session token.

    Returns user info and the token; the token is shown only once.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        password = data.get("password")

        if not username or not password:
            err = ValidationError("username and password required")
            return jsonify(err.to_envelope()), err.status_code

        user = auth_service.authenticate(username, password)
        if not user:
            current_app.logger.info("Failed login for %s from %s", username, request.remote_addr)
            err = AuthenticationError("Invalid credentials")
            return jsonify(err.to_envelope()), err.status_code

        session, token = session_service.create_session(user)

        record_activity(
            action_type=ACTION_USER_LOGIN,
            entity_type="user",
            entity_id=user.id,
            user_id=user.id,
            description=f"{user.full_name or user.username} logged in",
        )
        db.session.commit()

        return jsonify({
            "success": True,
            "token": token,
            "expires_at": to_utc_z(session.expires_at),
            "user": user.to_dict(),
        }), 200

    except Exception:
        current_app.logger.exception("Login failed")
        return jsonify({"success": False, "error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    user = g.current_user
    session_service.revoke_session(g.token)

    record_activity(
        action_type=ACTION_USER_LOGOUT,
        entity_type="user",
        entity_id=user.id,
        user_id=user.id,
        description=f"{user.full_name or user.username} logged out",
    )
    db.session.commit()

    return jsonify({"success": True, "message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"success": True, "user": g.current_user.to_dict()}), 200
