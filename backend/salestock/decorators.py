# Overview: Request and role decorators for API routes.

from functools import wraps

from flask import g, jsonify, request

from .errors import AuthenticationError, PermissionDeniedError
from .services import session_service


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.current_user and g.token. Returns 401 with the error envelope if
    the header is missing, or the token is unknown, revoked or expired.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify(AuthenticationError("Authentication required").to_envelope()), 401

        user = session_service.validate_session(token)
        if not user:
            return jsonify(AuthenticationError("Invalid or expired token").to_envelope()), 401

        g.current_user = user
        g.token = token
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles):
    """Require one of roles. Must be applied after @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return jsonify(AuthenticationError("Authentication required").to_envelope()), 401

            if user.role not in roles:
                err = PermissionDeniedError(
                    "Permission denied",
                    details={"required_roles": list(roles)},
                )
                return jsonify(err.to_envelope()), err.status_code

            return f(*args, **kwargs)

        return decorated_function
    return decorator
