# Overview: Request authentication and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service, scope_service
from .services.scope_service import RequestScope


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def require_auth(f):
    """
    Require authentication and establish the request scope.

    Sets the following Flask g attributes:
    - g.current_user: the authenticated User
    - g.session_context: the full SessionContext
    - g.scope: RequestScope(user_id, role, tenant_id, location_id) taken
      from the session record; routes pass it explicitly to scope_service

    Returns 401 for a missing, invalid, expired or revoked token, or a
    deactivated user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context
        g.scope = RequestScope(
            user_id=context.user.id,
            role=context.user.role,
            tenant_id=context.tenant_id,
            location_id=context.location_id,
        )

        return f(*args, **kwargs)

    return decorated_function


def require_roles(*roles: str):
    """
    Restrict a route to the given roles. Use after @require_auth.

    Denials are audited (ROLE_DENIED) and surface as 403 through the
    app-level ServiceError handler.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(g, "scope"):
                return jsonify({"error": "Authentication required"}), 401
            scope_service.require_role(g.scope, *roles)
            return f(*args, **kwargs)

        return decorated_function

    return decorator
