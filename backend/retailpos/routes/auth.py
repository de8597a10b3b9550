# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/retailpos/routes/auth.py
"""
Authentication API routes

- /signup is public: it creates a tenant, its first location and a store admin.
- /register is for admins creating accounts inside their tenant.
- /login issues a bearer token; /logout revokes it.
- /switch-context lets a super admin choose the tenant/location to work in.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_roles
from ..errors import ServiceError, ValidationError
from ..models import ROLE_LOCATION_USER, ROLE_STORE_ADMIN, ROLE_SUPER_ADMIN
from ..services import auth_service
from ..services import session_service
from ..services import scope_service
from ..services.security_service import log_security_event
from ..validation import optional_id


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user, session, token: str) -> dict:
    return {
        "user": user.to_dict(),
        "token": token,
        "session": session.to_dict(),
        "tenant_id": session.tenant_id,
        "location_id": session.location_id,
    }


@auth_bp.post("/signup")
def signup_route():
    """
    Public store signup. Returns a logged-in session for the new store admin.

    Body: {tenant_name, location_name, email, password, location_address?, location_phone?}
    """
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.signup(
            tenant_name=data.get("tenant_name"),
            location_name=data.get("location_name"),
            email=data.get("email"),
            password=data.get("password"),
            location_address=data.get("location_address"),
            location_phone=data.get("location_phone"),
        )
        session, token = session_service.create_session(
            user,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        return jsonify({**_session_payload(user, session, token), "message": "Signup successful"}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to sign up")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/register")
@require_auth
@require_roles(ROLE_STORE_ADMIN, ROLE_SUPER_ADMIN)
def register_route():
    """
    Create a store_admin or location_user.

    store_admin callers may only create users inside their own tenant.
    super_admins are created from the CLI, never here.
    """
    data = request.get_json(silent=True) or {}
    try:
        role = data.get("role") or ROLE_LOCATION_USER
        if role not in (ROLE_STORE_ADMIN, ROLE_LOCATION_USER):
            raise ValidationError("role must be store_admin or location_user")

        scope = scope_service.resolve_scope(
            g.scope,
            tenant_id=optional_id("tenant_id", data.get("tenant_id")),
            location_id=optional_id("location_id", data.get("location_id")),
        )
        scope_service.require_tenant(scope)

        user = auth_service.create_user(
            data.get("email"),
            data.get("password"),
            role,
            tenant_id=scope.tenant_id,
            location_id=scope.location_id,
        )
        log_security_event(
            user_id=g.current_user.id,
            event_type="USER_CREATED",
            success=True,
            resource=request.path,
            action=request.method,
            reason=f"Created {role} {user.email}",
            tenant_id=user.tenant_id,
            location_id=user.location_id,
        )
        return jsonify({"user": user.to_dict()}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    The token goes in the Authorization header ("Bearer <token>").
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr

        user = auth_service.authenticate(email, password)
        if not user:
            log_security_event(
                user_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                resource=request.path,
                action=request.method,
                reason=f"Invalid credentials for {str(email)[:200]}",
                ip_address=ip_address,
                user_agent=user_agent,
            )
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(user, user_agent=user_agent, ip_address=ip_address)
        return jsonify({**_session_payload(user, session, token), "message": "Login successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        token = request.headers.get("Authorization", "").split(" ", 1)[1].strip()
        session_service.revoke_session(token)
        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/profile")
@require_auth
def profile_route():
    """Current user plus the session's working context."""
    user = g.current_user
    data = user.to_dict()
    data["tenant"] = user.tenant.to_dict() if user.tenant else None
    data["location"] = user.location.to_dict() if user.location else None
    return jsonify({
        "user": data,
        "context": {
            "tenant_id": g.scope.tenant_id,
            "location_id": g.scope.location_id,
        },
    }), 200


@auth_bp.post("/switch-context")
@require_auth
def switch_context_route():
    """
    super_admin only: choose the tenant/location later requests default to.

    Body: {tenant_id?, location_id?}; both omitted clears the context.
    """
    data = request.get_json(silent=True) or {}
    try:
        scope = scope_service.switch_context(
            g.session_context.session,
            g.scope,
            optional_id("tenant_id", data.get("tenant_id")),
            optional_id("location_id", data.get("location_id")),
        )
        return jsonify({
            "context": {"tenant_id": scope.tenant_id, "location_id": scope.location_id},
            "message": "Context switched",
        }), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to switch context")
        return jsonify({"error": "Internal server error"}), 500
