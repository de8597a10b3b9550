# Overview: Flask API routes for user management; parses input and returns JSON responses.

"""
User management for store admins (own tenant) and super admins (any tenant).
Accounts are created through POST /api/auth/register.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_roles
from ..errors import ServiceError
from ..models import ROLE_STORE_ADMIN, ROLE_SUPER_ADMIN
from ..services import user_service
from ..services.scope_service import resolve_scope
from ..validation import query_id

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _tenant_filter() -> int | None:
    """None means "all tenants" and is only possible for super_admin."""
    if g.scope.is_super_admin:
        return query_id(request.args, "tenant_id")
    return g.scope.tenant_id


@users_bp.get("/")
@require_auth
@require_roles(ROLE_STORE_ADMIN, ROLE_SUPER_ADMIN)
def list_users_route():
    try:
        users = user_service.list_users(
            tenant_id=_tenant_filter(),
            role=request.args.get("role") or None,
        )
        return jsonify({"items": [u.to_dict() for u in users], "count": len(users)}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@users_bp.get("/location/<int:location_id>")
@require_auth
def list_location_users_route(location_id: int):
    try:
        scope = resolve_scope(g.scope, location_id=location_id)
        users = user_service.list_users(tenant_id=scope.tenant_id, location_id=location_id)
        return jsonify({"items": [u.to_dict() for u in users], "count": len(users)}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@users_bp.get("/<int:user_id>")
@require_auth
@require_roles(ROLE_STORE_ADMIN, ROLE_SUPER_ADMIN)
def get_user_route(user_id: int):
    try:
        user = user_service.get_user(user_id, tenant_id=_tenant_filter())
        return jsonify({"user": user.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@users_bp.put("/<int:user_id>")
@require_auth
@require_roles(ROLE_STORE_ADMIN, ROLE_SUPER_ADMIN)
def update_user_route(user_id: int):
    """Body: any of {email, password, location_id, is_active}."""
    try:
        user = user_service.update_user(user_id, request.get_json(silent=True) or {}, tenant_id=_tenant_filter())
        return jsonify({"user": user.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.delete("/<int:user_id>")
@require_auth
@require_roles(ROLE_STORE_ADMIN, ROLE_SUPER_ADMIN)
def delete_user_route(user_id: int):
    try:
        if user_id == g.current_user.id:
            return jsonify({"error": "Cannot delete your own account"}), 400
        user_service.delete_user(user_id, tenant_id=_tenant_filter())
        return jsonify({"message": "User deleted"}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete user")
        return jsonify({"error": "Internal server error"}), 500
