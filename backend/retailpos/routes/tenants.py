# Overview: Flask API routes for tenants (super_admin only).

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_roles
from ..errors import ServiceError
from ..models import ROLE_SUPER_ADMIN
from ..services import tenant_service

tenants_bp = Blueprint("tenants", __name__, url_prefix="/api/tenants")


@tenants_bp.post("/")
@require_auth
@require_roles(ROLE_SUPER_ADMIN)
def create_tenant_route():
    try:
        tenant = tenant_service.create_tenant(request.get_json(silent=True) or {})
        return jsonify({"tenant": tenant.to_dict()}), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create tenant")
        return jsonify({"error": "Internal server error"}), 500


@tenants_bp.get("/")
@require_auth
@require_roles(ROLE_SUPER_ADMIN)
def list_tenants_route():
    tenants = tenant_service.list_tenants()
    return jsonify({"items": [t.to_dict() for t in tenants], "count": len(tenants)}), 200


@tenants_bp.get("/<int:tenant_id>")
@require_auth
@require_roles(ROLE_SUPER_ADMIN)
def get_tenant_route(tenant_id: int):
    try:
        tenant = tenant_service.get_tenant(tenant_id)
        data = tenant.to_dict()
        data["locations"] = [loc.to_dict() for loc in tenant.locations]
        return jsonify({"tenant": data}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@tenants_bp.put("/<int:tenant_id>")
@require_auth
@require_roles(ROLE_SUPER_ADMIN)
def update_tenant_route(tenant_id: int):
    try:
        tenant = tenant_service.update_tenant(tenant_id, request.get_json(silent=True) or {})
        return jsonify({"tenant": tenant.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update tenant")
        return jsonify({"error": "Internal server error"}), 500


@tenants_bp.delete("/<int:tenant_id>")
@require_auth
@require_roles(ROLE_SUPER_ADMIN)
def delete_tenant_route(tenant_id: int):
    """Deletes the tenant with all of its data (database cascade)."""
    try:
        tenant_service.delete_tenant(tenant_id)
        return jsonify({"message": "Tenant deleted"}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete tenant")
        return jsonify({"error": "Internal server error"}), 500
