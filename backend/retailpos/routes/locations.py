# Overview: Flask API routes for locations; parses input and returns JSON responses.

"""
Location routes.

Listing and writes are for store_admin (own tenant) and super_admin
(any tenant via ?tenant_id / body tenant_id). Anyone may read a location
inside their scope.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_roles
from ..errors import ServiceError
from ..models import ROLE_STORE_ADMIN, ROLE_SUPER_ADMIN
from ..services import location_service
from ..services.scope_service import require_tenant, resolve_scope
from ..validation import optional_id, query_id

locations_bp = Blueprint("locations", __name__, url_prefix="/api/locations")


@locations_bp.post("/")
@require_auth
@require_roles(ROLE_STORE_ADMIN, ROLE_SUPER_ADMIN)
def create_location_route():
    payload = dict(request.get_json(silent=True) or {})
    try:
        scope = require_tenant(resolve_scope(g.scope, tenant_id=optional_id("tenant_id", payload.pop("tenant_id", None))))
        location = location_service.create_location(scope.tenant_id, payload)
        return jsonify({"location": location.to_dict()}), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create location")
        return jsonify({"error": "Internal server error"}), 500


@locations_bp.get("/")
@require_auth
@require_roles(ROLE_STORE_ADMIN, ROLE_SUPER_ADMIN)
def list_locations_route():
    try:
        scope = require_tenant(resolve_scope(g.scope, tenant_id=query_id(request.args, "tenant_id")))
        locations = location_service.list_locations(scope.tenant_id)
        return jsonify({"items": [loc.to_dict() for loc in locations], "count": len(locations)}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@locations_bp.get("/<int:location_id>")
@require_auth
def get_location_route(location_id: int):
    try:
        scope = resolve_scope(g.scope, location_id=location_id)
        location = location_service.get_location(scope.tenant_id, location_id)
        return jsonify({"location": location.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@locations_bp.put("/<int:location_id>")
@require_auth
@require_roles(ROLE_STORE_ADMIN, ROLE_SUPER_ADMIN)
def update_location_route(location_id: int):
    try:
        scope = resolve_scope(g.scope, location_id=location_id)
        location = location_service.update_location(scope.tenant_id, location_id, request.get_json(silent=True) or {})
        return jsonify({"location": location.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update location")
        return jsonify({"error": "Internal server error"}), 500


@locations_bp.delete("/<int:location_id>")
@require_auth
@require_roles(ROLE_STORE_ADMIN, ROLE_SUPER_ADMIN)
def delete_location_route(location_id: int):
    """Removes the location with its inventory, movements and invoices."""
    try:
        scope = resolve_scope(g.scope, location_id=location_id)
        location_service.delete_location(scope.tenant_id, location_id)
        return jsonify({"message": "Location deleted"}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete location")
        return jsonify({"error": "Internal server error"}), 500
