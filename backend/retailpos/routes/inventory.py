# backend/retailpos/routes/inventory.py
"""
Inventory routes.

SECURITY: All routes require authentication. The effective tenant and
location come from scope_service.resolve_scope():
- location_user: own location only
- store_admin: any location of own tenant
- super_admin: any tenant/location (explicit parameters)

Time semantics:
- start/end accept ISO-8601 datetimes or bare dates; both bounds are inclusive.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_roles
from ..errors import ServiceError
from ..models import ROLE_STORE_ADMIN, ROLE_SUPER_ADMIN
from ..services import get_services, reporting_service
from ..services.scope_service import require_location, resolve_scope
from ..validation import optional_id, query_datetime, query_id

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/stock-in")
@require_auth
def stock_in_route():
    """
    Receive stock at a location.

    Body: {location_id?, variant_id, quantity, cost_price, selling_price, supplier?}
    """
    payload = request.get_json(silent=True) or {}

    try:
        scope = require_location(resolve_scope(
            g.scope,
            tenant_id=optional_id("tenant_id", payload.get("tenant_id")),
            location_id=optional_id("location_id", payload.get("location_id")),
        ))
        row = get_services().ledger.stock_in(
            scope.tenant_id,
            scope.location_id,
            payload.get("variant_id", payload.get("product_variant_id")),
            payload.get("quantity"),
            payload.get("cost_price"),
            payload.get("selling_price"),
            supplier=payload.get("supplier"),
        )
        return jsonify({"inventory": row.to_dict(include_variant=True)}), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to stock in")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/check-stock")
@require_auth
def check_stock_route():
    """Availability and effective price for one variant at one location (read-only)."""
    try:
        scope = require_location(resolve_scope(g.scope, location_id=query_id(request.args, "location_id")))
        variant_id = query_id(request.args, "variant_id")
        if variant_id is None:
            return jsonify({"error": "variant_id is required"}), 400

        result = get_services().ledger.check_stock(scope.location_id, variant_id)
        return jsonify({"location_id": scope.location_id, "variant_id": variant_id, **result.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to check stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/movements")
@require_auth
def movements_route():
    """Movement history for a location, newest first."""
    try:
        scope = require_location(resolve_scope(g.scope, location_id=query_id(request.args, "location_id")))
        movements = get_services().ledger.get_movements(
            scope.location_id,
            variant_id=query_id(request.args, "variant_id"),
            start=query_datetime(request.args, "start"),
            end=query_datetime(request.args, "end", end_of_day=True),
            limit=min(query_id(request.args, "limit") or 500, 1000),
        )
        return jsonify({
            "items": [m.to_dict(include_variant=True) for m in movements],
            "count": len(movements),
        }), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list stock movements")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/stock-status")
@require_auth
def stock_status_route():
    """
    Stock grouped by product/variant with per-location quantities.

    location_user always sees only its own location.
    """
    try:
        scope = resolve_scope(
            g.scope,
            tenant_id=query_id(request.args, "tenant_id"),
            location_id=query_id(request.args, "location_id"),
        )
        if scope.tenant_id is None:
            return jsonify({"error": "tenant_id is required"}), 400
        status = get_services().ledger.get_stock_status(
            scope.tenant_id,
            location_id=scope.location_id,
            category=request.args.get("category") or None,
            brand=request.args.get("brand") or None,
            size=request.args.get("size") or None,
        )
        return jsonify({"items": status, "count": len(status)}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build stock status")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/location/<int:location_id>")
@require_auth
def location_inventory_route(location_id: int):
    try:
        scope = resolve_scope(g.scope, location_id=location_id)
        rows = get_services().ledger.list_inventory(scope.tenant_id, scope.location_id)
        return jsonify({
            "items": [row.to_dict(include_variant=True) for row in rows],
            "count": len(rows),
        }), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list location inventory")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/tenant")
@require_auth
@require_roles(ROLE_STORE_ADMIN, ROLE_SUPER_ADMIN)
def tenant_inventory_route():
    """Every inventory row of the tenant, across locations."""
    try:
        scope = resolve_scope(g.scope, tenant_id=query_id(request.args, "tenant_id"))
        if scope.tenant_id is None:
            return jsonify({"error": "tenant_id is required"}), 400
        rows = get_services().ledger.list_inventory(scope.tenant_id)
        items = []
        for row in rows:
            data = row.to_dict(include_variant=True)
            data["location_name"] = row.location.name if row.location else None
            items.append(data)
        return jsonify({"items": items, "count": len(items)}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list tenant inventory")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/location/<int:location_id>/report")
@require_auth
def location_report_route(location_id: int):
    """Local stock report: totals, value at cost, low-stock rows."""
    try:
        scope = resolve_scope(g.scope, location_id=location_id)
        report = reporting_service.local_stock_report(
            scope.tenant_id,
            scope.location_id,
            low_stock_threshold=current_app.config.get("LOW_STOCK_THRESHOLD", 10),
        )
        return jsonify(report), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build location stock report")
        return jsonify({"error": "Internal server error"}), 500
