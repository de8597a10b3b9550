# Overview: Flask API routes for invoices; parses input and returns JSON responses.

# backend/retailpos/routes/invoices.py
"""Invoice API routes. Invoices are created once and never edited."""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_roles
from ..errors import ServiceError
from ..models import ROLE_STORE_ADMIN, ROLE_SUPER_ADMIN
from ..services import get_services
from ..services.scope_service import require_location, resolve_scope
from ..validation import optional_id, query_datetime, query_id

invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.post("/")
@require_auth
def create_invoice_route():
    """
    Create an invoice and deduct its stock in one transaction.

    Body: {location_id?, items: [{variant_id, quantity}], tax_amount?,
           change_amount?, customer_name?}

    409 on insufficient stock (nothing is written), 503 when inventory
    rows stay locked past LOCK_TIMEOUT_SECONDS (safe to retry).
    """
    data = request.get_json(silent=True) or {}

    try:
        scope = require_location(resolve_scope(
            g.scope,
            tenant_id=optional_id("tenant_id", data.get("tenant_id")),
            location_id=optional_id("location_id", data.get("location_id")),
        ))
        invoice = get_services().invoices.create_invoice(
            scope.tenant_id,
            scope.location_id,
            data.get("items"),
            tax_amount=data.get("tax_amount", 0),
            change_amount=data.get("change_amount"),
            customer_name=data.get("customer_name"),
            user_id=g.current_user.id,
        )
        return jsonify({"invoice": invoice}), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/<int:invoice_id>")
@require_auth
def get_invoice_route(invoice_id: int):
    """
    Invoice with items. Lookups are tenant-filtered, and location users
    only see invoices of their own location.
    """
    try:
        tenant_id = None if g.scope.is_super_admin else g.scope.tenant_id
        invoice = get_services().invoices.get_invoice(invoice_id, tenant_id=tenant_id)
        resolve_scope(g.scope, tenant_id=invoice.tenant_id, location_id=invoice.location_id)
        return jsonify({"invoice": invoice.to_dict()}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/location/<int:location_id>")
@require_auth
def list_location_invoices_route(location_id: int):
    try:
        scope = resolve_scope(g.scope, location_id=location_id)
        invoices = get_services().invoices.list_invoices(
            scope.tenant_id,
            location_id=scope.location_id,
            start=query_datetime(request.args, "start"),
            end=query_datetime(request.args, "end", end_of_day=True),
        )
        return jsonify({
            "items": [inv.to_dict() for inv in invoices],
            "count": len(invoices),
        }), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list location invoices")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/tenant/all")
@require_auth
@require_roles(ROLE_STORE_ADMIN, ROLE_SUPER_ADMIN)
def list_tenant_invoices_route():
    try:
        scope = resolve_scope(g.scope, tenant_id=query_id(request.args, "tenant_id"))
        if scope.tenant_id is None:
            return jsonify({"error": "tenant_id is required"}), 400
        invoices = get_services().invoices.list_invoices(
            scope.tenant_id,
            start=query_datetime(request.args, "start"),
            end=query_datetime(request.args, "end", end_of_day=True),
        )
        return jsonify({
            "items": [inv.to_dict() for inv in invoices],
            "count": len(invoices),
        }), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list tenant invoices")
        return jsonify({"error": "Internal server error"}), 500
