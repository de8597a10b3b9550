# Overview: Flask API routes for reports; read-only aggregates over invoices and stock.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_roles
from ..errors import ServiceError, ValidationError
from ..models import ROLE_SUPER_ADMIN
from ..services import get_services, reporting_service
from ..services.scope_service import require_location, require_tenant, resolve_scope
from ..validation import query_datetime, query_id

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/profit")
@require_auth
def profit_route():
    """
    ?location_id&start&end - revenue, cost and profit from invoice items.
    Without location_id a store admin gets the whole tenant.
    """
    try:
        scope = require_tenant(resolve_scope(
            g.scope,
            tenant_id=query_id(request.args, "tenant_id"),
            location_id=query_id(request.args, "location_id"),
        ))
        report = reporting_service.profit_report(
            scope.tenant_id,
            scope.location_id,
            query_datetime(request.args, "start"),
            query_datetime(request.args, "end", end_of_day=True),
        )
        return jsonify(report), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build profit report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/daily-sales")
@require_auth
def daily_sales_route():
    """?location_id&date=YYYY-MM-DD (UTC day, default today)."""
    try:
        scope = require_location(resolve_scope(g.scope, location_id=query_id(request.args, "location_id")))
        day = query_datetime(request.args, "date")
        report = reporting_service.daily_sales(scope.tenant_id, scope.location_id, day.date() if day else None)
        return jsonify(report), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build daily sales")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/invoices")
@require_auth
def invoices_by_date_route():
    """?location_id&start&end - invoices in an inclusive date range."""
    try:
        scope = require_location(resolve_scope(g.scope, location_id=query_id(request.args, "location_id")))
        start = query_datetime(request.args, "start")
        end = query_datetime(request.args, "end", end_of_day=True)
        if start is None or end is None:
            raise ValidationError("start and end are required")
        if start > end:
            raise ValidationError("start must be before end")
        invoices = get_services().invoices.list_invoices(scope.tenant_id, scope.location_id, start, end)
        return jsonify({"items": [inv.to_dict() for inv in invoices], "count": len(invoices)}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list invoices by date")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/system-overview")
@require_auth
@require_roles(ROLE_SUPER_ADMIN)
def system_overview_route():
    try:
        return jsonify(reporting_service.system_overview()), 200
    except Exception:
        current_app.logger.exception("Failed to build system overview")
        return jsonify({"error": "Internal server error"}), 500
