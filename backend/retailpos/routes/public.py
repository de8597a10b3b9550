# backend/retailpos/routes/public.py
"""
Unauthenticated endpoints: health check and the tenant/location lists
the signup and login screens need.
"""

import time
from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from ..extensions import db
from ..models import SessionToken, Tenant
from ..services import location_service
from retailpos.time_utils import utcnow, to_utc_z

public_bp = Blueprint("public", __name__)


def check_database_health() -> dict:
    """Database connectivity plus a couple of cheap counts."""
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        tenant_count = db.session.query(Tenant).count()
        active_sessions = db.session.query(SessionToken).filter(
            SessionToken.is_revoked.is_(False),
            SessionToken.expires_at >= utcnow(),
        ).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "tenants": tenant_count,
                "active_sessions": active_sessions,
            },
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@public_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database unhealthy
    """
    database_health = check_database_health()
    http_status = 200 if database_health["status"] == "healthy" else 503
    return {
        "status": database_health["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database_health},
    }, http_status


@public_bp.get("/api/public/tenants")
def public_tenants_route():
    """Active and trial tenants (id + name only)."""
    tenants = (
        db.session.query(Tenant)
        .filter(Tenant.subscription_status != "suspended")
        .order_by(Tenant.name.asc())
        .all()
    )
    return jsonify({"items": [{"id": t.id, "name": t.name} for t in tenants]}), 200


@public_bp.get("/api/public/tenants/<int:tenant_id>/locations")
def public_locations_route(tenant_id: int):
    tenant = db.session.get(Tenant, tenant_id)
    if not tenant or tenant.subscription_status == "suspended":
        return jsonify({"error": "Tenant not found"}), 404
    locations = location_service.list_locations(tenant_id)
    return jsonify({"items": [{"id": loc.id, "name": loc.name} for loc in locations]}), 200
