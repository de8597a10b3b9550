# Overview: Flask API routes for products and variants; parses input and returns JSON responses.

# backend/retailpos/routes/products.py
"""
Product catalog routes.

MULTI-TENANT: products belong to the caller's tenant (super_admin passes
tenant_id explicitly or works in its switched context). Any role may
create and edit products; deleting a sold variant is refused with 409.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import product_service
from ..services.scope_service import require_tenant, resolve_scope
from ..validation import optional_id, query_id

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _tenant_scope(tenant_id=None, location_id=None):
    return require_tenant(resolve_scope(g.scope, tenant_id=tenant_id, location_id=location_id))


@products_bp.get("/")
@require_auth
def list_products_route():
    try:
        scope = _tenant_scope(query_id(request.args, "tenant_id"))
        products = product_service.list_products(scope.tenant_id, category=request.args.get("category") or None)
        return jsonify({
            "items": [p.to_dict(include_variants=True) for p in products],
            "count": len(products),
        }), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.post("/")
@require_auth
def create_product_route():
    """
    Body: {name, category?, product_code?, discount_percent?, variants?: [...]}
    """
    payload = dict(request.get_json(silent=True) or {})
    try:
        scope = _tenant_scope(optional_id("tenant_id", payload.pop("tenant_id", None)))
        product = product_service.create_product(scope.tenant_id, payload)
        return jsonify({"product": product.to_dict(include_variants=True)}), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/search")
@require_auth
def search_variants_route():
    """?q=term[&location_id=] - variants matching name, brand, size or code."""
    try:
        scope = _tenant_scope(query_id(request.args, "tenant_id"), query_id(request.args, "location_id"))
        results = product_service.search_variants(scope.tenant_id, request.args.get("q", ""), location_id=scope.location_id)
        return jsonify({"items": results, "count": len(results)}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.get("/search/code")
@require_auth
def search_by_code_route():
    """?code=... - exact product code (barcode) lookup."""
    try:
        scope = _tenant_scope(query_id(request.args, "tenant_id"), query_id(request.args, "location_id"))
        results = product_service.find_by_code(scope.tenant_id, request.args.get("code", ""), location_id=scope.location_id)
        return jsonify({"items": results, "count": len(results)}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        scope = _tenant_scope(query_id(request.args, "tenant_id"))
        product = product_service.get_product(scope.tenant_id, product_id)
        return jsonify({"product": product.to_dict(include_variants=True)}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.put("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    payload = dict(request.get_json(silent=True) or {})
    try:
        scope = _tenant_scope(optional_id("tenant_id", payload.pop("tenant_id", None)))
        product = product_service.update_product(scope.tenant_id, product_id, payload)
        return jsonify({"product": product.to_dict(include_variants=True)}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    try:
        scope = _tenant_scope(query_id(request.args, "tenant_id"))
        product_service.delete_product(scope.tenant_id, product_id)
        return jsonify({"message": "Product deleted"}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>/variants")
@require_auth
def list_variants_route(product_id: int):
    try:
        scope = _tenant_scope(query_id(request.args, "tenant_id"))
        variants = product_service.list_variants(scope.tenant_id, product_id)
        return jsonify({"items": [v.to_dict() for v in variants], "count": len(variants)}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.post("/<int:product_id>/variants")
@require_auth
def create_variant_route(product_id: int):
    """Body: {variant_name?, brand?, size?}; name defaults to "brand / size"."""
    payload = dict(request.get_json(silent=True) or {})
    try:
        scope = _tenant_scope(optional_id("tenant_id", payload.pop("tenant_id", None)))
        variant = product_service.create_variant(scope.tenant_id, product_id, payload)
        return jsonify({"variant": variant.to_dict(include_product=True)}), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create variant")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/variants/<int:variant_id>")
@require_auth
def update_variant_route(variant_id: int):
    payload = dict(request.get_json(silent=True) or {})
    try:
        scope = _tenant_scope(optional_id("tenant_id", payload.pop("tenant_id", None)))
        variant = product_service.update_variant(scope.tenant_id, variant_id, payload)
        return jsonify({"variant": variant.to_dict(include_product=True)}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update variant")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/variants/<int:variant_id>")
@require_auth
def delete_variant_route(variant_id: int):
    try:
        scope = _tenant_scope(query_id(request.args, "tenant_id"))
        product_service.delete_variant(scope.tenant_id, variant_id)
        return jsonify({"message": "Variant deleted"}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete variant")
        return jsonify({"error": "Internal server error"}), 500
