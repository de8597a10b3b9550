# backend/retailpos/services/product_service.py
"""
Products and variants, tenant-scoped.

MULTI-TENANT: products carry tenant_id; variants inherit it through their
product. Every lookup filters by tenant so ids from another tenant behave
as missing.

A variant that appears on an invoice cannot be deleted (ConflictError);
neither can a product owning such a variant.
"""
from __future__ import annotations

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Inventory, InvoiceItem, Product, ProductVariant
from ..validation import ModelValidationPolicy, enforce_rules_product, validate_payload

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "category", "product_code", "discount_percent"},
    required_on_create={"name"},
    aliases={"productCode": "product_code", "discountPercent": "discount_percent"},
)

VARIANT_POLICY = ModelValidationPolicy(
    writable_fields={"variant_name", "brand", "size"},
    required_on_create={"variant_name"},
    aliases={"variantName": "variant_name"},
)


def _variant_patch(payload: dict, *, partial: bool) -> dict:
    payload = dict(payload or {})
    # Default name from brand/size ("Nike / 42") for quick entry
    if not partial and not payload.get("variant_name") and not payload.get("variantName"):
        parts = [str(payload[k]).strip() for k in ("brand", "size") if payload.get(k)]
        if parts:
            payload["variant_name"] = " / ".join(parts)
    return validate_payload(model=ProductVariant, payload=payload, policy=VARIANT_POLICY, partial=partial)


def _commit_or_conflict(message: str) -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(message)


def list_products(tenant_id: int, category: str | None = None) -> list[Product]:
    q = (
        db.session.query(Product)
        .options(joinedload(Product.variants))
        .filter(Product.tenant_id == tenant_id)
    )
    if category:
        q = q.filter(Product.category == category)
    return q.order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(tenant_id: int, product_id: int) -> Product:
    product = (
        db.session.query(Product)
        .options(joinedload(Product.variants))
        .filter_by(id=product_id, tenant_id=tenant_id)
        .first()
    )
    if not product:
        raise NotFoundError("Product not found", {"product_id": product_id})
    return product


def get_variant(tenant_id: int, variant_id: int) -> ProductVariant:
    variant = (
        db.session.query(ProductVariant)
        .join(Product, ProductVariant.product_id == Product.id)
        .options(joinedload(ProductVariant.product))
        .filter(ProductVariant.id == variant_id, Product.tenant_id == tenant_id)
        .first()
    )
    if not variant:
        raise NotFoundError("Product variant not found", {"variant_id": variant_id})
    return variant


def create_product(tenant_id: int, payload: dict) -> Product:
    """
    Create a product, optionally with its variants in one go
    (payload["variants"] = [{variant_name, brand, size}, ...]).
    """
    payload = dict(payload or {})
    variants = payload.pop("variants", None) or []
    if not isinstance(variants, list):
        raise ValidationError("variants must be a list")

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)
    if patch.get("product_code") == "":
        patch["product_code"] = None

    variant_patches = []
    for raw in variants:
        if not isinstance(raw, dict):
            raise ValidationError("each variant must be an object")
        variant_patches.append(_variant_patch(raw, partial=False))

    product = Product(tenant_id=tenant_id, **patch)
    product.variants = [ProductVariant(**vp) for vp in variant_patches]
    db.session.add(product)
    _commit_or_conflict("Product code or variant name already exists")
    return product


def update_product(tenant_id: int, product_id: int, payload: dict) -> Product:
    product = get_product(tenant_id, product_id)
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)
    if patch.get("product_code") == "":
        patch["product_code"] = None
    for key, value in patch.items():
        setattr(product, key, value)
    _commit_or_conflict("Product code already exists")
    return product


def _sold(variant_ids) -> bool:
    variant_ids = list(variant_ids)
    if not variant_ids:
        return False
    return db.session.query(
        db.session.query(InvoiceItem.id).filter(InvoiceItem.variant_id.in_(variant_ids)).exists()
    ).scalar()


def delete_product(tenant_id: int, product_id: int) -> None:
    product = get_product(tenant_id, product_id)
    if _sold(v.id for v in product.variants):
        raise ConflictError("Product has variants on invoices and cannot be deleted", {"product_id": product_id})
    db.session.query(Product).filter_by(id=product.id).delete(synchronize_session=False)
    db.session.commit()
    db.session.expire_all()


def list_variants(tenant_id: int, product_id: int) -> list[ProductVariant]:
    return get_product(tenant_id, product_id).variants


def create_variant(tenant_id: int, product_id: int, payload: dict) -> ProductVariant:
    product = get_product(tenant_id, product_id)
    variant = ProductVariant(product_id=product.id, **_variant_patch(payload, partial=False))
    db.session.add(variant)
    _commit_or_conflict("Variant name already exists for this product")
    return variant


def update_variant(tenant_id: int, variant_id: int, payload: dict) -> ProductVariant:
    variant = get_variant(tenant_id, variant_id)
    for key, value in _variant_patch(payload, partial=True).items():
        setattr(variant, key, value)
    _commit_or_conflict("Variant name already exists for this product")
    return variant


def delete_variant(tenant_id: int, variant_id: int) -> None:
    """Removes the variant with its inventory rows and movements, unless it was sold."""
    variant = get_variant(tenant_id, variant_id)
    if _sold([variant.id]):
        raise ConflictError("Variant appears on invoices and cannot be deleted", {"variant_id": variant_id})
    db.session.query(ProductVariant).filter_by(id=variant.id).delete(synchronize_session=False)
    db.session.commit()
    db.session.expire_all()


def search_variants(tenant_id: int, term: str, location_id: int | None = None, limit: int = 50) -> list[dict]:
    """
    Case-insensitive match on product name, variant name, brand, size or code.

    With location_id each hit carries the stock and selling price there
    (None when the location never received it).
    """
    term = (term or "").strip()
    if not term:
        raise ValidationError("Search term is required")
    like = f"%{term}%"

    variants = (
        db.session.query(ProductVariant)
        .join(Product, ProductVariant.product_id == Product.id)
        .options(joinedload(ProductVariant.product))
        .filter(Product.tenant_id == tenant_id)
        .filter(or_(
            Product.name.ilike(like),
            Product.product_code.ilike(like),
            ProductVariant.variant_name.ilike(like),
            ProductVariant.brand.ilike(like),
            ProductVariant.size.ilike(like),
        ))
        .order_by(Product.name.asc(), ProductVariant.variant_name.asc())
        .limit(limit)
        .all()
    )
    return _with_stock(variants, location_id)


def find_by_code(tenant_id: int, code: str, location_id: int | None = None) -> list[dict]:
    """Exact product_code lookup (barcode scan); returns every variant of the product."""
    code = (code or "").strip()
    if not code:
        raise ValidationError("code is required")
    product = (
        db.session.query(Product)
        .filter_by(tenant_id=tenant_id, product_code=code)
        .first()
    )
    if not product:
        raise NotFoundError("Product not found", {"product_code": code})
    return _with_stock(list(product.variants), location_id)


def _with_stock(variants: list[ProductVariant], location_id: int | None) -> list[dict]:
    rows = {}
    if location_id is not None and variants:
        rows = {
            inv.variant_id: inv
            for inv in db.session.query(Inventory).filter(
                Inventory.location_id == location_id,
                Inventory.variant_id.in_([v.id for v in variants]),
            )
        }

    out = []
    for variant in variants:
        data = variant.to_dict(include_product=True)
        if location_id is not None:
            inv = rows.get(variant.id)
            data["stock"] = inv.to_dict() if inv else None
        out.append(data)
    return out
