# Overview: Read-only reports over inventory and invoices.

from __future__ import annotations

from datetime import date, datetime, time, timedelta

from sqlalchemy import func
from sqlalchemy.orm import joinedload, selectinload

from retailpos.extensions import db
from retailpos.models import (
    Inventory,
    Invoice,
    Location,
    ProductVariant,
    Tenant,
    User,
)
from retailpos.money import ZERO, money_str, quantize_money
from retailpos.time_utils import utcnow, to_utc_z


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1) - timedelta(microseconds=1)


def _invoices_between(tenant_id: int, location_id: int | None, start: datetime | None, end: datetime | None):
    q = (
        db.session.query(Invoice)
        .options(selectinload(Invoice.items))
        .filter(Invoice.tenant_id == tenant_id)
    )
    if location_id is not None:
        q = q.filter(Invoice.location_id == location_id)
    if start is not None:
        q = q.filter(Invoice.created_at >= start)
    if end is not None:
        q = q.filter(Invoice.created_at <= end)
    return q.order_by(Invoice.created_at.asc(), Invoice.id.asc()).all()


def local_stock_report(tenant_id: int, location_id: int, *, low_stock_threshold: int = 10) -> dict:
    """
    Snapshot of one location's stock: totals, value at cost and the
    rows under the low-stock threshold.
    """
    rows = (
        db.session.query(Inventory)
        .options(joinedload(Inventory.variant).joinedload(ProductVariant.product))
        .filter(Inventory.tenant_id == tenant_id, Inventory.location_id == location_id)
        .order_by(Inventory.variant_id.asc())
        .all()
    )

    items = []
    total_value = ZERO
    for inv in rows:
        value = quantize_money(inv.cost_price * inv.quantity)
        total_value += value
        items.append({
            "inventory_id": inv.id,
            "variant_id": inv.variant_id,
            "product_name": inv.variant.product.name,
            "category": inv.variant.product.category,
            "variant_name": inv.variant.variant_name,
            "brand": inv.variant.brand,
            "size": inv.variant.size,
            "quantity": inv.quantity,
            "cost_price": money_str(inv.cost_price),
            "selling_price": money_str(inv.selling_price),
            "total_value": money_str(value),
        })

    return {
        "location_id": location_id,
        "total_items": len(rows),
        "total_quantity": sum(inv.quantity for inv in rows),
        "total_value": money_str(total_value),
        "low_stock_threshold": low_stock_threshold,
        "low_stock_items": [item for item in items if item["quantity"] < low_stock_threshold],
        "items": items,
    }


def profit_report(tenant_id: int, location_id: int | None, start: datetime | None, end: datetime | None) -> dict:
    """
    Revenue is what was charged (item subtotals, tax excluded); cost uses
    the cost snapshot stored on each item at sale time.
    """
    invoices = _invoices_between(tenant_id, location_id, start, end)

    revenue = ZERO
    cost = ZERO
    for invoice in invoices:
        for item in invoice.items:
            revenue += item.subtotal
            cost += item.cost_price * item.quantity

    revenue = quantize_money(revenue)
    cost = quantize_money(cost)
    return {
        "location_id": location_id,
        "start": to_utc_z(start),
        "end": to_utc_z(end),
        "total_revenue": money_str(revenue),
        "total_cost": money_str(cost),
        "profit": money_str(revenue - cost),
        "invoice_count": len(invoices),
    }


def daily_sales(tenant_id: int, location_id: int, day: date | None = None) -> dict:
    day = day or utcnow().date()
    start, end = _day_bounds(day)
    invoices = _invoices_between(tenant_id, location_id, start, end)

    total = sum((inv.total_amount for inv in invoices), ZERO)
    tax = sum((inv.tax_amount for inv in invoices), ZERO)
    items_sold = sum(item.quantity for inv in invoices for item in inv.items)
    return {
        "date": day.isoformat(),
        "location_id": location_id,
        "total_revenue": money_str(total),
        "total_tax": money_str(tax),
        "total_invoices": len(invoices),
        "items_sold": items_sold,
        "average_invoice": money_str(total / len(invoices)) if invoices else money_str(ZERO),
    }


def system_overview(*, recent_days: int = 30, recent_limit: int = 10) -> dict:
    """Cross-tenant counts for super_admin."""
    since = utcnow() - timedelta(days=recent_days)

    location_counts = dict(
        db.session.query(Location.tenant_id, func.count(Location.id))
        .group_by(Location.tenant_id)
        .all()
    )
    tenants = db.session.query(Tenant).order_by(Tenant.name.asc()).all()

    recent_revenue = sum(
        (amount for (amount,) in db.session.query(Invoice.total_amount).filter(Invoice.created_at >= since)),
        ZERO,
    )
    recent = (
        db.session.query(Invoice)
        .options(joinedload(Invoice.location))
        .order_by(Invoice.created_at.desc(), Invoice.id.desc())
        .limit(recent_limit)
        .all()
    )
    tenant_names = {t.id: t.name for t in tenants}

    return {
        "summary": {
            "total_tenants": len(tenants),
            "total_locations": db.session.query(func.count(Location.id)).scalar(),
            "total_users": db.session.query(func.count(User.id)).scalar(),
            "total_inventory_items": db.session.query(func.count(Inventory.id)).scalar(),
            f"total_revenue_last_{recent_days}_days": money_str(recent_revenue),
        },
        "tenants": [
            {
                **tenant.to_dict(),
                "location_count": location_counts.get(tenant.id, 0),
            }
            for tenant in tenants
        ],
        "recent_invoices": [
            {
                "id": inv.id,
                "invoice_number": inv.invoice_number,
                "total_amount": money_str(inv.total_amount),
                "tenant_name": tenant_names.get(inv.tenant_id),
                "location_name": inv.location.name if inv.location else None,
                "created_at": to_utc_z(inv.created_at),
            }
            for inv in recent
        ],
        "generated_at": to_utc_z(utcnow()),
    }
