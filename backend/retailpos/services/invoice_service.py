# Overview: Invoice creation transaction and invoice read models.

"""
A sale is one unit of work:

    validate -> lock inventory rows -> check stock -> number -> price
             -> persist invoice + items -> deduct stock + movements -> commit

Any failure after the transaction opens rolls back all of it: no invoice,
no items, no movement, no quantity change, no consumed invoice number.
Inventory rows are locked in variant_id order so overlapping carts from
different registers cannot deadlock each other.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload, selectinload

from ..errors import InsufficientStockError, InternalError, NotFoundError, ServiceError, ValidationError
from ..models import Inventory, Invoice, InvoiceItem, Location, ProductVariant
from ..money import ZERO
from ..time_utils import utcnow
from ..validation import optional_amount, optional_id, require_positive_int
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
from .inventory_service import StockLedger
from .numbering_service import InvoiceNumbering
from .pricing_service import PricingResolver

logger = logging.getLogger(__name__)


def normalize_items(items) -> dict[int, int]:
    """
    Validate cart lines and merge duplicates.

    Returns {variant_id: quantity} in first-seen order.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("Invoice must contain at least one item")

    merged: dict[int, int] = {}
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        raw_variant = item.get("variant_id", item.get("product_variant_id"))
        variant_id = require_positive_int(f"items[{index}].variant_id", raw_variant)
        quantity = require_positive_int(f"items[{index}].quantity", item.get("quantity"))
        merged[variant_id] = merged.get(variant_id, 0) + quantity
    return merged


class InvoiceCoordinator:
    def __init__(
        self,
        session,
        ledger: StockLedger,
        pricing: PricingResolver,
        numbering: InvoiceNumbering,
        *,
        lock_timeout_seconds: float = 5.0,
    ):
        self.session = session
        self.ledger = ledger
        self.pricing = pricing
        self.numbering = numbering
        self.lock_timeout_seconds = lock_timeout_seconds

    def create_invoice(
        self,
        tenant_id: int,
        location_id: int,
        items,
        tax_amount=0,
        change_amount=None,
        customer_name: str | None = None,
        user_id: int | None = None,
    ) -> dict:
        lines = normalize_items(items)
        tax = self.pricing.quantize_money(optional_amount("tax_amount", tax_amount) or ZERO)
        change = optional_amount("change_amount", change_amount)
        if change is not None:
            change = self.pricing.quantize_money(change)
        user_id = optional_id("user_id", user_id)
        if customer_name is not None:
            customer_name = str(customer_name).strip() or None
            if customer_name and len(customer_name) > 255:
                raise ValidationError("customer_name exceeds max length 255")

        def _op() -> int:
            begin_write_transaction(self.session, lock_timeout_seconds=self.lock_timeout_seconds)

            location = self.session.query(Location).filter_by(id=location_id, tenant_id=tenant_id).first()
            if not location:
                raise NotFoundError("Location not found", {"location_id": location_id})

            variant_ids = sorted(lines)
            rows = lock_for_update(
                self.session.query(Inventory)
                .filter(
                    Inventory.tenant_id == tenant_id,
                    Inventory.location_id == location_id,
                    Inventory.variant_id.in_(variant_ids),
                )
                .order_by(Inventory.variant_id.asc())
            ).all()
            by_variant = {row.variant_id: row for row in rows}

            # Availability for every line before anything is written
            for variant_id in variant_ids:
                row = by_variant.get(variant_id)
                available = row.quantity if row is not None else 0
                if available < lines[variant_id]:
                    raise InsufficientStockError(variant_id, lines[variant_id], available)

            # Product discounts (identity map then serves row.variant.product)
            self.session.query(ProductVariant).options(
                joinedload(ProductVariant.product)
            ).filter(ProductVariant.id.in_(variant_ids)).all()

            invoice_number = self.numbering.generate(tenant_id)

            priced = []
            items_total = ZERO
            for variant_id, quantity in lines.items():
                row = by_variant[variant_id]
                discount = row.variant.product.discount_percent or ZERO
                unit_price = self.pricing.resolve_price(row.selling_price, discount)
                subtotal = self.pricing.line_subtotal(unit_price, quantity)
                items_total += subtotal
                priced.append(InvoiceItem(
                    variant_id=variant_id,
                    quantity=quantity,
                    original_price=row.selling_price,
                    discount_percent=discount,
                    unit_price=unit_price,
                    cost_price=row.cost_price,
                    subtotal=subtotal,
                ))

            total_amount = items_total + tax
            invoice = Invoice(
                tenant_id=tenant_id,
                location_id=location_id,
                invoice_number=invoice_number,
                customer_name=customer_name,
                total_amount=total_amount,
                tax_amount=tax,
                change_amount=change,
                created_by_user_id=user_id,
                created_at=utcnow(),
            )
            self.session.add(invoice)
            self.session.flush()

            for item in priced:
                item.invoice_id = invoice.id
                self.session.add(item)

            for variant_id in variant_ids:
                self.ledger.deduct_stock(
                    tenant_id,
                    location_id,
                    variant_id,
                    lines[variant_id],
                    reference_id=invoice.id,
                    commit=False,
                )

            self.session.commit()
            logger.info(
                "Invoice %s created: tenant=%s location=%s lines=%d total=%s",
                invoice_number, tenant_id, location_id, len(priced), total_amount,
            )
            return invoice.id

        try:
            invoice_id = run_with_retry(self.session, _op)
        except ServiceError as exc:
            logger.warning(
                "Invoice rolled back: tenant=%s location=%s reason=%s",
                tenant_id, location_id, exc.message,
            )
            raise
        except SQLAlchemyError as exc:
            logger.exception("Invoice transaction failed: tenant=%s location=%s", tenant_id, location_id)
            raise InternalError("Failed to create invoice") from exc

        return self.get_invoice(invoice_id, tenant_id=tenant_id).to_dict()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _hydrated(self):
        return self.session.query(Invoice).options(
            joinedload(Invoice.location),
            selectinload(Invoice.items)
            .joinedload(InvoiceItem.variant)
            .joinedload(ProductVariant.product),
        )

    def get_invoice(self, invoice_id: int, tenant_id: int | None = None) -> Invoice:
        q = self._hydrated().filter(Invoice.id == invoice_id)
        if tenant_id is not None:
            q = q.filter(Invoice.tenant_id == tenant_id)
        invoice = q.first()
        if not invoice:
            raise NotFoundError("Invoice not found", {"invoice_id": invoice_id})
        return invoice

    def list_invoices(
        self,
        tenant_id: int,
        location_id: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Invoice]:
        q = self._hydrated().filter(Invoice.tenant_id == tenant_id)
        if location_id is not None:
            q = q.filter(Invoice.location_id == location_id)
        if start is not None:
            q = q.filter(Invoice.created_at >= start)
        if end is not None:
            q = q.filter(Invoice.created_at <= end)
        return q.order_by(Invoice.created_at.desc(), Invoice.id.desc()).all()
