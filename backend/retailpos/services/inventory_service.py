# Overview: Stock ledger; per-location inventory rows plus the append-only movement trail.

"""
Inventory invariants (authoritative)

- Inventory.quantity is a stored, mutable count per (location, variant).
  It never goes negative: deductions are checked under the row lock and
  the table carries CHECK (quantity >= 0).
- Every quantity change writes exactly one StockMovement in the same
  transaction, with quantity_after = quantity_before +/- quantity.
- cost_price/selling_price are last-write-wins: each stock-in overwrites
  both for the row. Movements snapshot the prices in force at the time.
- Time: all datetimes are UTC-naive; date bounds on reads are inclusive.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..models import (
    Inventory,
    Location,
    Product,
    ProductVariant,
    StockMovement,
    MOVEMENT_STOCK_IN,
    MOVEMENT_STOCK_OUT,
)
from ..money import money_str, price_str
from ..time_utils import utcnow
from ..validation import require_positive_amount, require_positive_int
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
from .pricing_service import PricingResolver


@dataclass(frozen=True)
class StockCheck:
    """Read-only availability answer for one (location, variant)."""
    available: bool
    quantity: int
    cost_price: Decimal | None = None
    selling_price: Decimal | None = None
    discount_percent: Decimal | None = None
    discounted_price: Decimal | None = None

    def to_dict(self) -> dict:
        return {
            "available": self.available,
            "quantity": self.quantity,
            "cost_price": money_str(self.cost_price),
            "selling_price": money_str(self.selling_price),
            "discount_percent": money_str(self.discount_percent),
            "discounted_price": price_str(self.discounted_price),
        }


class StockLedger:
    def __init__(self, session, pricing: PricingResolver, *, lock_timeout_seconds: float = 5.0):
        self.session = session
        self.pricing = pricing
        self.lock_timeout_seconds = lock_timeout_seconds

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _require_location(self, tenant_id: int, location_id: int) -> Location:
        location = self.session.query(Location).filter_by(id=location_id, tenant_id=tenant_id).first()
        if not location:
            raise NotFoundError("Location not found", {"location_id": location_id})
        return location

    def _require_variant(self, tenant_id: int, variant_id: int) -> ProductVariant:
        variant = (
            self.session.query(ProductVariant)
            .join(Product, ProductVariant.product_id == Product.id)
            .filter(ProductVariant.id == variant_id, Product.tenant_id == tenant_id)
            .first()
        )
        if not variant:
            raise NotFoundError("Product variant not found", {"variant_id": variant_id})
        return variant

    def _locked_row(self, tenant_id: int, location_id: int, variant_id: int) -> Inventory | None:
        return lock_for_update(
            self.session.query(Inventory).filter_by(
                tenant_id=tenant_id,
                location_id=location_id,
                variant_id=variant_id,
            )
        ).first()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def stock_in(
        self,
        tenant_id: int,
        location_id: int,
        variant_id: int,
        quantity,
        cost_price,
        selling_price,
        supplier: str | None = None,
    ) -> Inventory:
        """
        Receive stock at a location.

        Creates the inventory row on first receipt, otherwise adds to it.
        Both prices are overwritten either way. Commits.
        """
        quantity = require_positive_int("quantity", quantity)
        cost = require_positive_amount("cost_price", cost_price)
        selling = require_positive_amount("selling_price", selling_price)
        if supplier is not None:
            supplier = str(supplier).strip() or None
            if supplier and len(supplier) > 255:
                raise ValidationError("supplier exceeds max length 255")

        def _op() -> Inventory:
            begin_write_transaction(self.session, lock_timeout_seconds=self.lock_timeout_seconds)
            self._require_location(tenant_id, location_id)
            self._require_variant(tenant_id, variant_id)

            row = self._locked_row(tenant_id, location_id, variant_id)
            if row is None:
                row = self._insert_empty_row(tenant_id, location_id, variant_id, cost, selling)

            before = row.quantity
            row.quantity = before + quantity
            row.cost_price = cost
            row.selling_price = selling

            self.session.add(StockMovement(
                tenant_id=tenant_id,
                location_id=location_id,
                variant_id=variant_id,
                movement_type=MOVEMENT_STOCK_IN,
                quantity=quantity,
                unit_cost_price=cost,
                unit_selling_price=selling,
                supplier=supplier,
                quantity_before=before,
                quantity_after=row.quantity,
                created_at=utcnow(),
            ))
            self.session.commit()
            return row

        return run_with_retry(self.session, _op)

    def _insert_empty_row(self, tenant_id, location_id, variant_id, cost, selling) -> Inventory:
        """
        First receipt for a (location, variant): insert at quantity 0.

        A concurrent first receipt may win the unique constraint; the
        savepoint keeps the outer transaction alive and the winner's row
        is re-read under lock.
        """
        row = Inventory(
            tenant_id=tenant_id,
            location_id=location_id,
            variant_id=variant_id,
            quantity=0,
            cost_price=cost,
            selling_price=selling,
        )
        try:
            with self.session.begin_nested():
                self.session.add(row)
        except IntegrityError:
            row = self._locked_row(tenant_id, location_id, variant_id)
            if row is None:
                raise
        return row

    def deduct_stock(
        self,
        tenant_id: int,
        location_id: int,
        variant_id: int,
        quantity,
        reference_id=None,
        commit: bool = True,
    ) -> Inventory:
        """
        Remove stock for a sale.

        commit=False runs inside the caller's open transaction (the invoice
        coordinator) and leaves commit/rollback to it.
        """
        quantity = require_positive_int("quantity", quantity)

        def _apply() -> Inventory:
            row = self._locked_row(tenant_id, location_id, variant_id)
            if row is None:
                raise NotFoundError(
                    "Inventory record not found",
                    {"location_id": location_id, "variant_id": variant_id},
                )
            if row.quantity < quantity:
                raise InsufficientStockError(variant_id, quantity, row.quantity)

            before = row.quantity
            row.quantity = before - quantity

            self.session.add(StockMovement(
                tenant_id=tenant_id,
                location_id=location_id,
                variant_id=variant_id,
                movement_type=MOVEMENT_STOCK_OUT,
                quantity=quantity,
                unit_cost_price=row.cost_price,
                unit_selling_price=row.selling_price,
                reference_id=str(reference_id) if reference_id is not None else None,
                quantity_before=before,
                quantity_after=row.quantity,
                created_at=utcnow(),
            ))
            self.session.flush()
            return row

        if not commit:
            return _apply()

        def _op() -> Inventory:
            begin_write_transaction(self.session, lock_timeout_seconds=self.lock_timeout_seconds)
            row = _apply()
            self.session.commit()
            return row

        return run_with_retry(self.session, _op)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def check_stock(self, location_id: int, variant_id: int) -> StockCheck:
        """
        Availability plus effective price. Never creates a row.
        """
        row = (
            self.session.query(Inventory)
            .options(joinedload(Inventory.variant).joinedload(ProductVariant.product))
            .filter_by(location_id=location_id, variant_id=variant_id)
            .first()
        )
        if row is None:
            return StockCheck(available=False, quantity=0)

        discount = row.variant.product.discount_percent if row.variant and row.variant.product else None
        return StockCheck(
            available=row.quantity > 0,
            quantity=row.quantity,
            cost_price=row.cost_price,
            selling_price=row.selling_price,
            discount_percent=discount,
            discounted_price=self.pricing.resolve_price(row.selling_price, discount),
        )

    def get_movements(
        self,
        location_id: int,
        variant_id: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = 500,
    ) -> list[StockMovement]:
        q = (
            self.session.query(StockMovement)
            .options(joinedload(StockMovement.variant).joinedload(ProductVariant.product))
            .filter(StockMovement.location_id == location_id)
        )
        if variant_id is not None:
            q = q.filter(StockMovement.variant_id == variant_id)
        if start is not None:
            q = q.filter(StockMovement.created_at >= start)
        if end is not None:
            q = q.filter(StockMovement.created_at <= end)
        return (
            q.order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
            .limit(limit)
            .all()
        )

    def list_inventory(self, tenant_id: int, location_id: int | None = None) -> list[Inventory]:
        """Raw inventory rows for a location, or for every location of the tenant."""
        q = (
            self.session.query(Inventory)
            .options(
                joinedload(Inventory.variant).joinedload(ProductVariant.product),
                joinedload(Inventory.location),
            )
            .filter(Inventory.tenant_id == tenant_id)
        )
        if location_id is not None:
            q = q.filter(Inventory.location_id == location_id)
        return q.order_by(Inventory.location_id.asc(), Inventory.variant_id.asc()).all()

    def get_stock_status(
        self,
        tenant_id: int,
        location_id: int | None = None,
        category: str | None = None,
        brand: str | None = None,
        size: str | None = None,
    ) -> list[dict]:
        """
        Stock grouped by (product, variant) with a per-location breakdown.
        """
        q = (
            self.session.query(Inventory, ProductVariant, Product, Location)
            .join(ProductVariant, Inventory.variant_id == ProductVariant.id)
            .join(Product, ProductVariant.product_id == Product.id)
            .join(Location, Inventory.location_id == Location.id)
            .filter(Inventory.tenant_id == tenant_id)
        )
        if location_id is not None:
            q = q.filter(Inventory.location_id == location_id)
        if category:
            q = q.filter(Product.category == category)
        if brand:
            q = q.filter(ProductVariant.brand == brand)
        if size:
            q = q.filter(ProductVariant.size == size)

        rows = q.order_by(
            Product.name.asc(),
            ProductVariant.variant_name.asc(),
            Location.name.asc(),
        ).all()

        grouped: dict[int, dict] = {}
        for inv, variant, product, location in rows:
            entry = grouped.get(variant.id)
            if entry is None:
                entry = {
                    "product_id": product.id,
                    "product_name": product.name,
                    "category": product.category,
                    "product_code": product.product_code,
                    "discount_percent": money_str(product.discount_percent),
                    "variant_id": variant.id,
                    "variant_name": variant.variant_name,
                    "brand": variant.brand,
                    "size": variant.size,
                    "total_quantity": 0,
                    "locations": [],
                }
                grouped[variant.id] = entry
            entry["total_quantity"] += inv.quantity
            entry["locations"].append({
                "location_id": location.id,
                "location_name": location.name,
                "quantity": inv.quantity,
                "cost_price": money_str(inv.cost_price),
                "selling_price": money_str(inv.selling_price),
            })
        return list(grouped.values())
