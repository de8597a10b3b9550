from __future__ import annotations

from ..extensions import db
from retailpos.money import money_str, price_str
from retailpos.time_utils import to_utc_z


class Invoice(db.Model):
    """
    Immutable sale record.

    INVARIANT: total_amount == sum(items.subtotal) + tax_amount.
    change_amount is informational only and never enters a calculation.
    There is no update or delete path; invoices leave only via tenant cascade.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "invoice_number", name="uq_invoices_tenant_number"),
        db.Index("ix_invoices_location_created", "location_id", "created_at"),
        db.Index("ix_invoices_tenant_created", "tenant_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(
        db.Integer,
        db.ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    location_id = db.Column(
        db.Integer,
        db.ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Human-readable, tenant-scoped (e.g., "INV-202610-00042")
    invoice_number = db.Column(db.String(32), nullable=False)
    customer_name = db.Column(db.String(255), nullable=True)

    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    change_amount = db.Column(db.Numeric(12, 2), nullable=True)

    created_by_user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    location = db.relationship("Location")
    items = db.relationship(
        "InvoiceItem",
        back_populates="invoice",
        lazy=True,
        passive_deletes=True,
        order_by="InvoiceItem.id",
    )

    def __repr__(self) -> str:
        return f"<Invoice id={self.id} number={self.invoice_number!r} tenant_id={self.tenant_id}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "location_id": self.location_id,
            "invoice_number": self.invoice_number,
            "customer_name": self.customer_name,
            "total_amount": money_str(self.total_amount),
            "tax_amount": money_str(self.tax_amount),
            "change_amount": money_str(self.change_amount),
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
        if self.location is not None:
            data["location_name"] = self.location.name
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class InvoiceItem(db.Model):
    """
    One line of an invoice.

    unit_price is the exact post-discount price (NUMERIC(14, 6) so a 2dp
    price times a 2dp percentage never rounds); subtotal is
    unit_price * quantity rounded half-up to cents, the only rounding point.
    original_price/discount_percent keep the pre-discount figures for receipts.
    """
    __tablename__ = "invoice_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_invoice_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(
        db.Integer,
        db.ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # No ON DELETE action: a sold variant cannot be removed
    variant_id = db.Column(
        db.Integer,
        db.ForeignKey("product_variants.id"),
        nullable=False,
        index=True,
    )

    quantity = db.Column(db.Integer, nullable=False)
    original_price = db.Column(db.Numeric(12, 2), nullable=False)
    discount_percent = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    unit_price = db.Column(db.Numeric(14, 6), nullable=False)
    cost_price = db.Column(db.Numeric(12, 2), nullable=False)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False)

    invoice = db.relationship("Invoice", back_populates="items")
    variant = db.relationship("ProductVariant")

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "variant_id": self.variant_id,
            "quantity": self.quantity,
            "original_price": money_str(self.original_price),
            "discount_percent": money_str(self.discount_percent),
            "unit_price": price_str(self.unit_price),
            "cost_price": money_str(self.cost_price),
            "subtotal": money_str(self.subtotal),
        }
        if self.variant is not None:
            data["variant"] = self.variant.to_dict(include_product=True)
        return data


class InvoiceSequence(db.Model):
    """
    Atomic per-tenant invoice counter.

    WHY: "count invoices + 1" read outside the write lock hands the same
    number to two concurrent sales. The counter row is incremented by an
    UPDATE inside the sale's own transaction, so the row lock serializes
    allocation and a rollback releases the number.
    """
    __tablename__ = "invoice_sequences"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(
        db.Integer,
        db.ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
