from __future__ import annotations

from ..extensions import db
from retailpos.money import money_str
from retailpos.time_utils import to_utc_z

MOVEMENT_STOCK_IN = "stock_in"
MOVEMENT_STOCK_OUT = "stock_out"


class Inventory(db.Model):
    """
    Current stock for one (location, variant) pair.

    INVARIANTS:
    - quantity >= 0 (CHECK constraint; services reject before mutating)
    - every change to quantity is paired with a StockMovement row
      written in the same transaction
    - cost_price/selling_price are last-write-wins: the latest stock-in
      sets going-forward pricing

    tenant_id is denormalized from the location for tenant-wide rollups.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.UniqueConstraint("location_id", "variant_id", name="uq_inventory_location_variant"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        db.Index("ix_inventory_tenant_location", "tenant_id", "location_id"),
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
    variant_id = db.Column(
        db.Integer,
        db.ForeignKey("product_variants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    quantity = db.Column(db.Integer, nullable=False, default=0)
    cost_price = db.Column(db.Numeric(12, 2), nullable=False)
    selling_price = db.Column(db.Numeric(12, 2), nullable=False)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    location = db.relationship(
        "Location",
        backref=db.backref("inventory", lazy=True, passive_deletes=True),
    )
    variant = db.relationship(
        "ProductVariant",
        backref=db.backref("inventory", lazy=True, passive_deletes=True),
    )

    def __repr__(self) -> str:
        return (
            f"<Inventory id={self.id} location_id={self.location_id} "
            f"variant_id={self.variant_id} quantity={self.quantity}>"
        )

    def to_dict(self, include_variant: bool = False) -> dict:
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "location_id": self.location_id,
            "variant_id": self.variant_id,
            "quantity": self.quantity,
            "cost_price": money_str(self.cost_price),
            "selling_price": money_str(self.selling_price),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_variant and self.variant is not None:
            data["variant"] = self.variant.to_dict(include_product=True)
        return data


class StockMovement(db.Model):
    """
    Append-only audit row for one inventory change.

    IMMUTABLE: never updated or deleted (except by tenant cascade).
    quantity is the positive delta; quantity_after = quantity_before +/- quantity
    depending on movement_type. A multi-line invoice writes one stock_out row
    per line, each carrying the invoice id in reference_id.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_stock_movements_quantity_positive"),
        db.CheckConstraint(
            "movement_type IN ('stock_in', 'stock_out')",
            name="ck_stock_movements_type",
        ),
        db.Index("ix_stock_movements_location_created", "location_id", "created_at"),
        db.Index("ix_stock_movements_reference", "reference_id"),
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
    variant_id = db.Column(
        db.Integer,
        db.ForeignKey("product_variants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    movement_type = db.Column(db.String(16), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)

    # Price snapshot at the time of movement
    unit_cost_price = db.Column(db.Numeric(12, 2), nullable=True)
    unit_selling_price = db.Column(db.Numeric(12, 2), nullable=True)

    supplier = db.Column(db.String(255), nullable=True)
    # Invoice id for stock_out rows
    reference_id = db.Column(db.String(64), nullable=True)

    quantity_before = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        index=True,
    )

    variant = db.relationship("ProductVariant")

    def to_dict(self, include_variant: bool = False) -> dict:
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "location_id": self.location_id,
            "variant_id": self.variant_id,
            "movement_type": self.movement_type,
            "quantity": self.quantity,
            "unit_cost_price": money_str(self.unit_cost_price),
            "unit_selling_price": money_str(self.unit_selling_price),
            "supplier": self.supplier,
            "reference_id": self.reference_id,
            "quantity_before": self.quantity_before,
            "quantity_after": self.quantity_after,
            "created_at": to_utc_z(self.created_at),
        }
        if include_variant and self.variant is not None:
            data["variant"] = self.variant.to_dict(include_product=True)
        return data
