from __future__ import annotations

from ..extensions import db
from retailpos.money import money_str
from retailpos.time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data, tenant-scoped.

    discount_percent (0-100) applies to every variant's selling price at
    sale time; it is read fresh for each sale, never copied to inventory.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "product_code", name="uq_products_tenant_code"),
        db.Index("ix_products_tenant_name", "tenant_id", "name"),
        db.CheckConstraint(
            "discount_percent >= 0 AND discount_percent <= 100",
            name="ck_products_discount_range",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(
        db.Integer,
        db.ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=True, index=True)
    product_code = db.Column(db.String(64), nullable=True)
    discount_percent = db.Column(db.Numeric(5, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    tenant = db.relationship(
        "Tenant",
        backref=db.backref("products", lazy=True, passive_deletes=True),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} tenant_id={self.tenant_id}>"

    def to_dict(self, include_variants: bool = False) -> dict:
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "category": self.category,
            "product_code": self.product_code,
            "discount_percent": money_str(self.discount_percent),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_variants:
            data["variants"] = [v.to_dict() for v in self.variants]
        return data


class ProductVariant(db.Model):
    """
    A sellable form of a product (size/brand composite).

    Sold variants cannot be deleted: invoice_items.variant_id has no
    ON DELETE action, and product_service checks it up front.
    """
    __tablename__ = "product_variants"
    __table_args__ = (
        db.UniqueConstraint("product_id", "variant_name", name="uq_product_variants_product_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    variant_name = db.Column(db.String(255), nullable=False)
    brand = db.Column(db.String(120), nullable=True, index=True)
    size = db.Column(db.String(64), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship(
        "Product",
        backref=db.backref(
            "variants",
            lazy=True,
            passive_deletes=True,
            order_by="ProductVariant.id",
        ),
    )

    def __repr__(self) -> str:
        return f"<ProductVariant id={self.id} variant_name={self.variant_name!r} product_id={self.product_id}>"

    def to_dict(self, include_product: bool = False) -> dict:
        data = {
            "id": self.id,
            "product_id": self.product_id,
            "variant_name": self.variant_name,
            "brand": self.brand,
            "size": self.size,
            "created_at": to_utc_z(self.created_at),
        }
        if include_product and self.product is not None:
            data["product"] = {
                "id": self.product.id,
                "name": self.product.name,
                "category": self.product.category,
                "product_code": self.product.product_code,
                "discount_percent": money_str(self.product.discount_percent),
            }
        return data
