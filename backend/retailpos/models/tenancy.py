from __future__ import annotations

from ..extensions import db
from retailpos.time_utils import to_utc_z

SUBSCRIPTION_STATUSES = ("trial", "active", "suspended")


class Tenant(db.Model):
    """
    Multi-tenant root: every store business is a Tenant.

    All locations, products, users, inventory, invoices and movements carry
    a tenant_id (directly or through their parent) and are removed with the
    tenant via ON DELETE CASCADE.
    """
    __tablename__ = "tenants"
    __table_args__ = (
        db.CheckConstraint(
            "subscription_status IN ('trial', 'active', 'suspended')",
            name="ck_tenants_subscription_status",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    subscription_status = db.Column(db.String(16), nullable=False, default="trial", index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "subscription_status": self.subscription_status,
            "created_at": to_utc_z(self.created_at),
        }


class Location(db.Model):
    """
    A physical branch of a tenant.

    MULTI-TENANT: Location names are unique within a tenant, not globally.
    """
    __tablename__ = "locations"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "name", name="uq_locations_tenant_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(
        db.Integer,
        db.ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(120), nullable=False)
    address = db.Column(db.Text, nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    tenant = db.relationship(
        "Tenant",
        backref=db.backref("locations", lazy=True, passive_deletes=True),
    )

    def __repr__(self) -> str:
        return f"<Location id={self.id} name={self.name!r} tenant_id={self.tenant_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "created_at": to_utc_z(self.created_at),
        }
