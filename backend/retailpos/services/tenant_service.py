# Overview: Tenant CRUD (super_admin only at the route layer).

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Tenant, SUBSCRIPTION_STATUSES
from ..validation import ModelValidationPolicy, validate_payload

TENANT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "subscription_status"},
    required_on_create={"name"},
    aliases={"subscriptionStatus": "subscription_status"},
)


def _check_status(patch: dict) -> None:
    status = patch.get("subscription_status")
    if status is not None and status not in SUBSCRIPTION_STATUSES:
        raise ValidationError(f"subscription_status must be one of {', '.join(SUBSCRIPTION_STATUSES)}")


def list_tenants() -> list[Tenant]:
    return db.session.query(Tenant).order_by(Tenant.name.asc(), Tenant.id.asc()).all()


def get_tenant(tenant_id: int) -> Tenant:
    tenant = db.session.get(Tenant, tenant_id)
    if not tenant:
        raise NotFoundError("Tenant not found", {"tenant_id": tenant_id})
    return tenant


def create_tenant(payload: dict) -> Tenant:
    patch = validate_payload(model=Tenant, payload=payload, policy=TENANT_POLICY, partial=False)
    _check_status(patch)
    tenant = Tenant(**patch)
    db.session.add(tenant)
    db.session.commit()
    return tenant


def update_tenant(tenant_id: int, payload: dict) -> Tenant:
    tenant = get_tenant(tenant_id)
    patch = validate_payload(model=Tenant, payload=payload, policy=TENANT_POLICY, partial=True)
    _check_status(patch)
    for key, value in patch.items():
        setattr(tenant, key, value)
    db.session.commit()
    return tenant


def delete_tenant(tenant_id: int) -> None:
    """
    Remove a tenant and everything it owns.

    The database carries the cascade (locations, products, variants,
    inventory, movements, invoices, items, users, sequence). A bulk
    DELETE keeps the ORM from loading and nulling children first.
    """
    get_tenant(tenant_id)
    db.session.query(Tenant).filter_by(id=tenant_id).delete(synchronize_session=False)
    db.session.commit()
    db.session.expire_all()
