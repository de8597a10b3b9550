# Overview: Location CRUD within a tenant.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError
from ..extensions import db
from ..models import Location
from ..validation import ModelValidationPolicy, validate_payload

LOCATION_POLICY = ModelValidationPolicy(
    writable_fields={"name", "address", "phone"},
    required_on_create={"name"},
)


def list_locations(tenant_id: int) -> list[Location]:
    return (
        db.session.query(Location)
        .filter_by(tenant_id=tenant_id)
        .order_by(Location.name.asc(), Location.id.asc())
        .all()
    )


def get_location(tenant_id: int, location_id: int) -> Location:
    """MULTI-TENANT: a location of another tenant is reported as missing."""
    location = db.session.query(Location).filter_by(id=location_id, tenant_id=tenant_id).first()
    if not location:
        raise NotFoundError("Location not found", {"location_id": location_id})
    return location


def _commit_unique_name(name: str | None) -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Location name already exists for this tenant", {"name": name})


def create_location(tenant_id: int, payload: dict) -> Location:
    patch = validate_payload(model=Location, payload=payload, policy=LOCATION_POLICY, partial=False)
    location = Location(tenant_id=tenant_id, **patch)
    db.session.add(location)
    _commit_unique_name(patch.get("name"))
    return location


def update_location(tenant_id: int, location_id: int, payload: dict) -> Location:
    location = get_location(tenant_id, location_id)
    patch = validate_payload(model=Location, payload=payload, policy=LOCATION_POLICY, partial=True)
    for key, value in patch.items():
        setattr(location, key, value)
    _commit_unique_name(patch.get("name"))
    return location


def delete_location(tenant_id: int, location_id: int) -> None:
    """
    Removes the location with its inventory, movements and invoices;
    users assigned to it are detached (location_id -> NULL).
    """
    get_location(tenant_id, location_id)
    db.session.query(Location).filter_by(id=location_id).delete(synchronize_session=False)
    db.session.commit()
    db.session.expire_all()
