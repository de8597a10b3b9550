# Overview: Tenant/location scope resolution for every data-touching request.

"""
Tenant-Scope Guard

WHY: Every read and write names a tenant and usually a location. Which
(tenant, location) a request may touch depends on the caller's role:

- super_admin: not bound to a tenant. Explicit tenant_id/location_id
  parameters override the session context; no isolation check.
- store_admin: bound to one tenant, may act on any of its locations.
- location_user: bound to one tenant and one location.

The scope is an explicit value built once per request (see
decorators.require_auth) and passed to this module; nothing here reads
ambient request state except for audit fields.

Every denial writes a SCOPE_DENIED / ROLE_DENIED SecurityEvent and raises
ForbiddenError before any service work happens.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from flask import has_request_context, request

from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Location, SessionToken, Tenant, ROLE_SUPER_ADMIN, ROLE_STORE_ADMIN, ROLE_LOCATION_USER
from .security_service import log_security_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestScope:
    user_id: int | None
    role: str
    tenant_id: int | None
    location_id: int | None = None

    @property
    def is_super_admin(self) -> bool:
        return self.role == ROLE_SUPER_ADMIN


def _deny(scope: RequestScope, reason: str, *, event_type: str = "SCOPE_DENIED") -> None:
    resource = action = ip_address = user_agent = None
    if has_request_context():
        resource = request.path
        action = request.method
        ip_address = request.remote_addr
        user_agent = request.headers.get("User-Agent")

    logger.warning("%s user=%s role=%s: %s", event_type, scope.user_id, scope.role, reason)
    log_security_event(
        user_id=scope.user_id,
        event_type=event_type,
        success=False,
        resource=resource,
        action=action,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        tenant_id=scope.tenant_id,
        location_id=scope.location_id,
    )
    raise ForbiddenError("Access denied", {"reason": reason})


def _get_location(location_id: int) -> Location:
    location = db.session.get(Location, location_id)
    if not location:
        raise NotFoundError("Location not found", {"location_id": location_id})
    return location


def resolve_scope(
    scope: RequestScope,
    tenant_id: int | None = None,
    location_id: int | None = None,
) -> RequestScope:
    """
    Effective (tenant, location) for an operation.

    tenant_id/location_id are what the caller asked for (None = "mine").
    Returns a new RequestScope; the input is never modified.
    """
    if scope.role == ROLE_SUPER_ADMIN:
        eff_tenant = tenant_id if tenant_id is not None else scope.tenant_id
        if location_id is not None:
            eff_location = location_id
        elif tenant_id is None or tenant_id == scope.tenant_id:
            eff_location = scope.location_id
        else:
            eff_location = None

        if eff_tenant is not None and tenant_id is not None and not db.session.get(Tenant, eff_tenant):
            raise NotFoundError("Tenant not found", {"tenant_id": eff_tenant})
        if eff_location is not None:
            location = _get_location(eff_location)
            if eff_tenant is None:
                eff_tenant = location.tenant_id
            elif location.tenant_id != eff_tenant:
                raise ValidationError("Location does not belong to tenant")
        return replace(scope, tenant_id=eff_tenant, location_id=eff_location)

    if scope.tenant_id is None:
        _deny(scope, "Session has no tenant context")

    if tenant_id is not None and tenant_id != scope.tenant_id:
        _deny(scope, f"Tenant {tenant_id} is outside the caller's tenant")

    if scope.role == ROLE_STORE_ADMIN:
        if location_id is None:
            # Tenant-wide unless a location is named
            return replace(scope, location_id=None)
        location = _get_location(location_id)
        if location.tenant_id != scope.tenant_id:
            _deny(scope, f"Location {location_id} belongs to another tenant")
        return replace(scope, location_id=location_id)

    if scope.role == ROLE_LOCATION_USER:
        if location_id is not None and location_id != scope.location_id:
            _deny(scope, f"Location {location_id} is outside the caller's location")
        if scope.location_id is None:
            _deny(scope, "Location user has no assigned location")
        return scope

    _deny(scope, f"Unknown role {scope.role!r}")


def require_location(scope: RequestScope) -> RequestScope:
    if scope.location_id is None:
        raise ValidationError("location_id is required")
    return scope


def require_tenant(scope: RequestScope) -> RequestScope:
    if scope.tenant_id is None:
        raise ValidationError("tenant_id is required")
    return scope


def require_role(scope: RequestScope, *roles: str) -> RequestScope:
    if scope.role not in roles:
        _deny(scope, f"Role {scope.role} is not one of {', '.join(roles)}", event_type="ROLE_DENIED")
    return scope


def switch_context(
    token_record: SessionToken,
    scope: RequestScope,
    tenant_id: int | None,
    location_id: int | None,
) -> RequestScope:
    """
    Rewrite a super_admin session's working tenant/location.

    location_id without tenant_id adopts the location's tenant.
    Passing neither clears the context.
    """
    require_role(scope, ROLE_SUPER_ADMIN)

    if tenant_id is not None and not db.session.get(Tenant, tenant_id):
        raise NotFoundError("Tenant not found", {"tenant_id": tenant_id})
    if location_id is not None:
        location = _get_location(location_id)
        if tenant_id is None:
            tenant_id = location.tenant_id
        elif location.tenant_id != tenant_id:
            raise ValidationError("Location does not belong to tenant")

    token_record.tenant_id = tenant_id
    token_record.location_id = location_id
    db.session.commit()

    log_security_event(
        user_id=scope.user_id,
        event_type="CONTEXT_SWITCHED",
        success=True,
        reason=f"tenant={tenant_id} location={location_id}",
        tenant_id=tenant_id,
        location_id=location_id,
    )
    return replace(scope, tenant_id=tenant_id, location_id=location_id)
