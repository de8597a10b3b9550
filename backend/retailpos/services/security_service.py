# Overview: Append-only security audit trail.

from __future__ import annotations

from ..extensions import db
from ..models import SecurityEvent
from retailpos.time_utils import utcnow


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    tenant_id: int | None = None,
    location_id: int | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail with tenant context.

    Commits immediately: the event must survive the failed request that
    triggered it.

    event_type examples:
    - SCOPE_DENIED
    - ROLE_DENIED
    - LOGIN_FAILED
    - LOGIN_SUCCESS
    - LOGOUT
    - CONTEXT_SWITCHED
    - USER_CREATED
    """
    event = SecurityEvent(
        user_id=user_id,
        tenant_id=tenant_id,
        location_id=location_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    return event
