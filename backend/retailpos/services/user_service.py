# Overview: User management for admins (listing, reassignment, deactivation).

from __future__ import annotations

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Location, User, ROLE_LOCATION_USER, ROLE_SUPER_ADMIN
from ..validation import optional_id
from .auth_service import hash_password, normalize_email
from .session_service import revoke_all_user_sessions


def list_users(tenant_id: int | None = None, location_id: int | None = None, role: str | None = None) -> list[User]:
    q = db.session.query(User)
    if tenant_id is not None:
        q = q.filter(User.tenant_id == tenant_id)
    if location_id is not None:
        q = q.filter(User.location_id == location_id)
    if role:
        q = q.filter(User.role == role)
    return q.order_by(User.email.asc()).all()


def get_user(user_id: int, tenant_id: int | None = None) -> User:
    """tenant_id=None only for super_admin callers."""
    q = db.session.query(User).filter(User.id == user_id)
    if tenant_id is not None:
        q = q.filter(User.tenant_id == tenant_id)
    user = q.first()
    if not user:
        raise NotFoundError("User not found", {"user_id": user_id})
    return user


def update_user(user_id: int, payload: dict, tenant_id: int | None = None) -> User:
    """
    Allowed keys: email, password, location_id, is_active.

    Deactivating a user or changing their password revokes every session.
    Role and tenant are fixed for the life of the account.
    """
    user = get_user(user_id, tenant_id)
    payload = payload or {}
    unknown = set(payload) - {"email", "password", "location_id", "is_active"}
    if unknown:
        raise ValidationError(f"Field not allowed: {sorted(unknown)[0]}")

    revoke_reason = None

    if "email" in payload:
        email = normalize_email(payload["email"])
        taken = db.session.query(User).filter(User.email == email, User.id != user.id).first()
        if taken:
            raise ConflictError("Email already in use", {"email": email})
        user.email = email

    if "location_id" in payload:
        if user.role == ROLE_SUPER_ADMIN:
            raise ValidationError("super_admin has no location")
        location_id = optional_id("location_id", payload["location_id"])
        if location_id is None and user.role == ROLE_LOCATION_USER:
            raise ValidationError("location_id is required for location users")
        if location_id is not None:
            location = db.session.get(Location, location_id)
            if not location or location.tenant_id != user.tenant_id:
                raise NotFoundError("Location not found", {"location_id": location_id})
        user.location_id = location_id
        revoke_reason = "Location reassigned"

    if "password" in payload:
        user.password_hash = hash_password(payload["password"])
        revoke_reason = "Password changed"

    if "is_active" in payload:
        if not isinstance(payload["is_active"], bool):
            raise ValidationError("is_active must be a boolean")
        user.is_active = payload["is_active"]
        if not user.is_active:
            revoke_reason = "User account deactivated"

    db.session.commit()
    if revoke_reason:
        revoke_all_user_sessions(user.id, reason=revoke_reason)
    return user


def delete_user(user_id: int, tenant_id: int | None = None) -> None:
    user = get_user(user_id, tenant_id)
    db.session.query(User).filter_by(id=user.id).delete(synchronize_session=False)
    db.session.commit()
    db.session.expire_all()
