# Overview: Password hashing, account creation and login.

"""
Authentication

WHY: Every sale is attributable to a user. bcrypt hashes passwords;
sessions are handled separately (see session_service.py).

Roles and tenant binding:
- super_admin: tenant_id NULL, created only from the CLI
- store_admin: tenant_id required; location optional
- location_user: tenant_id and location_id required

Emails are globally unique because login is by email alone.
"""

import re

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import (
    Location,
    Tenant,
    User,
    ROLES,
    ROLE_SUPER_ADMIN,
    ROLE_STORE_ADMIN,
    ROLE_LOCATION_USER,
)
from retailpos.time_utils import utcnow

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_password_strength(password: str) -> None:
    """
    Minimum 8 characters with at least one letter and one digit.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise ValidationError("Password must be at least 8 characters long")
    if not re.search(r"[A-Za-z]", password):
        raise ValidationError("Password must contain at least one letter")
    if not re.search(r"\d", password):
        raise ValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    """
    bcrypt hash, cost from BCRYPT_ROUNDS (default 12).

    Password strength is validated before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Timing-safe check via bcrypt.checkpw. Malformed hashes never match.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def normalize_email(email) -> str:
    if not isinstance(email, str) or not _EMAIL_RE.match(email.strip()):
        raise ValidationError("A valid email is required")
    return email.strip().lower()


def _email_taken(email: str) -> bool:
    return db.session.query(User.id).filter_by(email=email).first() is not None


def create_user(
    email: str,
    password: str,
    role: str,
    tenant_id: int | None = None,
    location_id: int | None = None,
    *,
    commit: bool = True,
) -> User:
    """
    Create a user after checking role/tenant/location consistency.

    Raises ValidationError for bad input, NotFoundError for a missing
    tenant or location, ConflictError for a taken email.
    """
    email = normalize_email(email)
    if role not in ROLES:
        raise ValidationError(f"role must be one of {', '.join(ROLES)}")

    if role == ROLE_SUPER_ADMIN:
        if tenant_id is not None or location_id is not None:
            raise ValidationError("super_admin cannot be bound to a tenant")
    else:
        if tenant_id is None:
            raise ValidationError("tenant_id is required")
        if not db.session.get(Tenant, tenant_id):
            raise NotFoundError("Tenant not found", {"tenant_id": tenant_id})
        if role == ROLE_LOCATION_USER and location_id is None:
            raise ValidationError("location_id is required for location users")
        if location_id is not None:
            location = db.session.get(Location, location_id)
            if not location or location.tenant_id != tenant_id:
                raise NotFoundError("Location not found", {"location_id": location_id})

    if _email_taken(email):
        raise ConflictError("Email already registered", {"email": email})

    user = User(
        email=email,
        password_hash=hash_password(password),
        role=role,
        tenant_id=tenant_id,
        location_id=location_id,
        is_active=True,
    )
    db.session.add(user)
    try:
        if commit:
            db.session.commit()
        else:
            db.session.flush()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same email
        db.session.rollback()
        raise ConflictError("Email already registered", {"email": email})
    return user


def signup(
    *,
    tenant_name: str,
    location_name: str,
    email: str,
    password: str,
    location_address: str | None = None,
    location_phone: str | None = None,
) -> User:
    """
    Public self-service signup: new tenant, its first location and a
    store_admin, committed together.
    """
    tenant_name = (tenant_name or "").strip()
    location_name = (location_name or "").strip()
    if not tenant_name:
        raise ValidationError("tenant_name is required")
    if not location_name:
        raise ValidationError("location_name is required")

    try:
        tenant = Tenant(name=tenant_name, subscription_status="trial")
        db.session.add(tenant)
        db.session.flush()

        location = Location(
            tenant_id=tenant.id,
            name=location_name,
            address=location_address,
            phone=location_phone,
        )
        db.session.add(location)
        db.session.flush()

        user = create_user(
            email,
            password,
            ROLE_STORE_ADMIN,
            tenant_id=tenant.id,
            location_id=location.id,
            commit=False,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Returns the active User for valid credentials, None otherwise.
    Updates last_login_at on success.
    """
    if not isinstance(email, str) or not email.strip():
        return None
    user = db.session.query(User).filter(
        User.email == email.strip().lower(),
        User.is_active.is_(True),
    ).first()
    if not user or not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
