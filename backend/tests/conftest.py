"""
Pytest fixtures for retailpos backend tests.

Provides the test app, a cleared database per test, two tenants with
locations, one user per role and a product catalog to sell from.
"""

from decimal import Decimal

import pytest

from retailpos import create_app
from retailpos.extensions import db
from retailpos.models import (
    Tenant, Location, Product, ProductVariant,
    ROLE_SUPER_ADMIN, ROLE_STORE_ADMIN, ROLE_LOCATION_USER,
)
from retailpos.services import EXTENSION_KEY
from retailpos.services.auth_service import create_user

PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_ENGINE_OPTIONS': {},
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def services(app, db_session):
    """Sale pipeline services (pricing, ledger, numbering, invoices)."""
    return app.extensions[EXTENSION_KEY]


@pytest.fixture(scope='function')
def tenant_a(db_session):
    tenant = Tenant(name="Tenant A - Acme Shoes", subscription_status="active")
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def tenant_b(db_session):
    tenant = Tenant(name="Tenant B - Beta Sports", subscription_status="trial")
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def location_a1(db_session, tenant_a):
    location = Location(tenant_id=tenant_a.id, name="Downtown", address="1 Main St")
    db_session.add(location)
    db_session.commit()
    return location


@pytest.fixture(scope='function')
def location_a2(db_session, tenant_a):
    location = Location(tenant_id=tenant_a.id, name="Airport")
    db_session.add(location)
    db_session.commit()
    return location


@pytest.fixture(scope='function')
def location_b1(db_session, tenant_b):
    location = Location(tenant_id=tenant_b.id, name="Mall")
    db_session.add(location)
    db_session.commit()
    return location


@pytest.fixture(scope='function')
def super_admin(db_session):
    return create_user("root@retailpos.test", PASSWORD, ROLE_SUPER_ADMIN)


@pytest.fixture(scope='function')
def store_admin_a(db_session, tenant_a, location_a1):
    return create_user(
        "owner@acme.test", PASSWORD, ROLE_STORE_ADMIN,
        tenant_id=tenant_a.id, location_id=location_a1.id,
    )


@pytest.fixture(scope='function')
def clerk_a1(db_session, tenant_a, location_a1):
    """location_user working the Downtown till."""
    return create_user(
        "clerk@acme.test", PASSWORD, ROLE_LOCATION_USER,
        tenant_id=tenant_a.id, location_id=location_a1.id,
    )


@pytest.fixture(scope='function')
def store_admin_b(db_session, tenant_b, location_b1):
    return create_user(
        "owner@beta.test", PASSWORD, ROLE_STORE_ADMIN,
        tenant_id=tenant_b.id, location_id=location_b1.id,
    )


@pytest.fixture(scope='function')
def sneaker(db_session, tenant_a):
    """Product with a 10% discount and two sizes."""
    product = Product(
        tenant_id=tenant_a.id,
        name="Runner Sneaker",
        category="Footwear",
        product_code="SNK-001",
        discount_percent=Decimal("10"),
    )
    db_session.add(product)
    db_session.flush()
    db_session.add_all([
        ProductVariant(product_id=product.id, variant_name="Acme / 42", brand="Acme", size="42"),
        ProductVariant(product_id=product.id, variant_name="Acme / 43", brand="Acme", size="43"),
    ])
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def variant_42(sneaker):
    return next(v for v in sneaker.variants if v.size == "42")


@pytest.fixture(scope='function')
def variant_43(sneaker):
    return next(v for v in sneaker.variants if v.size == "43")


@pytest.fixture(scope='function')
def socks(db_session, tenant_a):
    """Undiscounted product with a single variant."""
    product = Product(tenant_id=tenant_a.id, name="Crew Socks", category="Accessories")
    db_session.add(product)
    db_session.flush()
    variant = ProductVariant(product_id=product.id, variant_name="One size")
    db_session.add(variant)
    db_session.commit()
    return variant


@pytest.fixture(scope='function')
def stocked(services, tenant_a, location_a1, variant_42, variant_43, socks):
    """Downtown holds 10 x size 42, 5 x size 43 and 20 socks."""
    ledger = services.ledger
    ledger.stock_in(tenant_a.id, location_a1.id, variant_42.id, 10, "40.00", "100.00", supplier="Acme Dist")
    ledger.stock_in(tenant_a.id, location_a1.id, variant_43.id, 5, "40.00", "100.00")
    ledger.stock_in(tenant_a.id, location_a1.id, socks.id, 20, "1.50", "4.99")
    return {"42": variant_42, "43": variant_43, "socks": socks}


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
