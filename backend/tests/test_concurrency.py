# Overview: Pytest coverage for concurrent sales against a file-backed SQLite database.

"""
Concurrency tests

Run real threads against one SQLite file so the write lock is actually
contended (an in-memory database shares a single connection).

Checks:
1. Concurrent sales of the last units: exactly one succeeds, stock never
   goes negative, every loser gets InsufficientStockError.
2. Concurrent sales of one tenant never reuse an invoice number.
3. Concurrent first receipts of one (location, variant) end up in one row.
"""

import threading
from decimal import Decimal

import pytest

from retailpos import create_app
from retailpos.errors import InsufficientStockError
from retailpos.extensions import db
from retailpos.models import Inventory, Invoice, Location, Product, ProductVariant, StockMovement, Tenant
from retailpos.services import EXTENSION_KEY


@pytest.fixture
def file_app(app, tmp_path):
    db_path = tmp_path / "concurrency.sqlite3"
    file_app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'timeout': 15}},
        'LOCK_TIMEOUT_SECONDS': 15,
        'BCRYPT_ROUNDS': 4,
    })
    with file_app.app_context():
        db.create_all()
        yield file_app
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def shop(file_app):
    """One tenant, one location, one variant; returns their ids."""
    tenant = Tenant(name="Race Shop", subscription_status="active")
    db.session.add(tenant)
    db.session.flush()
    location = Location(tenant_id=tenant.id, name="Front")
    product = Product(tenant_id=tenant.id, name="Limited Boot", discount_percent=Decimal("0"))
    db.session.add_all([location, product])
    db.session.flush()
    variant = ProductVariant(product_id=product.id, variant_name="Boot / 44", size="44")
    db.session.add(variant)
    db.session.commit()
    return {"tenant_id": tenant.id, "location_id": location.id, "variant_id": variant.id}


def _run_threads(file_app, count, target):
    """Start count threads at once; each runs target(index) in its own app context."""
    barrier = threading.Barrier(count)
    results = [None] * count

    def worker(index):
        with file_app.app_context():
            barrier.wait()
            try:
                results[index] = ("ok", target(index))
            except Exception as exc:
                results[index] = ("error", exc)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return results


def test_oversell_race_has_one_winner(file_app, shop):
    services = file_app.extensions[EXTENSION_KEY]
    services.ledger.stock_in(shop["tenant_id"], shop["location_id"], shop["variant_id"], 10, "50.00", "120.00")

    def sell(_):
        return services.invoices.create_invoice(
            shop["tenant_id"],
            shop["location_id"],
            [{"variant_id": shop["variant_id"], "quantity": 8}],
        )

    results = _run_threads(file_app, 6, sell)

    winners = [value for status, value in results if status == "ok"]
    losers = [value for status, value in results if status == "error"]
    assert len(winners) == 1
    assert len(losers) == 5
    assert all(isinstance(exc, InsufficientStockError) for exc in losers)

    db.session.expire_all()
    row = db.session.query(Inventory).filter_by(variant_id=shop["variant_id"]).one()
    assert row.quantity == 2
    assert db.session.query(Invoice).count() == 1
    assert db.session.query(StockMovement).count() == 2


def test_concurrent_sales_get_unique_numbers(file_app, shop):
    services = file_app.extensions[EXTENSION_KEY]
    services.ledger.stock_in(shop["tenant_id"], shop["location_id"], shop["variant_id"], 100, "50.00", "120.00")

    def sell(_):
        return services.invoices.create_invoice(
            shop["tenant_id"],
            shop["location_id"],
            [{"variant_id": shop["variant_id"], "quantity": 1}],
        )["invoice_number"]

    results = _run_threads(file_app, 8, sell)

    assert [status for status, _ in results] == ["ok"] * 8
    numbers = sorted(value for _, value in results)
    assert len(set(numbers)) == 8
    assert [n[-5:] for n in numbers] == [f"{i:05d}" for i in range(1, 9)]

    db.session.expire_all()
    row = db.session.query(Inventory).filter_by(variant_id=shop["variant_id"]).one()
    assert row.quantity == 92


def test_concurrent_first_receipts_share_one_row(file_app, shop):
    services = file_app.extensions[EXTENSION_KEY]

    def receive(_):
        return services.ledger.stock_in(
            shop["tenant_id"], shop["location_id"], shop["variant_id"], 3, "50.00", "120.00",
        ).id

    results = _run_threads(file_app, 5, receive)

    assert [status for status, _ in results] == ["ok"] * 5
    db.session.expire_all()
    rows = db.session.query(Inventory).filter_by(variant_id=shop["variant_id"]).all()
    assert len(rows) == 1
    assert rows[0].quantity == 15
    assert db.session.query(StockMovement).count() == 5


def test_two_sales_of_three_against_five(file_app, shop):
    services = file_app.extensions[EXTENSION_KEY]
    services.ledger.stock_in(shop["tenant_id"], shop["location_id"], shop["variant_id"], 5, "50.00", "120.00")

    def sell(_):
        return services.invoices.create_invoice(
            shop["tenant_id"],
            shop["location_id"],
            [{"variant_id": shop["variant_id"], "quantity": 3}],
        )

    results = _run_threads(file_app, 2, sell)

    statuses = sorted(status for status, _ in results)
    assert statuses == ["error", "ok"]
    assert any(isinstance(value, InsufficientStockError) for status, value in results if status == "error")

    db.session.expire_all()
    assert db.session.query(Inventory).filter_by(variant_id=shop["variant_id"]).one().quantity == 2
    assert db.session.query(StockMovement).filter_by(movement_type="stock_out").count() == 1
