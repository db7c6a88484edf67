"""
Pytest fixtures for poscore backend tests.

Provides test database setup, product/client factories, and test client.
"""

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError
from poscore import create_app
from poscore.extensions import db
from poscore.models import Client, Product
from poscore.services import concurrency


CASHIER_ID = 7


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BUSINESS_TIMEZONE': 'UTC',
        'ENFORCE_CATALOG_PRICE': False,
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
def make_product(db_session):
    """Factory for committed catalog products."""
    counter = {"n": 0}

    def _make(stock=10, sale_price_cents=1000, purchase_price_cents=600, min_stock=5, **overrides):
        counter["n"] += 1
        product = Product(
            barcode=overrides.pop("barcode", f"75010000{counter['n']:05d}"),
            description=overrides.pop("description", f"Test product {counter['n']}"),
            purchase_price_cents=purchase_price_cents,
            sale_price_cents=sale_price_cents,
            stock=stock,
            min_stock=min_stock,
            **overrides,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def product_a(make_product):
    """Product A: price 10.00, cost 6.00, 10 on hand."""
    return make_product(stock=10, sale_price_cents=1000, purchase_price_cents=600, description="Product A")


@pytest.fixture(scope='function')
def product_b(make_product):
    """Product B: price 20.00, cost 15.00, 3 on hand."""
    return make_product(stock=3, sale_price_cents=2000, purchase_price_cents=1500, description="Product B")


@pytest.fixture(scope='function')
def existing_client(db_session):
    customer = Client(name="Ana Torres", phone="5550001111")
    db_session.add(customer)
    db_session.commit()
    return customer


def item(product, quantity, unit_price_cents=None):
    """Helper to build a cart line for a product."""
    return {
        "product_id": product.id,
        "quantity": quantity,
        "unit_price_cents": product.sale_price_cents if unit_price_cents is None else unit_price_cents,
    }


def shift_to_previous_day(row, days=1):
    """Move a committed row's created_at back by whole days."""
    row.created_at = row.created_at - timedelta(days=days)
    db.session.commit()


def actor_headers(actor_id=CASHIER_ID) -> dict:
    """Helper to create the forwarded actor header."""
    return {'X-Actor-Id': str(actor_id)}


@pytest.fixture(scope='function')
def no_backoff(monkeypatch):
    """Skip the retry sleep so lock-contention tests run instantly."""
    monkeypatch.setattr(concurrency.time, "sleep", lambda seconds: None)


def lock_error() -> OperationalError:
    """The error SQLite raises when another writer holds the lock."""
    return OperationalError("BEGIN IMMEDIATE", {}, Exception("database is locked"))


def failing(times=None, then=None):
    """
    Stand-in for a collaborator that hits lock errors.

    Raises on the first ``times`` calls (every call when None), then
    delegates to ``then``.
    """
    calls = {"n": 0}

    def _call(*args, **kwargs):
        calls["n"] += 1
        if times is None or calls["n"] <= times:
            raise lock_error()
        return then(*args, **kwargs)

    _call.calls = calls
    return _call
