"""
Pytest fixtures for JurisonShop backend tests.

Provides an in-memory SQLite app, a test client, a per-test clean database,
and small factories for products and transactions.
"""

from decimal import Decimal

import pytest

from jurisonshop import create_app
from jurisonshop.config import TestConfig
from jurisonshop.extensions import db
from jurisonshop.models import Product, Transaction
from jurisonshop.time_utils import utcnow


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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
    """Factory: insert a product row and return it."""
    def _make(sku="A1", name=None, capital=10, retail=20, stock=5, category="Parts", age=None):
        product = Product(
            sku=sku,
            name=name or f"Part {sku}",
            category_name=category,
            capital_price=Decimal(str(capital)),
            retail_price=Decimal(str(retail)),
            stock_quantity=stock,
        )
        if age is not None:
            product.created_at = utcnow() - age
            product.updated_at = utcnow()
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def make_transaction(db_session):
    """Factory: insert a transaction row directly, without touching stock."""
    counter = {"n": 0}

    def _make(items, total, status="completed", created_at=None, customer_name="Walk-in Customer"):
        counter["n"] += 1
        tx = Transaction(
            transaction_number=f"TXN-TEST-{counter['n']:04d}",
            customer_name=customer_name,
            payment_method="cash",
            total_amount=Decimal(str(total)),
            items=items,
            status=status,
            created_at=created_at or utcnow(),
        )
        db_session.add(tx)
        db_session.commit()
        return tx
    return _make


@pytest.fixture(scope='function')
def stock_of(db_session):
    """Read stock straight from the table, bypassing the identity map."""
    def _stock(sku: str) -> int | None:
        return db.session.query(Product.stock_quantity).filter(Product.sku == sku).scalar()
    return _stock
