"""
Pytest fixtures for sareepos tests.

Provides the application on an in-memory database, a clean session per
test, a test client and stock / checkout payload factories.
"""

from datetime import datetime

import pytest

from sareepos import create_app
from sareepos.extensions import db
from sareepos.services import stock_service

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SHOP_TIMEZONE': 'Asia/Kolkata',
    'LOG_LEVEL': 'WARNING',
}

# Shop-local checkout time used by tests that pin the invoice day
CHECKOUT_TIME = datetime(2025, 1, 1, 10, 30)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

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
def make_stock(db_session):
    """Factory: create a stock row through the intake service."""
    def _make(**overrides):
        payload = {
            "itemName": "Kanjivaram Silk Saree",
            "category": "Silk",
            "color": "Maroon",
            "quantity": 10,
            "unitPrice": 1500,
            "sellingPrice": 2000,
            "supplier": "Sri Murugan Silks",
        }
        payload.update(overrides)
        return stock_service.create_stock(payload)
    return _make


def line(stock, quantity, unit_price=None):
    """One cart line in the JSON shape the counter sends."""
    price = unit_price if unit_price is not None else stock.unit_price_cents / 100
    return {
        "stockId": stock.id,
        "quantity": quantity,
        "unitPrice": price,
        "totalPrice": round(price * quantity, 2),
    }


def checkout_payload(lines, payment_method="cash", discount=0, tax=0, **extra):
    """Checkout body whose totals are consistent with its lines."""
    subtotal = round(sum(item["totalPrice"] for item in lines), 2)
    payload = {
        "customerName": "Lakshmi",
        "customerPhone": "9876543210",
        "items": lines,
        "subtotal": subtotal,
        "discountAmount": discount,
        "taxAmount": tax,
        "totalAmount": round(subtotal - discount + tax, 2),
        "paymentMethod": payment_method,
    }
    payload.update(extra)
    return payload
