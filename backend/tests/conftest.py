"""
Pytest fixtures for posledger backend tests.

Provides the test database, catalog/inventory builders, an event recorder
and the test client.
"""

from decimal import Decimal

import pytest
from posledger import create_app
from posledger.extensions import db, publisher
from posledger.models import InventoryStock
from posledger.services import bom_service, product_service
from posledger.validation import BomItemRequest, OrderItemRequest, OrderRequest

COMPANY = "C1"
SHOP = "S1"
USER = "U1"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'RETURN_ALLOW_PARTIALLY_RETURNED_LINES': False,
        'ORDER_RETURN_REQUIRES_FULL_LINES': False,
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
def headers():
    return {"X-Company-Id": COMPANY, "X-Shop-Id": SHOP, "X-User-Id": USER}


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        publisher.clear()

        yield db.session

        # Cleanup after test
        db.session.rollback()
        publisher.clear()


@pytest.fixture(scope='function')
def events(db_session):
    """Record every published event as (name, payload)."""
    received = []
    publisher.subscribe("*", lambda name, payload: received.append((name, payload)))
    return received


@pytest.fixture(scope='function')
def make_product(db_session):
    """Register a product; returns the Product row."""
    counter = {"n": 0}

    def _make(name=None, *, requires_grn=False, has_raw_materials=False, **extra):
        counter["n"] += 1
        data = {
            "plu_code": f"PLU-{counter['n']}",
            "name": name or f"Product {counter['n']}",
            "requires_grn": requires_grn,
            "has_raw_materials": has_raw_materials,
        }
        data.update(extra)
        return product_service.create_product(COMPANY, USER, data)

    return _make


@pytest.fixture(scope='function')
def make_stock(db_session):
    """Create a stock row with an opening quantity (bypasses goods receipt)."""

    def _make(product_id, quantity, *, wac="0", minimum="0", shop_id=SHOP):
        stock = InventoryStock(
            company_id=COMPANY,
            shop_id=shop_id,
            product_id=product_id,
            total_quantity=Decimal(str(quantity)),
            weighted_average_cost=Decimal(str(wac)),
            minimum_quantity=Decimal(str(minimum)),
        )
        db_session.add(stock)
        db_session.commit()
        return stock

    return _make


@pytest.fixture(scope='function')
def make_bom(db_session):
    """Create a BOM: make_bom(finished_good_id, [(raw_id, qty), ...])."""

    def _make(finished_good_id, entries):
        items = [BomItemRequest(product_id=pid, qty=Decimal(str(qty))) for pid, qty in entries]
        return bom_service.create_bom(COMPANY, SHOP, USER, finished_good_id, items)

    return _make


def order_of(*lines, bill_total="0"):
    """Build an OrderRequest from (product_id, quantity[, selling_price[, discount]]) tuples."""
    items = []
    for line in lines:
        product_id, quantity, *rest = line
        price = rest[0] if rest else "0"
        discount = rest[1] if len(rest) > 1 else "0"
        items.append(OrderItemRequest(
            product_id=product_id,
            quantity=Decimal(str(quantity)),
            selling_price=Decimal(str(price)),
            discount_amount=Decimal(str(discount)),
        ))
    return OrderRequest(items=items, bill_total=Decimal(str(bill_total)))


def quantity_of(product_id, shop_id=SHOP):
    stock = (
        db.session.query(InventoryStock)
        .filter_by(company_id=COMPANY, shop_id=shop_id, product_id=product_id)
        .populate_existing()
        .one()
    )
    return stock.total_quantity
