"""
Pytest fixtures for the CRM backend tests.

Provides the app on an in-memory database, a per-test wiped session, the
test client and small factories for products and leads.
"""

import pytest
from crm import create_app
from crm.extensions import db
from crm.models import Lead, Product


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
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
    """Factory: make_product(name="Oud Royal", stock=10, sale_price_cents=25000, ...)."""
    def _make(name="Oud Royal", stock=10, sale_price_cents=25000, **fields):
        product = Product(
            name=name,
            stock=stock,
            reserved=fields.pop("reserved", 0),
            sale_price_cents=sale_price_cents,
            is_active=fields.pop("is_active", True),
            **fields,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def product(make_product):
    """Active catalog product with 10 units in stock."""
    return make_product()


@pytest.fixture(scope='function')
def make_lead(db_session):
    """Factory: make_lead(name="Ana Souza", interests=[...], ...)."""
    def _make(name="Ana Souza", phone="11987654321", interests=None, **fields):
        lead = Lead(
            name=name,
            phone=phone,
            origin=fields.pop("origin", "INSTAGRAM"),
            estimated_value_cents=fields.pop("estimated_value_cents", 0),
            interests=interests or [],
            status=fields.pop("status", "NEGOTIATING"),
            **fields,
        )
        db_session.add(lead)
        db_session.commit()
        return lead
    return _make


def item(name="X", quantity=2, unit_price_cents=100, product_id=None) -> dict:
    """Order item payload."""
    data = {"name": name, "quantity": quantity, "unit_price_cents": unit_price_cents}
    if product_id is not None:
        data["product_id"] = product_id
    return data
