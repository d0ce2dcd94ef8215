"""
Pytest fixtures for eventpos backend tests.

Provides the in-memory ledger database, actors and a product factory.
"""

import pytest

from eventpos import create_app
from eventpos.extensions import db
from eventpos.identity import Actor, ROLE_ADMIN, ROLE_CASHIER, ROLE_SELLER
from eventpos.services import cashbox_service, products_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LEDGER_RETRY_BACKOFF': 0,
        'NOTIFY_WEBHOOK_URL': None,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture
def admin():
    return Actor("admin-1", "Event Coordinator", ROLE_ADMIN)


@pytest.fixture
def cashier():
    return Actor("op1", "Cashier One", ROLE_CASHIER)


@pytest.fixture
def seller():
    return Actor("seller-1", "Seller One", ROLE_SELLER)


@pytest.fixture
def make_product(db_session):
    """Factory: make_product("p1", "Arepa", price_cents=5000, stock=5)."""
    def _make(product_id, name, price_cents=1000, stock=0, availability=("pos", "pre-sale", "self-service")):
        return products_service.create_product(
            name,
            price_cents,
            stock=stock,
            availability=list(availability),
            product_id=product_id,
        )
    return _make


@pytest.fixture
def arepa(make_product):
    return make_product("p1", "Arepa", price_cents=5000, stock=5)


@pytest.fixture
def empanada(make_product):
    return make_product("p2", "Empanada", price_cents=3000, stock=10)


@pytest.fixture
def open_till(db_session, cashier):
    """Cashier op1 with an open session and an opening balance of 100.00."""
    return cashbox_service.open_session(cashier, 10000)
