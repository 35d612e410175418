"""
Pytest fixtures for restoledger backend tests.

Provides test database setup, customer/settings/cart factories, and test client.
"""

import pytest

from restoledger import create_app
from restoledger.extensions import db
from restoledger.models.customers import SOURCE_ADJUSTMENT
from restoledger.services import cart_service, referral_service, settings_service, wallet_service
from restoledger.services.concurrency import run_unit_of_work


ADMIN_TOKEN = "test-admin-token"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ADMIN_API_TOKEN': ADMIN_TOKEN,
        'LEDGER_RETRY_BACKOFF': 0,
        'PUSH_SENDER': None,
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
def configure(db_session):
    """Save business settings; money keys in major units."""
    def _configure(**payload):
        return settings_service.save_settings(payload)
    return _configure


@pytest.fixture(scope='function')
def make_customer(db_session):
    """Register a customer through the signup flow."""
    counter = {"n": 0}

    def _make(full_name=None, referral_code=None):
        counter["n"] += 1
        return referral_service.register_customer(
            full_name=full_name or f"Customer {counter['n']}",
            email=f"customer{counter['n']}@example.com",
            referral_code=referral_code,
        )
    return _make


@pytest.fixture(scope='function')
def fund_wallet(db_session):
    """Credit a wallet with an ADJUSTMENT in its own committed unit."""
    def _fund(customer_id, amount_cents):
        return run_unit_of_work(
            lambda: wallet_service.credit(
                customer_id, amount_cents, source=SOURCE_ADJUSTMENT, description="Test funding",
            )
        )
    return _fund


@pytest.fixture(scope='function')
def fill_cart(db_session):
    """Put (product_id, name, price_cents, quantity) tuples in a customer's cart."""
    def _fill(customer_id, items):
        for product_id, name, price_cents, quantity in items:
            cart_service.add_to_cart(
                customer_id,
                product_id=product_id,
                product_name=name,
                unit_price_cents=price_cents,
                quantity=quantity,
            )
    return _fill


@pytest.fixture(scope='function')
def customer_headers():
    """Helper to create identity headers for a customer."""
    def _headers(customer_id):
        return {'X-Customer-Id': str(customer_id)}
    return _headers


@pytest.fixture(scope='function')
def admin_headers():
    return {'X-Admin-Token': ADMIN_TOKEN}
