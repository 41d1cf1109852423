"""
Pytest fixtures for VendShop backend tests.

Provides the app on an in-memory database, a per-test clean database,
user/product factories and bearer-token headers.
"""

import pytest

from vendshop import create_app
from vendshop.extensions import db
from vendshop.models import User, Product
from vendshop.services import notification_service, session_service, wallet_service
from vendshop.services.auth_service import hash_password

TEST_PASSWORD = "secret123"
ADMIN_EMAIL = "admin@growvend.com"


class CapturingNotifier:
    """Collects password reset links instead of logging them."""

    def __init__(self):
        self.sent = []

    def send_password_reset(self, to: str, reset_link: str) -> None:
        self.sent.append((to, reset_link))


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'ADMIN_EMAILS': [ADMIN_EMAIL],
        'PUBLIC_BASE_URL': 'http://shop.test',
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
        db.session.expunge_all()


@pytest.fixture(scope='function')
def notifier(app):
    """Install a capturing notifier for password reset links."""
    capture = CapturingNotifier()
    notification_service.install_notifier(app, capture)
    yield capture
    notification_service.install_notifier(app, notification_service.LogNotifier())


@pytest.fixture(scope='function')
def make_user(db_session):
    """
    Factory for users. A non-zero balance is funded through a top-up so
    the ledger stays reconciled.
    """
    counter = {"n": 0}

    def _make(email=None, balance=None, is_admin=False, is_banned=False, grow_id=None):
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            password_hash=hash_password(TEST_PASSWORD),
            balance_cents=0,
            is_admin=is_admin,
            is_banned=False,
            grow_id=grow_id,
        )
        db_session.add(user)
        db_session.commit()

        if balance:
            wallet_service.top_up(user.id, balance)
        if is_banned:
            user.is_banned = True
            db_session.commit()
        return user

    return _make


@pytest.fixture(scope='function')
def user(make_user):
    """Buyer with $25.00."""
    return make_user(email="buyer@example.com", balance=25.00)


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user(email=ADMIN_EMAIL, is_admin=True)


@pytest.fixture(scope='function')
def make_product(db_session):
    def _make(name="Seed Pack", price_cents=1000, stock=None, category="general"):
        product = Product(
            name=name,
            description="",
            price_cents=price_cents,
            stock_data=list(stock or []),
            category=category,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def product(make_product):
    """$10.00 product with three units."""
    return make_product(stock=["CODE-1", "CODE-2", "CODE-3"])


@pytest.fixture(scope='function')
def headers_for(db_session):
    """Return a function that opens a session for a user and builds headers."""
    def _headers(user):
        _session, token = session_service.create_session(user_id=user.id)
        return auth_headers(token)

    return _headers


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
