"""
Pytest fixtures for the coworking POS backend tests.

Provides an in-memory application, a clean database per test, one user per
role and bearer headers for each of them.
"""

import pytest

from coworkpos import create_app
from coworkpos.extensions import db
from coworkpos.models import Product
from coworkpos.services import session_service, user_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SECRET_KEY': 'test-secret',
        'BCRYPT_ROUNDS': 4,
        'STOCK_DEDUCTION_POLICY': 'flag',
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
    # Clear all data but keep schema
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    db.session.expunge_all()

    app.config['STOCK_DEDUCTION_POLICY'] = 'flag'

    yield db.session

    # Cleanup after test
    db.session.rollback()


def _make_user(username: str, role: str):
    return user_service.create_user(
        {"username": username, "role": role, "full_name": username.title()},
        "Password123",
        actor=None,
    )


@pytest.fixture(scope='function')
def cashier(db_session):
    return _make_user("caisse", "cashier")


@pytest.fixture(scope='function')
def admin(db_session):
    return _make_user("gerant", "admin")


@pytest.fixture(scope='function')
def super_admin(db_session):
    return _make_user("patron", "super_admin")


def auth_headers(user) -> dict:
    """Open a session for the user and return Authorization headers."""
    _, token = session_service.create_session(user_id=user.id)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def cashier_headers(cashier):
    return auth_headers(cashier)


@pytest.fixture(scope='function')
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture(scope='function')
def super_admin_headers(super_admin):
    return auth_headers(super_admin)


@pytest.fixture(scope='function')
def coffee(db_session):
    """A beverage with unit stock tracking available."""
    product = Product(name="Café noir", price_cents=1000, category="beverage", is_active=True)
    db_session.add(product)
    db_session.commit()
    return product
