"""
Pytest fixtures for comanda backend tests.

Provides test database setup, record factories, and test client.
"""

import pytest

from comanda import create_app
from comanda.extensions import db
from comanda.models import User, Category, Product, DiningTable


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'DEBUG',
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
def make_user(db_session):
    """Factory: make_user("cashier") -> committed User with that role."""
    counter = {"n": 0}

    def _make(role="admin", *, is_active=True):
        counter["n"] += 1
        user = User(
            name=f"{role.title()} {counter['n']}",
            email=f"{role}{counter['n']}@comanda.test",
            role=role,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user("admin")


@pytest.fixture(scope='function')
def cashier(make_user):
    return make_user("cashier")


@pytest.fixture(scope='function')
def category(db_session):
    cat = Category(name="Mains", sort_order=1)
    db_session.add(cat)
    db_session.commit()
    return cat


@pytest.fixture(scope='function')
def make_product(db_session, category):
    """Factory for products. Stock-managed unless stock_management=False."""
    def _make(name="Burger", *, price_cents=2500, stock_management=True, stock_quantity=10,
              stock_reserved=0, min_stock=None):
        product = Product(
            category_id=category.id,
            name=name,
            price_cents=price_cents,
            stock_management=stock_management,
            stock_quantity=stock_quantity,
            stock_reserved=stock_reserved,
            min_stock=min_stock,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def make_table(db_session):
    def _make(number=1, *, seats=4):
        table = DiningTable(number=number, seats=seats)
        db_session.add(table)
        db_session.commit()
        return table

    return _make
