from decimal import Decimal

import pytest

from restaurant_api.app import create_app
from restaurant_api.config import TestConfig
from restaurant_api.extensions import db
from restaurant_api.models import MenuItem

ADMIN = {"Authorization": f"Bearer {TestConfig.ADMIN_TOKEN}"}
MANAGER = {"Authorization": f"Bearer {TestConfig.MANAGER_TOKEN}"}
STAFF = {"Authorization": f"Bearer {TestConfig.STAFF_TOKEN}"}


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def menu(app):
    items = {
        "burger": MenuItem(name="Burger", category="Mains", price=Decimal("12.50"), is_available=True),
        "fries": MenuItem(name="Fries", category="Sides", price=Decimal("4.00"), is_available=True),
        "soda": MenuItem(name="Soda", category="Drinks", price=Decimal("2.25"), is_available=True),
        "special": MenuItem(name="Chef Special", category="Mains", price=Decimal("30.00"), is_available=False),
    }
    db.session.add_all(items.values())
    db.session.commit()
    return {key: item.id for key, item in items.items()}
