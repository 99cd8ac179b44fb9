"""
Pytest fixtures for salestock backend tests.

Provides the in-memory application, per-test table clearing, users,
products in each stock representation, and bearer headers.
"""

from decimal import Decimal

import pytest

from salestock import create_app
from salestock.extensions import db
from salestock.models import Product, User
from salestock.models.auth import ROLE_ADMIN, ROLE_SELLER
from salestock.models.products import CATEGORY_CERAMIC, CATEGORY_IRON, CATEGORY_STANDARD
from salestock.services.auth_service import hash_password


PASSWORD = "Password123!"
RATE = Decimal("132")
TVA = Decimal("10")


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'USD_HTG_RATE': '132',
        'DISPLAY_CURRENCY': 'HTG',
        'TVA_RATE': '10',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh tables for each test."""
    db.session.rollback()
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is deliberately slow; hash the shared test password once."""
    return hash_password(PASSWORD)


def _make_user(session, password_hash, username, role, full_name):
    user = User(
        username=username,
        full_name=full_name,
        password_hash=password_hash,
        role=role,
        is_active=True,
    )
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def admin(db_session, password_hash):
    return _make_user(db_session, password_hash, "admin", ROLE_ADMIN, "Admin User")


@pytest.fixture(scope='function')
def seller(db_session, password_hash):
    return _make_user(db_session, password_hash, "seller", ROLE_SELLER, "Sam Seller")


@pytest.fixture(scope='function')
def other_seller(db_session, password_hash):
    return _make_user(db_session, password_hash, "seller2", ROLE_SELLER, "Other Seller")


def make_product(session, **kwargs) -> Product:
    defaults = {
        "name": "Product",
        "category": CATEGORY_STANDARD,
        "unit": "unit",
        "price": Decimal("100"),
        "currency": "HTG",
        "purchase_price": Decimal("60"),
        "quantity": Decimal("10"),
        "alert_threshold": Decimal("5"),
        "is_active": True,
    }
    defaults.update(kwargs)
    product = Product(**defaults)
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def standard_product(db_session):
    """Ordinary goods counted in quantity: 10 on hand at 100 HTG."""
    return make_product(db_session, name="Rice 25kg")


@pytest.fixture(scope='function')
def iron_product(db_session):
    """Iron bars counted in stock_barre: 100 on hand at 250 HTG."""
    return make_product(
        db_session,
        name="Iron bar 12mm",
        category=CATEGORY_IRON,
        unit="barre",
        price=Decimal("250"),
        purchase_price=Decimal("200"),
        quantity=Decimal("0"),
        stock_barre=Decimal("100"),
    )


@pytest.fixture(scope='function')
def ceramic_product(db_session):
    """Tiles counted in stock_boite: 50 boxes at 900 HTG."""
    return make_product(
        db_session,
        name="Floor tile 60x60",
        category=CATEGORY_CERAMIC,
        unit="boite",
        price=Decimal("900"),
        purchase_price=Decimal("700"),
        quantity=Decimal("0"),
        stock_boite=Decimal("50"),
    )


@pytest.fixture(scope='function')
def usd_product(db_session):
    """Priced in USD: 20 on hand at 10 USD."""
    return make_product(
        db_session,
        name="Solar lamp",
        price=Decimal("10"),
        currency="USD",
        purchase_price=Decimal("6"),
        quantity=Decimal("20"),
    )


def line(product: Product, quantity, unit_price=None) -> dict:
    """Cart line for product at its list price."""
    quantity = Decimal(str(quantity))
    unit_price = Decimal(str(unit_price)) if unit_price is not None else Decimal(product.price)
    return {
        "product_id": product.id,
        "product_name": product.name,
        "quantity": str(quantity),
        "unit": product.unit,
        "unit_price": str(unit_price),
        "subtotal": str(quantity * unit_price),
        "currency": product.currency,
    }


def build_cart(items: list[dict], *, discount_type="none", discount_value=0, **extra) -> dict:
    """
    Create-sale payload with totals worked out by hand for the test
    settings: rate 132 HTG per USD, display HTG, 10% TVA.
    """
    subtotal = Decimal("0")
    for item in items:
        amount = Decimal(item["subtotal"])
        subtotal += amount * RATE if item["currency"] == "USD" else amount

    discount_value = Decimal(str(discount_value))
    if discount_type == "percentage":
        discount = subtotal * discount_value / 100
    elif discount_type == "amount":
        discount = min(discount_value, subtotal)
    else:
        discount = Decimal("0")

    total = (subtotal - discount) * (1 + TVA / 100)
    payload = {
        "customer_name": "Walk-in",
        "payment_method": "cash",
        "subtotal": str(subtotal),
        "discount_type": discount_type,
        "discount_value": str(discount_value),
        "discount_amount": str(discount),
        "total_amount": str(total),
        "items": items,
    }
    payload.update(extra)
    return payload


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, admin.username))


@pytest.fixture(scope='function')
def seller_headers(client, seller):
    return auth_headers(get_auth_token(client, seller.username))
