import os

# Must be set before the storefront package reads its configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["EVENTS_ENABLED"] = "false"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from storefront.auth import create_access_token, get_password_hash
from storefront.database import SessionLocal, engine
from storefront.main import app
from storefront.models import AccountStatus, Base, Product, Role, User

PASSWORD = "correct-horse-battery"
PASSWORD_HASH = get_password_hash(PASSWORD)


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client():
    return TestClient(app)


@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    def _make(role="customer", name=None, account_status=AccountStatus.APPROVED.value):
        counter["n"] += 1
        user = User(
            name=name or f"{role.title()} {counter['n']}",
            email=f"{role}{counter['n']}@example.com",
            hashed_password=PASSWORD_HASH,
            role=role,
            account_status=account_status,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def customer(make_user):
    return make_user(Role.CUSTOMER.value, name="Alice")


@pytest.fixture()
def other_customer(make_user):
    return make_user(Role.CUSTOMER.value, name="Bob")


@pytest.fixture()
def seller(make_user):
    return make_user(Role.SELLER.value, name="Sam Seller")


@pytest.fixture()
def other_seller(make_user):
    return make_user(Role.SELLER.value, name="Olga Seller")


@pytest.fixture()
def admin(make_user):
    return make_user(Role.ADMIN.value, name="Root")


@pytest.fixture()
def make_product(db):
    def _make(seller, price="100.00", stock=5, name=None):
        product = Product(
            name=name or f"Product of {seller.name}",
            description="",
            price=Decimal(price),
            stock=stock,
            seller_id=seller.id,
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


@pytest.fixture()
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user)}"}

    return _headers
