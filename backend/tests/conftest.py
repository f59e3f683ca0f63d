import os

# Must be set before app modules read settings
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SMS_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["IMAGE_BASE_URL"] = "https://cdn.example.com"

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_sms_gateway
from app.core.database import Base, SessionLocal, engine
from app.core.exceptions import DeliveryFailedError
from app.core.security import create_access_token, get_password_hash
from app.main import app
from app.models.product import Product
from app.models.user import User
from app.services.sms_service import SmsGateway

PASSWORD = "password123"


class FakeSmsGateway(SmsGateway):
    """Records messages instead of sending them."""

    def __init__(self):
        super().__init__("Marketplace", timedelta(minutes=10))
        self.sent = []
        self.fail = False

    def send(self, phone_number, message):
        if self.fail:
            raise DeliveryFailedError()
        self.sent.append((phone_number, message))


class FixedClock:
    def __init__(self, now=None):
        self.now = now or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def gateway():
    return FakeSmsGateway()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def client(db, gateway):
    app.dependency_overrides[get_sms_gateway] = lambda: gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(**fields):
        counter["n"] += 1
        defaults = {
            "email": f"user{counter['n']}@example.com",
            "password": get_password_hash(PASSWORD),
            "first_name": "Test",
            "last_name": f"User{counter['n']}",
            "name": f"Test User {counter['n']}",
            "verified": True,
        }
        defaults.update(fields)
        user = User(**defaults)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_product(db):
    base_time = datetime(2024, 1, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _make_product(seller, **fields):
        counter["n"] += 1
        defaults = {
            "title": f"Item {counter['n']}",
            "price": 1000,
            "images": [f"products/{counter['n']}.webp"],
            "size": "M",
            "condition": "good",
            "location": "Beograd",
            "status": "active",
            "seller_id": seller.id,
            "created_at": base_time + timedelta(minutes=counter["n"]),
        }
        defaults.update(fields)
        product = Product(**defaults)
        db.add(product)
        db.commit()
        return product

    return _make_product


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        token = create_access_token({"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
