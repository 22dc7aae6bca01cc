"""
Test configuration and fixtures.

Provides:
- In-memory SQLite schema, rebuilt for every test
- Celery in eager mode so notification tasks run inline
- User/property factories and bearer-token headers
- A fake push provider that records what would have been sent
"""
import os
from collections.abc import Generator
from decimal import Decimal

# Settings are read once and cached; configure before importing the app.
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["ENVIRONMENT"] = "test"
os.environ["FIREBASE_PROJECT_ID"] = ""
os.environ["FIREBASE_CLIENT_EMAIL"] = ""
os.environ["FIREBASE_PRIVATE_KEY"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from marketplace.core.database import Base, SessionLocal, engine
from marketplace.core.security import create_access_token
from marketplace.main import app
from marketplace.models import (
    BrokerStatus,
    DeviceToken,
    Favorite,
    Property,
    PropertyStatus,
    Purpose,
    User,
    UserRole,
)
from marketplace.services import push
from marketplace.services.push import PushResult


# =============================================================================
# Database
# =============================================================================

@pytest.fixture(autouse=True)
def schema() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(schema) -> Generator[Session, None, None]:
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def client(schema) -> TestClient:
    return TestClient(app)


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture
def make_user(db: Session):
    counter = {"n": 0}

    def _make(role: UserRole = UserRole.client, broker_status: BrokerStatus | None = None, **extra) -> User:
        counter["n"] += 1
        if role == UserRole.broker and broker_status is None:
            broker_status = BrokerStatus.approved
        user = User(
            full_name=extra.pop("full_name", f"User {counter['n']}"),
            email=extra.pop("email", f"user{counter['n']}@example.com"),
            role=role,
            broker_status=broker_status,
            **extra,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def admin(make_user) -> User:
    return make_user(UserRole.admin, full_name="Admin")


@pytest.fixture
def broker(make_user) -> User:
    return make_user(UserRole.broker, full_name="Broker")


@pytest.fixture
def make_property(db: Session, broker: User):
    def _make(**fields) -> Property:
        values = {
            "title": "Apartamento Centro",
            "property_type": "apartamento",
            "purpose": Purpose.sale_and_rent,
            "status": PropertyStatus.approved,
            "price": Decimal("300000"),
            "broker_id": broker.id,
        }
        values.update(fields)
        prop = Property(**values)
        db.add(prop)
        db.commit()
        db.refresh(prop)
        return prop

    return _make


@pytest.fixture
def favorite(db: Session):
    def _favorite(user: User, prop: Property) -> Favorite:
        row = Favorite(user_id=user.id, property_id=prop.id)
        db.add(row)
        db.commit()
        return row

    return _favorite


@pytest.fixture
def device_token(db: Session):
    def _token(user: User, token: str) -> DeviceToken:
        row = DeviceToken(user_id=user.id, fcm_token=token, platform="android")
        db.add(row)
        db.commit()
        return row

    return _token


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(user.id), user.role.value)}"}


# =============================================================================
# Push provider
# =============================================================================

class FakePushProvider:
    """Records every batch; tokens listed in ``failures`` fail with that error code."""

    def __init__(self, failures: dict[str, str] | None = None):
        self.failures = failures or {}
        self.batches: list[list[str]] = []
        self.messages = []

    def send_each(self, tokens, message):
        self.batches.append(list(tokens))
        self.messages.append(message)
        return [
            PushResult(success=False, error_code=self.failures[token])
            if token in self.failures
            else PushResult(success=True)
            for token in tokens
        ]


@pytest.fixture
def push_provider(monkeypatch) -> FakePushProvider:
    provider = FakePushProvider()
    monkeypatch.setattr(push, "get_push_provider", lambda: provider)
    return provider
