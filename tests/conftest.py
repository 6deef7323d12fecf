"""
Test configuration for pytest
"""

import os
from datetime import datetime
from typing import Generator

import pytest

# Test environment variables, set before the app reads its config
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ["TEMPLATE_FALLBACK_MODE"] = "system_default"
os.environ.pop("NOTIFICATION_GATEWAY_URL", None)

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app import models_automation, models_recurring, models_templates  # noqa: E402, F401
from app.config import TENANT_HEADER  # noqa: E402
from app.database import Base, enable_sqlite_foreign_keys, get_db  # noqa: E402
from app.models import Client, User  # noqa: E402

# One shared in-memory connection so every session sees the same tables
test_engine = create_engine(
    "sqlite://",
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(test_engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a clean database session for each test"""
    Base.metadata.create_all(test_engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(test_engine)


def make_user(db: Session, email: str, tier: str = "free", **extra) -> User:
    user = User(
        email=email,
        business_name="Sparky Bros Electrical",
        first_name="Dave",
        trade_type="electrical",
        subscription_tier=tier,
        usage_reset_date=datetime.utcnow(),
        **extra,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def user(db: Session) -> User:
    """A free tier tenant"""
    return make_user(db, "dave@sparkybros.com.au")


@pytest.fixture
def pro_user(db: Session) -> User:
    return make_user(db, "owner@pipeworks.com.au", tier="pro")


@pytest.fixture
def customer(db: Session, pro_user: User) -> Client:
    """A client belonging to pro_user"""
    client = Client(
        user_id=pro_user.id,
        name="Karen Smith",
        email="karen@example.com",
        phone="+61412345678",
        address="12 Wattle St, Newtown NSW 2042",
    )
    db.add(client)
    db.commit()
    db.refresh(client)
    return client


@pytest.fixture
def api(db: Session) -> Generator[TestClient, None, None]:
    """TestClient whose requests share the test session"""
    from app.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def pro_headers(pro_user: User) -> dict:
    return {TENANT_HEADER: str(pro_user.id)}


@pytest.fixture
def free_headers(user: User) -> dict:
    return {TENANT_HEADER: str(user.id)}
