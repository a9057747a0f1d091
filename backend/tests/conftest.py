"""Shared test fixtures."""

import os

# The app engine must never touch a real database file during tests
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

import uuid
from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tally.database import Base
from tally.dependencies import get_db
from tally.main import app
from tally.models.category import Category
from tally.models.transaction import Transaction

OWNER_ID = "owner-1"
OTHER_OWNER_ID = "owner-2"


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test using in-memory SQLite."""
    # Use StaticPool to ensure all connections use the same in-memory database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    # Create session
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def owner_headers():
    return {"X-Owner-Id": OWNER_ID}


@pytest.fixture
def add_transaction(db_session):
    """Factory for persisted transactions."""
    def _add(
        amount="10.00",
        currency="USD",
        occurred_at=datetime(2025, 1, 15),
        owner_id=OWNER_ID,
        description="Coffee",
        category=None,
        created_at=None,
    ):
        txn = Transaction(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            amount=Decimal(str(amount)),
            currency=currency,
            description=description,
            category_id=category.id if category else None,
            category_name=category.name if category else None,
            occurred_at=occurred_at,
            created_at=created_at or datetime(2025, 1, 1, 12, 0, 0),
        )
        db_session.add(txn)
        db_session.commit()
        return txn

    return _add


@pytest.fixture
def add_category(db_session):
    """Factory for persisted categories."""
    def _add(name="Groceries", color=None, owner_id=OWNER_ID):
        category = Category(id=str(uuid.uuid4()), owner_id=owner_id, name=name, color=color)
        db_session.add(category)
        db_session.commit()
        db_session.refresh(category)
        return category

    return _add


@pytest.fixture
def sample_category(add_category):
    """Create a sample category."""
    return add_category(name="Groceries", color="#22c55e")


@pytest.fixture
def sample_transaction(add_transaction, sample_category):
    """Create a sample transaction."""
    return add_transaction(
        amount="50.00",
        currency="USD",
        occurred_at=datetime(2024, 1, 15),
        description="WHOLE FOODS #1234",
        category=sample_category,
    )
