# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Database session fixtures (in-memory SQLite)
- A configurable mock quote provider
- An API test client wired to both
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from gold_ledger.database import get_db
from gold_ledger.dependencies import get_quote_provider
from gold_ledger.main import app
from gold_ledger.middleware.rate_limit import limiter
from gold_ledger.models import Base
from gold_ledger.services.exceptions import PriceFetchError
from gold_ledger.services.market_data.base import GoldQuote, GoldQuoteProvider


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def db(db_engine) -> Iterator[Session]:
    """Create a database session for testing."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# MOCK QUOTE PROVIDER
# =============================================================================

class MockQuoteProvider(GoldQuoteProvider):
    """
    Mock implementation of GoldQuoteProvider for testing.

    Accounts without a configured price fail with PriceFetchError.
    """

    def __init__(self):
        self._prices: dict[str, Decimal] = {}
        self._errors: dict[str, str] = {}
        self.call_count = 0

    @property
    def name(self) -> str:
        return "mock"

    def set_price(self, account: str, price: Decimal | str) -> None:
        self._prices[account] = Decimal(str(price))

    def set_error(self, account: str, reason: str) -> None:
        self._errors[account] = reason

    def get_quote(self, account: str) -> GoldQuote:
        self.call_count += 1

        if account in self._errors:
            raise PriceFetchError(account, self.name, self._errors[account])
        if account not in self._prices:
            raise PriceFetchError(account, self.name, "no price configured")

        return GoldQuote(
            account=account,
            price=self._prices[account],
            observed_at=datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc),
            provider=self.name,
        )


@pytest.fixture
def quote_provider() -> MockQuoteProvider:
    return MockQuoteProvider()


# =============================================================================
# API CLIENT
# =============================================================================

@pytest.fixture
def client(db: Session, quote_provider: MockQuoteProvider) -> Iterator[TestClient]:
    """Test client using the test session and the mock quote provider."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_quote_provider] = lambda: quote_provider
    limiter.reset()

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
