"""Shared test fixtures: in-memory database, API client and statement files."""

from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import activity_ledger.models  # noqa: F401
from activity_ledger.config import settings
from activity_ledger.database import Base, build_engine, get_db
from activity_ledger.main import app
from activity_ledger.routers.statements import get_quote_provider
from activity_ledger.services.statement_import_service import StatementImportService

FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Rates used by every database-backed test, independent of any .env file
TEST_DEFAULT_RATES = {"USD": Decimal("1.27"), "HKD": Decimal("0.165")}


def load_fixture(name: str) -> bytes:
    return (FIXTURES_DIR / name).read_bytes()


@pytest.fixture
def jan_statement() -> bytes:
    return load_fixture("activity_statement_jan.csv")


@pytest.fixture
def feb_statement() -> bytes:
    return load_fixture("activity_statement_feb.csv")


@pytest.fixture
def session_factory():
    """In-memory SQLite with foreign keys enforced, shared across connections."""
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)

    factory = sessionmaker(
        autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
    )
    yield factory

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def service(db) -> StatementImportService:
    """Import service with fixed base currency and fallback rates."""
    return StatementImportService(db, base_currency="SGD", default_rates=TEST_DEFAULT_RATES)


@pytest.fixture
def quote_provider():
    """Quote provider that knows no symbols unless a test configures it."""
    provider = MagicMock()
    provider.get_quote.return_value = None
    return provider


@pytest.fixture
def client(session_factory, quote_provider, monkeypatch):
    """API client bound to the in-memory database and the mocked quote provider."""
    monkeypatch.setattr(settings, "base_currency", "SGD")
    monkeypatch.setattr(
        settings, "default_fx_rates", {k: float(v) for k, v in TEST_DEFAULT_RATES.items()}
    )

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_quote_provider] = lambda: quote_provider

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
