"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, configure_engine, get_db
from integrations.market_data_protocol import StaticPriceSource
from integrations.storage_protocol import LocalStatementStorage
from main import app
from api.imports import get_import_service
from api.transactions import get_transaction_service
from services.balance_service import BalanceService
from services.statement_import_service import StatementImportService
from services.transaction_service import TransactionService
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    asset_class,
    bank_account,
    credit_card,
    investment_account,
    other_user_account,
    price_source,
    statement_storage,
    user_id,
)


@pytest.fixture(name="db")
def db_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_engine(engine)
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="client")
def client_fixture(
    db,
    statement_storage: LocalStatementStorage,
    price_source: StaticPriceSource,
):
    """Create a test client with the test database and a temporary upload dir."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    def override_get_import_service():
        return StatementImportService(storage=statement_storage)

    def override_get_transaction_service():
        return TransactionService(BalanceService(price_source=price_source))

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_import_service] = override_get_import_service
    app.dependency_overrides[get_transaction_service] = override_get_transaction_service
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="headers")
def headers_fixture(user_id: str) -> dict:
    """Request headers scoping API calls to the test user."""
    return {"X-User-Id": user_id}
