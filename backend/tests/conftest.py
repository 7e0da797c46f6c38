"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.dependencies import get_gocardless_client
from database import Base, get_db
from main import app
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    USER_ID,
    bank_account,
    linked_connection,
    utc_now,
)
from tests.fixtures.mocks import MockGoCardlessClient


@pytest.fixture(name="db")
def db_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def mock_gocardless() -> MockGoCardlessClient:
    """A mock aggregator client with the default 4-per-day budget."""
    return MockGoCardlessClient()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"X-User-Id": USER_ID}


@pytest.fixture(name="client")
def client_fixture(db, mock_gocardless):
    """Create a test client with the test database and mock aggregator."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gocardless_client] = lambda: mock_gocardless
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
