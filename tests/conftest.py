"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timezone
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

import cashbook.models  # noqa: F401
from cashbook.core.config import Settings
from cashbook.core.database import Base
from cashbook.core.dependencies import get_db
from cashbook.main import app
from cashbook.services.ledger_store import LedgerStore
from cashbook.services.storage_service import StorageService

TENANT = "tenant-a"
FIXED_NOW = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)


# In-memory database shared by every connection of a test
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create tables and yield a session; everything is dropped afterwards"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> Generator[TestClient, None, None]:
    """FastAPI test client bound to the test session"""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def tenant_headers() -> dict:
    return {"X-Tenant-ID": TENANT}


@pytest.fixture
def settings() -> Settings:
    return Settings(DATABASE_URL="sqlite://")


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def store(db: Session) -> LedgerStore:
    return LedgerStore(db, TENANT)


@pytest.fixture
def storage(db: Session) -> StorageService:
    return StorageService(db, TENANT)
