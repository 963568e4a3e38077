"""
Shared fixtures for the EduTrack API test suite.

Every test gets a fresh in-memory SQLite database wired into the app through
a `get_db` dependency override.
"""
import os

# Must be set before the app modules read their settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timezone
from typing import Generator

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app as api
from app.sdk.retry_queue import RetryQueue


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across threads for one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory) -> Generator[TestClient, None, None]:
    """TestClient bound to the test database."""
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    api.dependency_overrides[get_db] = override_get_db
    yield TestClient(api)
    api.dependency_overrides.clear()


@pytest.fixture
def asgi_transport(client) -> httpx.ASGITransport:
    """Transport that lets the capture client talk to the app in-process."""
    return httpx.ASGITransport(app=api)


@pytest.fixture
def retry_queue(tmp_path) -> RetryQueue:
    return RetryQueue(tmp_path / "failed_clickstream_events.json")


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)

