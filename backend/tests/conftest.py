"""Pytest configuration and shared fixtures."""

import os

# Must be set before quiz_engine is imported: settings and the engine read them
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = os.environ.get("TEST_DATABASE_URL", "sqlite://")

import random
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from quiz_engine.common.clock import FrozenClock
from quiz_engine.core.dependencies import get_session_service
from quiz_engine.db.base import Base, import_models
from quiz_engine.db.engine import engine
from quiz_engine.db.session import get_db
from quiz_engine.main import app
from quiz_engine.services.session_engine import QuizSessionService
from tests.helpers.db import rollback_session
from tests.helpers.seed import START


@pytest.fixture(scope="session", autouse=True)
def schema() -> Generator[None, None, None]:
    """Create all tables once."""
    import_models()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a test database session with transaction rollback."""
    with rollback_session() as session:
        yield session


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(START)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def service(db, clock, rng) -> QuizSessionService:
    return QuizSessionService(db, clock=clock, rng=rng)


@pytest.fixture
def client(db, clock, rng) -> Generator[TestClient, None, None]:
    """Test client sharing the test's database session and clock."""

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_service] = lambda: QuizSessionService(db, clock=clock, rng=rng)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
