"""Root conftest for all tests.

Provides an isolated in-memory database per test and helpers for seeding
templates.
"""

from contextlib import contextmanager

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.models import Base, WorkoutTemplate

# Modules that import get_session directly and must see the test session
_SESSION_CONSUMERS = ("app.db.session", "app.calendar.service", "cli.cli")


@pytest.fixture(scope="function")
def db_session(monkeypatch):
    """
    Provides a transactional in-memory SQLite DB session for tests.

    This fixture:
    - Creates an isolated in-memory SQLite database per test
    - Patches the engine getters to return the test engine
    - Patches get_session() to yield the test session
    - Rolls back one outer transaction at the end instead of deleting rows

    Usage:
        def test_something(db_session):
            db_session.add(AssignedWorkout(...))
            db_session.flush()
    """
    # StaticPool keeps the single in-memory database visible to TestClient's worker thread
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    monkeypatch.setattr("app.db.session._get_engine", lambda: engine)
    monkeypatch.setattr("app.db.session.get_engine", lambda: engine)

    Base.metadata.create_all(engine)

    connection = engine.connect()
    transaction = connection.begin()
    test_session_local = sessionmaker(bind=connection, autoflush=False)
    session = test_session_local()

    @contextmanager
    def mock_get_session():
        yield session
        session.flush()

    for module in _SESSION_CONSUMERS:
        monkeypatch.setattr(f"{module}.get_session", mock_get_session)

    try:
        yield session
    finally:
        session.close()
        if transaction.is_active:
            transaction.rollback()
        connection.close()
        engine.dispose()


@pytest.fixture
def user_id() -> str:
    return "user-1"


@pytest.fixture
def make_template(db_session):
    """Factory that inserts a workout template and returns it."""

    def _make(name: str = "Full Body", exercise_count: int = 3, template_id: str | None = None) -> WorkoutTemplate:
        template = WorkoutTemplate(
            name=name,
            exercises=[{"name": f"Exercise {i}", "sets": 3} for i in range(exercise_count)],
        )
        if template_id is not None:
            template.id = template_id
        db_session.add(template)
        db_session.flush()
        return template

    return _make


@pytest.fixture
def template(make_template) -> WorkoutTemplate:
    return make_template()
