"""Pytest fixtures and configuration for taskcycle tests."""

import os

# The app's module-level engine must not touch a file database during tests.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from datetime import date, datetime, timedelta, timezone
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from taskcycle.database.database import Base, build_engine
from taskcycle.database import models  # noqa: F401
from taskcycle.database.repository import TaskRepository
from taskcycle.database.subtask_repository import SubtaskRepository
from taskcycle.database.notification_repository import NotificationRepository
from taskcycle.models.task import Task, TaskStatus
from taskcycle.models.task_factory import new_series_id
from taskcycle.notifications.throttle import InvocationThrottle


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

# 10:00 on Monday 2025-10-20 in UTC+8
FIXED_NOW = datetime(2025, 10, 20, 2, 0, tzinfo=timezone.utc)
FIXED_TODAY = date(2025, 10, 20)


class FakeClock:
    """Settable clock for throttle and evaluator tests."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(scope="function")
def db_session():
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test.
    """
    # Create engine with StaticPool for in-memory database; foreign keys are enforced
    engine = build_engine(TEST_DATABASE_URL, poolclass=StaticPool, echo=False)

    # Create all tables
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def task_repository(db_session: Session):
    return TaskRepository(db_session)


@pytest.fixture
def subtask_repository(db_session: Session):
    return SubtaskRepository(db_session)


@pytest.fixture
def notification_repository(db_session: Session):
    return NotificationRepository(db_session)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def throttle(clock):
    return InvocationThrottle(window=timedelta(minutes=5), clock=clock)


@pytest.fixture
def sample_task_base():
    """Base task data for creating test tasks.

    Returns a dict with default task attributes that can be overridden.
    """
    now = datetime.utcnow()
    return {
        "title": "Test Task",
        "description": "Test description",
        "priority": 5,
        "project_id": 1,
        "status": TaskStatus.ONGOING,
        "due_date": FIXED_TODAY,
        "owner_id": 1,
        "collaborators": [2],
        "created_at": now,
        "updated_at": now,
    }


@pytest.fixture
def make_task(task_repository, sample_task_base):
    """Persist a task built from sample_task_base with overrides."""

    def _make(**overrides) -> Task:
        return task_repository.create(Task(**{**sample_task_base, **overrides}))

    return _make


@pytest.fixture
def make_recurring_task(make_task):
    """Persist the first occurrence of a recurring series."""

    def _make(pattern="weekly", **overrides) -> Task:
        fields = {
            "is_recurring": True,
            "recurrence_pattern": pattern,
            "recurrence_interval": 1,
            "recurrence_count": 1,
            "recurrence_series_id": new_series_id(),
        }
        fields.update(overrides)
        return make_task(**fields)

    return _make


@pytest.fixture
def test_client(db_session: Session, clock, throttle):
    """Create a FastAPI test client with overridden database, clock and throttle dependencies."""
    from taskcycle.api.app import app, get_clock, get_deadline_throttle
    from taskcycle.database.database import get_db

    # Override the get_db dependency to use our test database session
    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_deadline_throttle] = lambda: throttle

    with TestClient(app) as client:
        yield client

    # Clean up dependency overrides
    app.dependency_overrides.clear()
