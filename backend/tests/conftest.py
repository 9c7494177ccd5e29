"""
Test configuration and fixtures.
"""
import os

# Must be set before dashboard.config is imported: no Redis, no on-disk database
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import datetime
from typing import Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dashboard.db import Base, get_db
from dashboard.models import Project, Sender
from dashboard.schemas import LogResponse, MessageResponse
from dashboard.sync.client import ProjectApiError
from dashboard.utils.cache import cache
from dashboard.utils.clock import utcnow

# Test database URL (in-memory SQLite)
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

# Create test engine
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Create test session
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def no_redis(monkeypatch):
    """Every test runs with the list cache in pass-through mode."""
    monkeypatch.setattr(cache, "client", None)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def app(db_session):
    """The FastAPI app with get_db bound to the test session."""
    from dashboard.main import app as fastapi_app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    fastapi_app.dependency_overrides[get_db] = override_get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client(app):
    """Create a test client with database session override."""
    from fastapi.testclient import TestClient

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def project(db_session):
    """A single active project."""
    project = Project(name="Newsletter", prompt="Grow a newsletter to 1k subscribers")
    db_session.add(project)
    db_session.commit()
    db_session.refresh(project)
    return project


class FakeProjectApi:
    """In-memory ProjectApi that records calls and can be told to fail."""

    def __init__(self):
        self.messages: Dict[int, List[MessageResponse]] = {}
        self.logs: Dict[int, List[LogResponse]] = {}
        self.calls: List[str] = []
        self.fail_creates = False
        self.fail_reads = False
        self._next_id = 1

    def _id(self) -> int:
        value = self._next_id
        self._next_id += 1
        return value

    def seed_message(
        self,
        project_id: int,
        content: str,
        sender: Sender,
        timestamp: datetime,
        metadata: Optional[dict] = None,
    ) -> MessageResponse:
        message = MessageResponse(
            id=self._id(),
            project_id=project_id,
            content=content,
            sender=sender,
            metadata=metadata,
            timestamp=timestamp,
        )
        self.messages.setdefault(project_id, []).append(message)
        return message

    async def create_message(self, project_id, content, sender, metadata=None):
        self.calls.append("create_message")
        if self.fail_creates:
            raise ProjectApiError("Service unavailable", status_code=503)
        return self.seed_message(project_id, content, Sender(sender), utcnow(), metadata)

    async def create_log(self, project_id, log_type, title, details=None):
        self.calls.append("create_log")
        if self.fail_creates:
            raise ProjectApiError("Service unavailable", status_code=503)
        log = LogResponse(
            id=self._id(),
            project_id=project_id,
            type=log_type,
            title=title,
            details=details,
            timestamp=utcnow(),
        )
        self.logs.setdefault(project_id, []).append(log)
        return log

    async def list_messages(self, project_id):
        self.calls.append("list_messages")
        if self.fail_reads:
            raise ProjectApiError("Service unavailable", status_code=503)
        return sorted(self.messages.get(project_id, []), key=lambda m: (m.timestamp, m.id))

    async def list_logs(self, project_id):
        self.calls.append("list_logs")
        if self.fail_reads:
            raise ProjectApiError("Service unavailable", status_code=503)
        return sorted(self.logs.get(project_id, []), key=lambda log: (log.timestamp, log.id), reverse=True)


@pytest.fixture
def fake_api():
    return FakeProjectApi()
