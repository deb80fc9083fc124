"""
Shared fixtures: an in-memory SQLite store, a controllable clock and a
TestClient wired to both.
"""
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from drugclaim.api.db.base import Base
from drugclaim.api.db.session import get_db
from drugclaim.api.main import app
from drugclaim.api.models.assignment import Assignment  # noqa: F401
from drugclaim.api.models.audit_log import AuditLog  # noqa: F401
from drugclaim.api.models.lease import Lease  # noqa: F401
from drugclaim.api.models.resource import Resource
from drugclaim.api.schemas.assignment import ClaimantPayload
from drugclaim.api.services.dependencies import get_clock
from drugclaim.api.services.resource_registry import seed_default_resources


class FakeClock:
    """Naive-UTC clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 9, 0, 0))


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db = factory()
    seed_default_resources(db, 3)
    db.add(Resource(key="drug-99", name="Drug 99", is_active=False, sort_order=99))
    db.commit()
    db.close()

    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory, clock):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_payload(team_number: int = 7, course_group: int = 1, **overrides) -> dict:
    payload = {
        "course_group": course_group,
        "team_number": team_number,
        "leader_name": "Dana Levi",
        "leader_email": "Dana.Levi@Example.org",
        "leader_phone": "050-1234567",
        "students": [
            {"student_id": "301234567", "student_name": "Dana Levi"},
            {"student_id": "309876543", "student_name": "Omer Katz"},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def payload():
    return ClaimantPayload(**make_payload())


@pytest.fixture
def claimant_data():
    """Factory for raw claimant payload dicts."""
    return make_payload
