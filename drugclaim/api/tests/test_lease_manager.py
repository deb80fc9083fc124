import threading
from datetime import timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from drugclaim.api.core.errors import Conflict, ConflictReason, NotFound, Unavailable, classify_integrity_error
from drugclaim.api.db.base import Base
from drugclaim.api.models.assignment import Assignment
from drugclaim.api.models.lease import Lease
from drugclaim.api.services.lease_manager import LeaseManager
from drugclaim.api.services.resource_registry import seed_default_resources

TTL = 600


@pytest.fixture
def manager(db, clock):
    return LeaseManager(db, ttl_seconds=TTL, clock=clock)


def lease_rows(db, key):
    return db.query(Lease).filter(Lease.resource_key == key).all()


def test_acquire_free_resource_issues_token(manager, db, clock):
    grant = manager.acquire("drug-01")

    assert grant.resource_key == "drug-01"
    assert grant.holder_token
    assert grant.expires_at == clock.now + timedelta(seconds=TTL)
    assert grant.renewed is False

    rows = lease_rows(db, "drug-01")
    assert len(rows) == 1
    assert rows[0].holder_token == grant.holder_token


def test_acquire_normalizes_key(manager):
    grant = manager.acquire("  DRUG-02 ")
    assert grant.resource_key == "drug-02"


def test_second_holder_is_rejected_without_touching_the_lease(manager, db, clock):
    first = manager.acquire("drug-01")
    clock.advance(30)

    with pytest.raises(Conflict) as exc_info:
        manager.acquire("drug-01")
    assert exc_info.value.reason == ConflictReason.RESERVED_BY_OTHER

    with pytest.raises(Conflict) as exc_info:
        manager.acquire("drug-01", "someone-elses-token")
    assert exc_info.value.reason == ConflictReason.RESERVED_BY_OTHER

    rows = lease_rows(db, "drug-01")
    assert len(rows) == 1
    assert rows[0].holder_token == first.holder_token
    assert rows[0].expires_at == first.expires_at


def test_renewal_extends_expiry(manager, db, clock):
    first = manager.acquire("drug-01")
    clock.advance(120)

    renewed = manager.acquire("drug-01", first.holder_token)

    assert renewed.renewed is True
    assert renewed.holder_token == first.holder_token
    assert renewed.expires_at == clock.now + timedelta(seconds=TTL)
    assert lease_rows(db, "drug-01")[0].expires_at == renewed.expires_at


def test_expired_lease_is_treated_as_absent(manager, db, clock):
    first = manager.acquire("drug-01")
    clock.advance(TTL)

    second = manager.acquire("drug-01")

    assert second.holder_token != first.holder_token
    rows = lease_rows(db, "drug-01")
    assert len(rows) == 1
    assert rows[0].holder_token == second.holder_token

    with pytest.raises(Conflict) as exc_info:
        manager.acquire("drug-01", first.holder_token)
    assert exc_info.value.reason == ConflictReason.RESERVED_BY_OTHER


def test_expired_holder_can_reacquire_free_resource(manager, clock):
    first = manager.acquire("drug-01")
    clock.advance(TTL + 5)

    again = manager.acquire("drug-01", first.holder_token)

    assert again.holder_token == first.holder_token
    assert again.renewed is False
    assert again.expires_at == clock.now + timedelta(seconds=TTL)


def test_leases_on_different_resources_are_independent(manager):
    a = manager.acquire("drug-01")
    b = manager.acquire("drug-02")
    assert a.holder_token != b.holder_token


def test_unknown_resource_is_not_found(manager):
    with pytest.raises(NotFound):
        manager.acquire("drug-42")


def test_inactive_resource_is_unavailable(manager, db):
    with pytest.raises(Unavailable):
        manager.acquire("drug-99")
    assert lease_rows(db, "drug-99") == []


def test_assigned_resource_cannot_be_leased(manager, db):
    db.add(Assignment(
        resource_key="drug-03",
        resource_name="Drug 03",
        course_group=1,
        team_number=4,
        leader_name="Noa",
        leader_email="noa@example.org",
        leader_phone="050",
        students=[{"student_id": "1", "student_name": "Noa"}],
    ))
    db.commit()

    with pytest.raises(Conflict) as exc_info:
        manager.acquire("drug-03")
    assert exc_info.value.reason == ConflictReason.ALREADY_ASSIGNED


def test_release_is_idempotent(manager, db):
    grant = manager.acquire("drug-01")

    assert manager.release("drug-01", grant.holder_token) is True
    assert lease_rows(db, "drug-01") == []
    assert manager.release("drug-01", grant.holder_token) is False
    assert manager.release("drug-02", "never-issued") is False


def test_release_with_foreign_token_keeps_lease(manager, db):
    grant = manager.acquire("drug-01")

    assert manager.release("drug-01", "not-the-holder") is False
    assert lease_rows(db, "drug-01")[0].holder_token == grant.holder_token


def test_released_resource_can_be_taken_immediately(manager):
    first = manager.acquire("drug-01")
    manager.release("drug-01", first.holder_token)

    second = manager.acquire("drug-01")
    assert second.holder_token != first.holder_token


def test_purge_expired_only_removes_dead_rows(manager, db, clock):
    manager.acquire("drug-01")
    clock.advance(300)
    live = manager.acquire("drug-02")
    clock.advance(300)

    removed = manager.purge_expired(clock.now)
    db.commit()

    assert removed == 1
    assert [row.resource_key for row in db.query(Lease).all()] == ["drug-02"]
    assert manager.find_live("drug-02").holder_token == live.holder_token
    assert manager.find_live("drug-01") is None


def test_store_enforces_one_lease_row_per_resource(db, clock):
    expires_at = clock.now + timedelta(seconds=TTL)
    db.add(Lease(resource_key="drug-01", holder_token="token-a", expires_at=expires_at, acquired_at=clock.now))
    db.commit()

    db.add(Lease(resource_key="drug-01", holder_token="token-b", expires_at=expires_at, acquired_at=clock.now))
    with pytest.raises(IntegrityError) as exc_info:
        db.flush()
    db.rollback()

    assert classify_integrity_error(exc_info.value) == ConflictReason.RESERVED_BY_OTHER
    assert [row.holder_token for row in lease_rows(db, "drug-01")] == ["token-a"]


def test_concurrent_acquires_grant_exactly_one(tmp_path, clock):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'claims.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    setup = factory()
    seed_default_resources(setup, 1)
    setup.close()

    barrier = threading.Barrier(2)
    outcomes = []

    def contend(holder_token):
        session = factory()
        try:
            barrier.wait()
            LeaseManager(session, ttl_seconds=TTL, clock=clock).acquire("drug-01", holder_token)
            outcomes.append("ok")
        except Conflict as e:
            assert e.reason == ConflictReason.RESERVED_BY_OTHER
            outcomes.append("Conflict")
        finally:
            session.close()

    threads = [threading.Thread(target=contend, args=(token,)) for token in ("token-a", "token-b")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(outcomes) == ["Conflict", "ok"]

    check = factory()
    assert check.query(Lease).filter(Lease.resource_key == "drug-01").count() == 1
    check.close()
    engine.dispose()
