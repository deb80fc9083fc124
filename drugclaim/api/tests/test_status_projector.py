import pytest

from drugclaim.api.models.lease import Lease
from drugclaim.api.models.resource import Resource
from drugclaim.api.services.commit_coordinator import CommitCoordinator
from drugclaim.api.services.lease_manager import LeaseManager
from drugclaim.api.services.status_projector import ResourceState, StatusProjector


@pytest.fixture
def manager(db, clock):
    return LeaseManager(db, ttl_seconds=600, clock=clock)


@pytest.fixture
def projector(db, clock):
    return StatusProjector(db, clock=clock)


def states(statuses):
    return {s.resource.key: s.state for s in statuses}


def test_fresh_catalogue_is_free_except_inactive(projector):
    statuses = projector.get_statuses()

    assert [s.resource.key for s in statuses] == ["drug-01", "drug-02", "drug-03", "drug-99"]
    assert states(statuses) == {
        "drug-01": ResourceState.FREE,
        "drug-02": ResourceState.FREE,
        "drug-03": ResourceState.FREE,
        "drug-99": ResourceState.INACTIVE,
    }


def test_caller_sees_own_lease_with_expiry(manager, projector):
    grant = manager.acquire("drug-01")

    mine = {s.resource.key: s for s in projector.get_statuses(grant.holder_token)}
    assert mine["drug-01"].state == ResourceState.LEASED_BY_CALLER
    assert mine["drug-01"].lease_expires_at == grant.expires_at

    theirs = {s.resource.key: s for s in projector.get_statuses("other-token")}
    assert theirs["drug-01"].state == ResourceState.LEASED_BY_OTHER
    assert theirs["drug-01"].lease_expires_at is None


def test_no_caller_token_never_yields_leased_by_caller(manager, projector):
    manager.acquire("drug-01")

    assert states(projector.get_statuses())["drug-01"] == ResourceState.LEASED_BY_OTHER
    assert states(projector.get_statuses("   "))["drug-01"] == ResourceState.LEASED_BY_OTHER


def test_expired_lease_shows_free_and_is_purged(manager, projector, db, clock):
    manager.acquire("drug-02")
    clock.advance(600)

    assert states(projector.get_statuses())["drug-02"] == ResourceState.FREE
    assert db.query(Lease).count() == 0


def test_assignment_wins_over_everything(manager, projector, db, clock, payload):
    grant = manager.acquire("drug-03")
    CommitCoordinator(db, clock=clock).commit("drug-03", grant.holder_token, payload)

    status = {s.resource.key: s for s in projector.get_statuses(grant.holder_token)}["drug-03"]
    assert status.state == ResourceState.ASSIGNED

    as_dict = status.to_dict()
    assert as_dict["is_assigned"] is True
    assert as_dict["is_leased"] is False
    assert as_dict["assigned_by"]["team_number"] == 7
    assert as_dict["assigned_by"]["course_group"] == 1


def deactivate(db, key):
    db.query(Resource).filter(Resource.key == key).update({Resource.is_active: False}, synchronize_session=False)
    db.commit()


def test_assigned_resource_stays_assigned_after_deactivation(manager, projector, db, clock, payload):
    grant = manager.acquire("drug-01")
    CommitCoordinator(db, clock=clock).commit("drug-01", grant.holder_token, payload)
    deactivate(db, "drug-01")

    status = {s.resource.key: s for s in projector.get_statuses()}["drug-01"]
    assert status.state == ResourceState.ASSIGNED
    assert status.to_dict()["is_active"] is False


def test_live_lease_outranks_inactive_flag(manager, projector, db):
    grant = manager.acquire("drug-02")
    deactivate(db, "drug-02")

    assert states(projector.get_statuses(grant.holder_token))["drug-02"] == ResourceState.LEASED_BY_CALLER
    assert states(projector.get_statuses())["drug-02"] == ResourceState.LEASED_BY_OTHER


def test_status_dict_flags(manager, projector):
    grant = manager.acquire("drug-01")

    as_dict = {s.resource.key: s for s in projector.get_statuses(grant.holder_token)}["drug-01"].to_dict()
    assert as_dict["state"] == "leased_by_caller"
    assert as_dict["is_leased"] is True
    assert as_dict["leased_by_caller"] is True
    assert as_dict["assigned_by"] is None
