import pytest
from pydantic import ValidationError

from drugclaim.api.core.config import Settings
from drugclaim.api.schemas.assignment import AssignmentCommit, ClaimantPayload
from drugclaim.api.schemas.lease import LeaseAcquire, LeaseRelease


def test_claimant_payload_normalizes_fields(claimant_data):
    payload = ClaimantPayload(**claimant_data(
        leader_name="  Dana Levi ",
        students=[
            {"student_id": " 301 ", "student_name": " Dana "},
            {"student_id": "302", "student_name": ""},
            {"student_id": "", "student_name": "Nobody"},
        ],
    ))

    assert payload.leader_name == "Dana Levi"
    assert payload.leader_email == "dana.levi@example.org"
    assert [(s.student_id, s.student_name) for s in payload.students] == [("301", "Dana")]


def test_course_group_defaults_to_one(claimant_data):
    data = claimant_data()
    del data["course_group"]
    assert ClaimantPayload(**data).course_group == 1


@pytest.mark.parametrize("overrides", [
    {"team_number": 0},
    {"team_number": 21},
    {"course_group": 5},
    {"leader_name": "   "},
    {"leader_phone": ""},
    {"leader_email": "dana@"},
    {"students": []},
    {"students": [{"student_id": "1", "student_name": ""}]},
    {"students": [{"student_id": str(i), "student_name": f"S{i}"} for i in range(26)]},
])
def test_claimant_payload_rejects(claimant_data, overrides):
    with pytest.raises(ValidationError):
        ClaimantPayload(**claimant_data(**overrides))


def test_team_number_is_required(claimant_data):
    data = claimant_data()
    del data["team_number"]
    with pytest.raises(ValidationError):
        ClaimantPayload(**data)


def test_lease_acquire_cleans_input():
    lease = LeaseAcquire(resource_key=" Drug-07 ", holder_token="  ")
    assert lease.resource_key == "drug-07"
    assert lease.holder_token is None


def test_release_and_commit_require_token(claimant_data):
    with pytest.raises(ValidationError):
        LeaseRelease(resource_key="drug-01", holder_token="   ")
    with pytest.raises(ValidationError):
        AssignmentCommit(resource_key="drug-01", holder_token="", claimant_payload=claimant_data())


def test_heartbeat_must_fit_three_times_in_ttl():
    assert Settings(LEASE_TTL_SECONDS=90, HEARTBEAT_INTERVAL_SECONDS=30).HEARTBEAT_INTERVAL_SECONDS == 30

    with pytest.raises(ValidationError):
        Settings(LEASE_TTL_SECONDS=60, HEARTBEAT_INTERVAL_SECONDS=30)
    with pytest.raises(ValidationError):
        Settings(HEARTBEAT_INTERVAL_SECONDS=0)


def test_async_database_url_is_made_sync():
    config = Settings(DATABASE_URL="postgresql+asyncpg://u:p@db/claims")
    assert config.sync_database_url == "postgresql+psycopg2://u:p@db/claims"
