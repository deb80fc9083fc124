"""
Assignment endpoint - commit a held lease into a permanent assignment.
"""
from fastapi import APIRouter, Depends, Request

from drugclaim.api.core.security import get_client_ip
from drugclaim.api.schemas.assignment import AssignmentCommit, AssignmentCommitResponse
from drugclaim.api.services.commit_coordinator import CommitCoordinator
from drugclaim.api.services.dependencies import get_commit_coordinator

router = APIRouter(prefix="/api/v1/assignments", tags=["assignments"])


@router.post("", response_model=AssignmentCommitResponse, status_code=201)
def commit_assignment(
    commit_data: AssignmentCommit,
    request: Request,
    coordinator: CommitCoordinator = Depends(get_commit_coordinator)
):
    """
    Commit the caller's reservation.

    The holder_token must own a live lease on resource_key. On success the
    lease is gone and the resource is permanently assigned.
    """
    assignment = coordinator.commit(
        resource_key=commit_data.resource_key,
        holder_token=commit_data.holder_token,
        payload=commit_data.claimant_payload,
        ip_address=get_client_ip(request)
    )

    return {"message": "Group submission saved successfully.", "assignment": assignment}
