"""
Resource status endpoint.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from drugclaim.api.core.config import settings
from drugclaim.api.schemas.resource import ResourceBoardResponse
from drugclaim.api.services.dependencies import get_status_projector
from drugclaim.api.services.status_projector import StatusProjector

router = APIRouter(prefix="/api/v1/resources", tags=["resources"])


@router.get("", response_model=ResourceBoardResponse)
def get_statuses(
    holder_token: Optional[str] = Query(default=None, alias="holderToken"),
    projector: StatusProjector = Depends(get_status_projector)
):
    """
    Status of every resource as seen by the caller.

    Passing the caller's holderToken lets its own lease show up as
    leased_by_caller instead of leased_by_other.
    """
    statuses = projector.get_statuses(holder_token)

    return {
        "resources": [status.to_dict() for status in statuses],
        "lease_ttl_seconds": settings.LEASE_TTL_SECONDS,
        "heartbeat_seconds": settings.HEARTBEAT_INTERVAL_SECONDS,
    }
