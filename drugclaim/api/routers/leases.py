"""
Lease endpoints - acquire/renew and release.

POST is used both for the first acquisition and for every heartbeat; the
only difference is whether the caller already has a holder_token.
"""
from fastapi import APIRouter, Depends

from drugclaim.api.schemas.lease import LeaseAcquire, LeaseRelease, LeaseResponse, ReleaseResponse
from drugclaim.api.services.dependencies import get_lease_manager
from drugclaim.api.services.lease_manager import LeaseManager

router = APIRouter(prefix="/api/v1/leases", tags=["leases"])


@router.post("", response_model=LeaseResponse)
def acquire_lease(
    lease_data: LeaseAcquire,
    manager: LeaseManager = Depends(get_lease_manager)
):
    """
    Acquire or renew a lease.

    Returns 404 for unknown resources and 409 when the resource is inactive,
    already assigned, or reserved by another holder.
    """
    grant = manager.acquire(lease_data.resource_key, lease_data.holder_token)
    return grant


@router.delete("", response_model=ReleaseResponse)
def release_lease(
    release_data: LeaseRelease,
    manager: LeaseManager = Depends(get_lease_manager)
):
    """Release a lease. Always succeeds; unknown or foreign leases are ignored."""
    released = manager.release(release_data.resource_key, release_data.holder_token)
    return {"released": released}
