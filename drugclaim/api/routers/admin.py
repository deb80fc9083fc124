"""
Admin endpoints - overview and out-of-band assignment removal.

All routes require the X-Admin-Token header.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from drugclaim.api.core.security import get_client_ip, require_admin
from drugclaim.api.db.session import get_db
from drugclaim.api.schemas.resource import AdminOverviewResponse
from drugclaim.api.services.assignment_service import AssignmentService
from drugclaim.api.services.dependencies import get_status_projector
from drugclaim.api.services.status_projector import StatusProjector

router = APIRouter(prefix="/api/v1/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/overview", response_model=AdminOverviewResponse)
def get_overview(
    db: Session = Depends(get_db),
    projector: StatusProjector = Depends(get_status_projector)
):
    """All resource states plus every assignment, oldest first."""
    statuses = projector.get_statuses()

    return {
        "resources": [status.to_dict() for status in statuses],
        "assignments": AssignmentService(db).list(),
    }


@router.delete("/assignments/{assignment_id}")
def delete_assignment(
    assignment_id: str,
    request: Request,
    db: Session = Depends(get_db)
):
    """Delete an assignment. The resource becomes free again."""
    AssignmentService(db).delete(assignment_id, actor="admin", ip_address=get_client_ip(request))
    return {"message": "Submission deleted."}
