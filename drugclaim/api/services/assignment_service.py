"""
Assignment ledger administration - listing and out-of-band deletion.
"""
import logging
import uuid
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from drugclaim.api.core.errors import Invalid, NotFound, StoreError
from drugclaim.api.models.assignment import Assignment
from drugclaim.api.services.audit_service import audit_log

logger = logging.getLogger(__name__)


class AssignmentService:
    """Admin-side operations on the assignment ledger."""

    def __init__(self, db: Session):
        self.db = db

    def list(self) -> List[Assignment]:
        return self.db.query(Assignment).order_by(Assignment.created_at.asc()).all()

    def delete(self, assignment_id: str, actor: str, ip_address: Optional[str] = None) -> Assignment:
        """
        Delete an assignment, freeing its resource.

        Raises:
            Invalid: assignment_id is not a UUID
            NotFound: No such assignment
        """
        try:
            parsed_id = uuid.UUID(str(assignment_id))
        except ValueError as e:
            raise Invalid("Invalid submission ID.") from e

        assignment = self.db.query(Assignment).filter(Assignment.id == parsed_id).first()
        if not assignment:
            raise NotFound("Submission not found.")

        try:
            self.db.delete(assignment)
            audit_log(
                db=self.db,
                resource_key=assignment.resource_key,
                event_type="ASSIGNMENT_DELETED",
                actor=actor,
                details={
                    "assignment_id": str(assignment.id),
                    "course_group": assignment.course_group,
                    "team_number": assignment.team_number
                },
                ip_address=ip_address
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Store failure deleting assignment {assignment_id}: {e}")
            raise StoreError("Failed to delete submission.") from e

        logger.info(f"Assignment deleted: id={assignment_id}, resource={assignment.resource_key}, by={actor}")
        return assignment
