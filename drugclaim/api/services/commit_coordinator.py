"""
Commit coordinator - promotes a live lease into a permanent assignment.

One transaction: validate resource, ledger and lease, insert the assignment,
delete the lease. The unique constraints on assignments are the last word;
a violation at flush time is reclassified into the matching Conflict.
"""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from drugclaim.api.core.errors import (
    ClaimError,
    Conflict,
    ConflictReason,
    StoreError,
    conflict_from_integrity_error,
)
from drugclaim.api.core.logging import short_token
from drugclaim.api.models.assignment import Assignment
from drugclaim.api.models.lease import Lease
from drugclaim.api.schemas.assignment import ClaimantPayload
from drugclaim.api.schemas.lease import normalize_resource_key
from drugclaim.api.services.audit_service import audit_log
from drugclaim.api.services.clock import Clock, utcnow
from drugclaim.api.services.resource_registry import ResourceRegistry

logger = logging.getLogger(__name__)


def claimant_label(payload: ClaimantPayload) -> str:
    return f"group {payload.course_group} / team {payload.team_number}"


class CommitCoordinator:
    """Atomic lease -> assignment transition."""

    def __init__(self, db: Session, clock: Clock = utcnow):
        self.db = db
        self.clock = clock
        self.registry = ResourceRegistry(db)

    def commit(
        self,
        resource_key: str,
        holder_token: str,
        payload: ClaimantPayload,
        ip_address: Optional[str] = None
    ) -> Assignment:
        """
        Write the assignment for resource_key if holder_token owns its live lease.

        Raises:
            NotFound: Unknown resource
            Unavailable: Resource inactive
            Conflict(ALREADY_ASSIGNED): Resource already has an assignment
            Conflict(RESERVATION_MISSING): No live lease for this token
            Conflict(DUPLICATE_CLAIMANT): Claimant already has an assignment
            StoreError: Store failure
        """
        key = normalize_resource_key(resource_key)
        now = self.clock()

        try:
            resource = self.registry.require_active(key)

            # Ledger first: once assigned, every later attempt reports it.
            taken = self.db.query(Assignment).filter(Assignment.resource_key == key).first()
            if taken:
                raise Conflict(
                    ConflictReason.ALREADY_ASSIGNED,
                    f"This resource is already taken by Team {taken.team_number}."
                )

            lease = self.db.query(Lease).filter(
                Lease.resource_key == key,
                Lease.holder_token == holder_token,
                Lease.expires_at > now
            ).with_for_update().first()
            if not lease:
                raise Conflict(ConflictReason.RESERVATION_MISSING)

            duplicate = self.db.query(Assignment.id).filter(
                Assignment.course_group == payload.course_group,
                Assignment.team_number == payload.team_number
            ).first()
            if duplicate:
                raise Conflict(ConflictReason.DUPLICATE_CLAIMANT)

            assignment = Assignment(
                resource_key=key,
                resource_name=resource.name,
                course_group=payload.course_group,
                team_number=payload.team_number,
                leader_name=payload.leader_name,
                leader_email=payload.leader_email,
                leader_phone=payload.leader_phone,
                students=[s.model_dump() for s in payload.students],
            )
            self.db.add(assignment)
            self.db.flush()

            # The lease may have been replaced between the read and here.
            deleted = self.db.query(Lease).filter(
                Lease.resource_key == key,
                Lease.holder_token == holder_token,
                Lease.expires_at > now
            ).delete(synchronize_session=False)
            if deleted != 1:
                raise Conflict(ConflictReason.RESERVATION_MISSING)

            audit_log(
                db=self.db,
                resource_key=key,
                event_type="ASSIGNMENT_COMMITTED",
                actor=claimant_label(payload),
                details={
                    "assignment_id": str(assignment.id),
                    "course_group": payload.course_group,
                    "team_number": payload.team_number,
                    "student_count": len(payload.students)
                },
                ip_address=ip_address
            )

            self.db.commit()
            self.db.refresh(assignment)

        except IntegrityError as e:
            self.db.rollback()
            conflict = conflict_from_integrity_error(e, ConflictReason.ALREADY_ASSIGNED)
            logger.warning(f"Commit lost a race: resource={key}, reason={conflict.reason.value}")
            raise conflict from e
        except Conflict as e:
            self.db.rollback()
            logger.info(f"Commit rejected: resource={key}, holder={short_token(holder_token)}, reason={e.reason.value}")
            raise
        except ClaimError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Store failure committing resource={key}: {e}")
            raise StoreError("Failed to save submission.") from e

        logger.info(f"Assignment committed: resource={key}, {claimant_label(payload)}, id={assignment.id}")
        return assignment
