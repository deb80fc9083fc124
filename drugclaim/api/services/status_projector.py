"""
Status projector - what each resource looks like to a given caller.

Priority: assigned (ledger is authoritative), then leased (by the caller or
by someone else), then free or inactive.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from drugclaim.api.core.errors import StoreError
from drugclaim.api.models.assignment import Assignment
from drugclaim.api.models.lease import Lease
from drugclaim.api.models.resource import Resource
from drugclaim.api.services.clock import Clock, utcnow
from drugclaim.api.services.resource_registry import ResourceRegistry

logger = logging.getLogger(__name__)


class ResourceState(str, enum.Enum):
    INACTIVE = "inactive"
    ASSIGNED = "assigned"
    LEASED_BY_CALLER = "leased_by_caller"
    LEASED_BY_OTHER = "leased_by_other"
    FREE = "free"


@dataclass
class ResourceStatus:
    resource: Resource
    state: ResourceState
    assignment: Optional[Assignment] = None
    lease_expires_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        assigned_by = None
        if self.assignment is not None:
            assigned_by = {
                "assignment_id": self.assignment.id,
                "course_group": self.assignment.course_group,
                "team_number": self.assignment.team_number,
            }
        return {
            "key": self.resource.key,
            "name": self.resource.name,
            "is_active": bool(self.resource.is_active),
            "sort_order": self.resource.sort_order,
            "state": self.state.value,
            "is_assigned": self.assignment is not None,
            "assigned_by": assigned_by,
            "is_leased": self.state in (ResourceState.LEASED_BY_CALLER, ResourceState.LEASED_BY_OTHER),
            "leased_by_caller": self.state == ResourceState.LEASED_BY_CALLER,
            "lease_expires_at": self.lease_expires_at,
        }


def project_state(
    resource: Resource,
    assignment: Optional[Assignment],
    lease: Optional[Lease],
    caller_token: Optional[str]
) -> ResourceState:
    if assignment is not None:
        return ResourceState.ASSIGNED
    if lease is not None:
        if caller_token and lease.holder_token == caller_token:
            return ResourceState.LEASED_BY_CALLER
        return ResourceState.LEASED_BY_OTHER
    if not resource.is_active:
        return ResourceState.INACTIVE
    return ResourceState.FREE


class StatusProjector:
    """Joins registry, ledger and live leases into per-resource states."""

    def __init__(self, db: Session, clock: Clock = utcnow):
        self.db = db
        self.clock = clock
        self.registry = ResourceRegistry(db)

    def get_statuses(self, caller_token: Optional[str] = None) -> List[ResourceStatus]:
        """
        Compute the status of every resource for the caller.

        Without a caller token, leased_by_caller is never produced.
        """
        caller_token = (caller_token or "").strip() or None
        now = self.clock()

        try:
            purged = self.db.query(Lease).filter(Lease.expires_at <= now).delete(synchronize_session=False)
            self.db.commit()
            if purged:
                logger.debug(f"Purged {purged} expired lease(s)")

            resources = self.registry.list()
            assignments: Dict[str, Assignment] = {
                a.resource_key: a for a in self.db.query(Assignment).all()
            }
            leases: Dict[str, Lease] = {
                lease.resource_key: lease
                for lease in self.db.query(Lease).filter(Lease.expires_at > now).all()
            }
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Store failure loading resource statuses: {e}")
            raise StoreError("Failed to load resources.") from e

        statuses = []
        for resource in resources:
            assignment = assignments.get(resource.key)
            lease = leases.get(resource.key)
            state = project_state(resource, assignment, lease, caller_token)
            statuses.append(ResourceStatus(
                resource=resource,
                state=state,
                assignment=assignment,
                lease_expires_at=lease.expires_at if state == ResourceState.LEASED_BY_CALLER else None,
            ))
        return statuses
