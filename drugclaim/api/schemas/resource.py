"""
Resource status schemas (Pydantic).
"""
from pydantic import BaseModel, UUID4
from datetime import datetime
from typing import List, Optional

from drugclaim.api.schemas.assignment import AssignmentResponse


class AssignedBy(BaseModel):
    assignment_id: UUID4
    course_group: int
    team_number: int


class ResourceStatusResponse(BaseModel):
    key: str
    name: str
    is_active: bool
    sort_order: int
    state: str  # inactive, assigned, leased_by_caller, leased_by_other, free
    is_assigned: bool
    assigned_by: Optional[AssignedBy] = None
    is_leased: bool
    leased_by_caller: bool
    lease_expires_at: Optional[datetime] = None  # only for the caller's own lease


class ResourceBoardResponse(BaseModel):
    resources: List[ResourceStatusResponse]
    lease_ttl_seconds: int
    heartbeat_seconds: int


class AdminOverviewResponse(BaseModel):
    resources: List[ResourceStatusResponse]
    assignments: List[AssignmentResponse]
