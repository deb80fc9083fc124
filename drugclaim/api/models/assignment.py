"""
Assignment model - the permanent ledger of resource -> claimant.

Both uniqueness constraints are enforced by the store; application checks in
the commit coordinator only exist to produce a nicer error earlier.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, UniqueConstraint
from sqlalchemy import Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
import uuid
from drugclaim.api.db.base import Base


class Assignment(Base):
    __tablename__ = "assignments"
    __table_args__ = (
        UniqueConstraint("resource_key", name="uq_assignments_resource_key"),
        UniqueConstraint("course_group", "team_number", name="uq_assignments_claimant"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    resource_key = Column(String(64), ForeignKey("resources.key", ondelete="RESTRICT"), nullable=False)
    resource_name = Column(String(255), nullable=False)

    # Claimant identity
    course_group = Column(Integer, nullable=False, default=1)
    team_number = Column(Integer, nullable=False)

    leader_name = Column(String(255), nullable=False)
    leader_email = Column(String(320), nullable=False)
    leader_phone = Column(String(64), nullable=False)
    students = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)  # [{student_id, student_name}]

    created_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
