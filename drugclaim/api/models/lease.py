"""
Lease model - at most one row per resource key.

A row whose expires_at is at or before "now" is semantically absent: reads
ignore it and writes may replace it. Timestamps are naive UTC.
"""
from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy import Uuid
from sqlalchemy.sql import func
import uuid
from drugclaim.api.db.base import Base


class Lease(Base):
    __tablename__ = "leases"
    __table_args__ = (
        UniqueConstraint("resource_key", name="uq_leases_resource_key"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    resource_key = Column(String(64), ForeignKey("resources.key", ondelete="CASCADE"), nullable=False)
    holder_token = Column(String(128), nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    acquired_at = Column(DateTime, server_default=func.now(), nullable=False)
