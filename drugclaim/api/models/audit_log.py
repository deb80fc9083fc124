"""
Audit log model - immutable record of ledger changes.
"""
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy import Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
import uuid
from drugclaim.api.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    resource_key = Column(String(64), nullable=True, index=True)

    event_type = Column(String(100), nullable=False, index=True)
    # EVENT_TYPES: ASSIGNMENT_COMMITTED, ASSIGNMENT_DELETED

    actor = Column(String(255), nullable=False)  # claimant summary, admin, system

    details = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)

    timestamp = Column(DateTime, server_default=func.now(), nullable=False, index=True)

    ip_address = Column(String(45), nullable=True)  # IPv4 or IPv6
