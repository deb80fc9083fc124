"""
Resource model - a claimable, uniquely-assignable item (a drug).

Rows are created by the catalogue seed or by an external management tool;
the claim protocol only ever reads them.
"""
from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func
from drugclaim.api.db.base import Base


class Resource(Base):
    __tablename__ = "resources"

    key = Column(String(64), primary_key=True)  # slug, e.g. "drug-07"
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0, index=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
