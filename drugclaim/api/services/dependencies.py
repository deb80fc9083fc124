"""
FastAPI dependencies wiring services to the request's session.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from drugclaim.api.db.session import get_db
from drugclaim.api.services.clock import Clock, utcnow
from drugclaim.api.services.commit_coordinator import CommitCoordinator
from drugclaim.api.services.lease_manager import LeaseManager
from drugclaim.api.services.status_projector import StatusProjector


def get_clock() -> Clock:
    return utcnow


def get_lease_manager(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> LeaseManager:
    return LeaseManager(db, clock=clock)


def get_commit_coordinator(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> CommitCoordinator:
    return CommitCoordinator(db, clock=clock)


def get_status_projector(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> StatusProjector:
    return StatusProjector(db, clock=clock)
