"""
Lease manager - time-bounded exclusive holds on resources.

Every write is a single conditional statement or a unique-constrained
insert inside one transaction, so any number of API processes can run
against the same store without in-process coordination:

- Renewal is an UPDATE guarded by (resource_key, holder_token, expires_at > now).
- First acquisition is an INSERT; the unique constraint on resource_key
  rejects it when another live lease exists.
- Expired rows for the key are deleted first, in the same transaction,
  so they never block an insert.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
import logging
import uuid

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from drugclaim.api.core.config import settings
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
from drugclaim.api.schemas.lease import normalize_resource_key
from drugclaim.api.services.clock import Clock, utcnow
from drugclaim.api.services.resource_registry import ResourceRegistry

logger = logging.getLogger(__name__)


@dataclass
class LeaseGrant:
    resource_key: str
    holder_token: str
    expires_at: datetime
    renewed: bool = False


def generate_holder_token() -> str:
    return str(uuid.uuid4())


class LeaseManager:
    """Acquire, renew and release leases against the lease store."""

    def __init__(self, db: Session, ttl_seconds: Optional[int] = None, clock: Clock = utcnow):
        self.db = db
        self.ttl = timedelta(seconds=ttl_seconds or settings.LEASE_TTL_SECONDS)
        self.clock = clock
        self.registry = ResourceRegistry(db)

    def purge_expired(self, now: datetime, resource_key: Optional[str] = None) -> int:
        """
        Delete leases with expires_at <= now. Does not commit.

        Returns:
            Number of rows removed
        """
        query = self.db.query(Lease).filter(Lease.expires_at <= now)
        if resource_key is not None:
            query = query.filter(Lease.resource_key == resource_key)
        return query.delete(synchronize_session=False)

    def find_live(self, resource_key: str, now: Optional[datetime] = None) -> Optional[Lease]:
        """Return the non-expired lease for a key, if any."""
        now = now or self.clock()
        return self.db.query(Lease).filter(
            Lease.resource_key == normalize_resource_key(resource_key),
            Lease.expires_at > now
        ).first()

    def acquire(self, resource_key: str, holder_token: Optional[str] = None) -> LeaseGrant:
        """
        Acquire or renew the lease on a resource.

        Supplying the token of the current live lease extends it; supplying
        no token (or an unknown one) only succeeds if no live lease exists.
        A rejected attempt leaves the existing lease untouched.

        Raises:
            NotFound: Unknown resource
            Unavailable: Resource inactive
            Conflict(ALREADY_ASSIGNED): Resource has an assignment
            Conflict(RESERVED_BY_OTHER): Another holder has a live lease
            StoreError: Store failure
        """
        key = normalize_resource_key(resource_key)
        now = self.clock()
        expires_at = now + self.ttl

        try:
            self.registry.require_active(key)

            assigned = self.db.query(Assignment.id).filter(Assignment.resource_key == key).first()
            if assigned:
                raise Conflict(ConflictReason.ALREADY_ASSIGNED)

            self.purge_expired(now, key)

            if holder_token:
                renewed = self.db.query(Lease).filter(
                    Lease.resource_key == key,
                    Lease.holder_token == holder_token,
                    Lease.expires_at > now
                ).update({Lease.expires_at: expires_at}, synchronize_session=False)

                if renewed:
                    self.db.commit()
                    logger.debug(f"Lease renewed: resource={key}, holder={short_token(holder_token)}")
                    return LeaseGrant(key, holder_token, expires_at, renewed=True)

            token = holder_token or generate_holder_token()
            self.db.add(Lease(resource_key=key, holder_token=token, expires_at=expires_at, acquired_at=now))
            self.db.flush()
            self.db.commit()

        except IntegrityError as e:
            self.db.rollback()
            logger.info(f"Lease rejected: resource={key} is reserved by another holder")
            raise conflict_from_integrity_error(e, ConflictReason.RESERVED_BY_OTHER) from e
        except ClaimError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Lease store failure acquiring resource={key}: {e}")
            raise StoreError("Failed to reserve resource.") from e

        logger.info(f"Lease acquired: resource={key}, holder={short_token(token)}, expires_at={expires_at.isoformat()}")
        return LeaseGrant(key, token, expires_at)

    def release(self, resource_key: str, holder_token: str) -> bool:
        """
        Delete the lease if it is live and held by holder_token.

        Missing, foreign and expired leases are a silent no-op.

        Returns:
            True if a row was deleted (informational only)
        """
        key = normalize_resource_key(resource_key)
        now = self.clock()

        try:
            deleted = self.db.query(Lease).filter(
                Lease.resource_key == key,
                Lease.holder_token == holder_token,
                Lease.expires_at > now
            ).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Lease store failure releasing resource={key}: {e}")
            raise StoreError("Failed to release reservation.") from e

        if deleted:
            logger.info(f"Lease released: resource={key}, holder={short_token(holder_token)}")
        else:
            logger.debug(f"Release no-op: resource={key}, holder={short_token(holder_token)}")
        return bool(deleted)
