"""
Resource registry - read access to the catalogue of claimable resources.
"""
import logging
from typing import List

from sqlalchemy.orm import Session

from drugclaim.api.core.errors import NotFound, Unavailable
from drugclaim.api.models.resource import Resource
from drugclaim.api.schemas.lease import normalize_resource_key

logger = logging.getLogger(__name__)


def default_catalogue(count: int) -> List[Resource]:
    """The built-in drug list: drug-01 .. drug-NN, all active."""
    resources = []
    for index in range(1, count + 1):
        number = f"{index:02d}"
        resources.append(Resource(
            key=f"drug-{number}",
            name=f"Drug {number}",
            is_active=True,
            sort_order=index,
        ))
    return resources


def seed_default_resources(db: Session, count: int) -> int:
    """
    Insert any missing default resources. Existing rows are left alone.

    Returns:
        Number of rows inserted
    """
    existing = {key for (key,) in db.query(Resource.key).all()}
    missing = [r for r in default_catalogue(count) if r.key not in existing]

    if missing:
        db.add_all(missing)
        db.commit()
        logger.info(f"Seeded {len(missing)} default resource(s)")

    return len(missing)


class ResourceRegistry:
    """Lookup of resources by key."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, resource_key: str) -> Resource:
        """
        Raises:
            NotFound: Unknown resource key
        """
        key = normalize_resource_key(resource_key)
        resource = self.db.query(Resource).filter(Resource.key == key).first()
        if not resource:
            raise NotFound(f"Resource '{key}' not found.")
        return resource

    def require_active(self, resource_key: str) -> Resource:
        """
        Raises:
            NotFound: Unknown resource key
            Unavailable: Resource is inactive
        """
        resource = self.get(resource_key)
        if not resource.is_active:
            raise Unavailable(f"Resource '{resource.key}' is not available for selection.")
        return resource

    def list(self) -> List[Resource]:
        return self.db.query(Resource).order_by(Resource.sort_order.asc(), Resource.key.asc()).all()
