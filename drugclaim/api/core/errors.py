"""
Claim protocol error taxonomy.

Services raise these; main.py turns them into JSON responses. Nothing in here
knows about HTTP beyond the status code each kind maps to.
"""
import enum
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError


class ConflictReason(str, enum.Enum):
    RESERVED_BY_OTHER = "reserved_by_other"
    ALREADY_ASSIGNED = "already_assigned"
    RESERVATION_MISSING = "reservation_missing"
    DUPLICATE_CLAIMANT = "duplicate_claimant"


CONFLICT_MESSAGES: Dict[ConflictReason, str] = {
    ConflictReason.RESERVED_BY_OTHER: "Resource is reserved by another holder.",
    ConflictReason.ALREADY_ASSIGNED: "Resource is already assigned.",
    ConflictReason.RESERVATION_MISSING: "Reservation is missing or expired. Select the resource again.",
    ConflictReason.DUPLICATE_CLAIMANT: "This team number was already submitted.",
}

# Constraint names are the authoritative race resolver, see models/.
CONSTRAINT_REASONS: Dict[str, ConflictReason] = {
    "uq_leases_resource_key": ConflictReason.RESERVED_BY_OTHER,
    "uq_assignments_resource_key": ConflictReason.ALREADY_ASSIGNED,
    "uq_assignments_claimant": ConflictReason.DUPLICATE_CLAIMANT,
}

# SQLite reports the offending columns instead of the constraint name.
SQLITE_COLUMN_REASONS: Dict[str, ConflictReason] = {
    "leases.resource_key": ConflictReason.RESERVED_BY_OTHER,
    "assignments.resource_key": ConflictReason.ALREADY_ASSIGNED,
    "assignments.course_group, assignments.team_number": ConflictReason.DUPLICATE_CLAIMANT,
}


class ClaimError(Exception):
    """Base class for expected protocol outcomes."""

    status_code = 500
    error = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "error": self.error, "reason": None}


class NotFound(ClaimError):
    """Unknown resource (or assignment) key."""

    status_code = 404
    error = "not_found"


class Unavailable(ClaimError):
    """Resource exists but is inactive."""

    status_code = 409
    error = "unavailable"


class Invalid(ClaimError):
    """Malformed input."""

    status_code = 400
    error = "invalid"


class StoreError(ClaimError):
    """Transport or transaction failure in the backing store."""

    status_code = 500
    error = "store_error"


class Conflict(ClaimError):
    """Lease contention, expired reservation, duplicate assignment or claimant."""

    status_code = 409
    error = "conflict"

    def __init__(self, reason: ConflictReason, message: Optional[str] = None):
        super().__init__(message or CONFLICT_MESSAGES[reason])
        self.reason = reason

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["reason"] = self.reason.value
        return payload


def classify_integrity_error(exc: IntegrityError) -> Optional[ConflictReason]:
    """
    Map a uniqueness violation onto the conflict it represents.

    Returns None when the violation is not one of the protocol constraints.
    """
    message = str(exc.orig) if exc.orig is not None else str(exc)

    for constraint, reason in CONSTRAINT_REASONS.items():
        if constraint in message:
            return reason

    # Longest column lists first so the claimant pair wins over single columns.
    for columns in sorted(SQLITE_COLUMN_REASONS, key=len, reverse=True):
        if columns in message:
            return SQLITE_COLUMN_REASONS[columns]

    return None


def conflict_from_integrity_error(exc: IntegrityError, default: ConflictReason) -> Conflict:
    """Reclassify a write-time uniqueness violation as a Conflict."""
    return Conflict(classify_integrity_error(exc) or default)
