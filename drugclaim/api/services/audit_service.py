"""
Audit logging service.

Entries are added to the caller's session and written by the caller's
commit, so an audit row exists exactly when the change it describes does.
"""
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session
from drugclaim.api.models.audit_log import AuditLog


def audit_log(
    db: Session,
    resource_key: Optional[str],
    event_type: str,
    actor: str,
    details: Dict[str, Any],
    ip_address: Optional[str] = None
) -> AuditLog:
    """
    Stage an audit log entry in the current transaction.

    Args:
        db: Database session (not committed here)
        resource_key: Affected resource, if any
        event_type: Event type (ASSIGNMENT_COMMITTED, ASSIGNMENT_DELETED)
        actor: Actor performing the action (team summary, admin, system)
        details: Event-specific details
        ip_address: Optional IP address

    Returns:
        Pending AuditLog instance
    """
    log_entry = AuditLog(
        resource_key=resource_key,
        event_type=event_type,
        actor=actor,
        details=details,
        ip_address=ip_address
    )

    db.add(log_entry)

    return log_entry
