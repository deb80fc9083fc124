"""
Admin access guard.

The admin surface is protected by a shared dashboard token sent in the
X-Admin-Token header. Claimants are never authenticated: the holder token
proves lease ownership, not identity.
"""
import hmac
from typing import Optional

from fastapi import Header, HTTPException, Request

from drugclaim.api.core.config import settings


def require_admin(x_admin_token: Optional[str] = Header(default=None)) -> str:
    """
    Dependency for admin-only routes.

    Raises:
        HTTPException(401): Missing or wrong admin token
    """
    token = (x_admin_token or "").strip()
    if not token or not hmac.compare_digest(token, settings.ADMIN_DASHBOARD_TOKEN):
        raise HTTPException(status_code=401, detail="Unauthorized admin request.")
    return "admin"


def get_client_ip(request: Request) -> Optional[str]:
    """
    Get client IP address from request.

    Args:
        request: FastAPI request

    Returns:
        IP address string or None
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
