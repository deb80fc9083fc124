"""
Claim service HTTP client.

Claimants (and the heartbeat driver) use this client to talk to the control
plane. Error responses are raised as ClaimClientError subclasses so callers
can tell a rejection apart from a transport failure, which surfaces as
requests.RequestException.
"""
import requests
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


class ClaimClientError(Exception):
    """The service answered with an error status."""

    def __init__(self, status_code: int, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.reason = reason


class InvalidRequestError(ClaimClientError):
    """400 - malformed request, never retried."""


class ResourceNotFoundError(ClaimClientError):
    """404 - unknown resource."""


class ResourceUnavailableError(ClaimClientError):
    """409 without a conflict reason - resource inactive."""


class ReservationConflictError(ClaimClientError):
    """409 - lease contention, expired reservation, duplicate assignment or claimant."""


class ServiceError(ClaimClientError):
    """5xx - store or server failure; the whole operation may be retried."""


def error_from_response(response: requests.Response) -> ClaimClientError:
    """Build the matching ClaimClientError for a non-2xx response."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    message = body.get("detail") or response.reason or f"HTTP {response.status_code}"
    if not isinstance(message, str):
        message = str(message)
    reason = body.get("reason")
    status = response.status_code

    if status == 400:
        return InvalidRequestError(status, message)
    if status == 404:
        return ResourceNotFoundError(status, message)
    if status == 409:
        if body.get("error") == "unavailable":
            return ResourceUnavailableError(status, message)
        return ReservationConflictError(status, message, reason)
    if status >= 500:
        return ServiceError(status, message)
    return ClaimClientError(status, message, reason)


class ClaimClient:
    """HTTP client for the claim control plane."""

    def __init__(self, base_url: str = "http://localhost:8000/api/v1", timeout: float = 10.0):
        """
        Initialize claim client.

        Args:
            base_url: Base URL for the control plane API
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def _send(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        response = self.session.request(
            method,
            f"{self.base_url}{path}",
            timeout=self.timeout,
            **kwargs
        )
        if not response.ok:
            raise error_from_response(response)
        return response.json()

    def get_statuses(self, holder_token: Optional[str] = None) -> Dict[str, Any]:
        """
        Get the resource board.

        Args:
            holder_token: Caller's token, so its own lease shows as leased_by_caller

        Returns:
            Dict with resources, lease_ttl_seconds and heartbeat_seconds
        """
        params = {"holderToken": holder_token} if holder_token else {}
        return self._send("GET", "/resources", params=params)

    def acquire(self, resource_key: str, holder_token: Optional[str] = None) -> Dict[str, Any]:
        """
        Acquire or renew a lease.

        Args:
            resource_key: Resource to reserve
            holder_token: Token of the lease being renewed, if any

        Returns:
            Dict with resource_key, holder_token and expires_at
        """
        payload = {"resource_key": resource_key, "holder_token": holder_token}
        return self._send("POST", "/leases", json=payload)

    def release(self, resource_key: str, holder_token: str) -> Dict[str, Any]:
        """
        Release a lease (idempotent).

        Args:
            resource_key: Reserved resource
            holder_token: Token of the lease
        """
        payload = {"resource_key": resource_key, "holder_token": holder_token}
        return self._send("DELETE", "/leases", json=payload)

    def commit(self, resource_key: str, holder_token: str, claimant_payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Commit a held lease into an assignment.

        Args:
            resource_key: Reserved resource
            holder_token: Token of the live lease
            claimant_payload: Team details (course_group, team_number, leader_*, students)

        Returns:
            Dict with message and the created assignment
        """
        payload = {
            "resource_key": resource_key,
            "holder_token": holder_token,
            "claimant_payload": claimant_payload
        }

        logger.info(f"Committing reservation for {resource_key}")

        return self._send("POST", "/assignments", json=payload)

    def close(self):
        self.session.close()
