"""
Heartbeat driver - claimant-side reservation state machine.

    UNHELD -> ACQUIRING -> HELD -> RENEWING -> HELD | LOST
    HELD -> COMMITTING -> COMMITTED | HELD | LOST
    any -> RELEASED (release call sent from a background thread)

While HELD, a background thread renews the lease every interval_sec by
calling acquire again with the held token. A rejection by the service is a
hard LOST (timer stopped, token discarded, on_lost called); a transport or
5xx failure keeps the lease HELD and retries on the next beat unless the
last known expiry has already passed.

Holder tokens are persisted per resource key in a TokenStore so a restarted
claimant can pick its reservation back up.
"""
import enum
import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import requests

from drugclaim.client.claim_client import (
    ClaimClient,
    ClaimClientError,
    ReservationConflictError,
    ServiceError,
)

logger = logging.getLogger(__name__)

DEFAULT_HEARTBEAT_SECONDS = 30


class HoldState(str, enum.Enum):
    UNHELD = "UNHELD"
    ACQUIRING = "ACQUIRING"
    HELD = "HELD"
    RENEWING = "RENEWING"
    LOST = "LOST"
    COMMITTING = "COMMITTING"
    COMMITTED = "COMMITTED"
    RELEASED = "RELEASED"


# RELEASED is reachable from every state and is handled separately.
ALLOWED_TRANSITIONS: Dict[HoldState, List[HoldState]] = {
    HoldState.UNHELD: [HoldState.ACQUIRING],
    HoldState.ACQUIRING: [HoldState.HELD, HoldState.UNHELD],
    HoldState.HELD: [HoldState.RENEWING, HoldState.COMMITTING, HoldState.ACQUIRING],
    HoldState.RENEWING: [HoldState.HELD, HoldState.LOST],
    HoldState.LOST: [HoldState.ACQUIRING],
    HoldState.COMMITTING: [HoldState.COMMITTED, HoldState.HELD, HoldState.LOST],
    HoldState.COMMITTED: [HoldState.ACQUIRING],
    HoldState.RELEASED: [HoldState.ACQUIRING],
}


class InvalidTransition(RuntimeError):
    """Raised when the driver is asked to do something its state forbids."""


class TokenStore:
    """Where holder tokens live between restarts."""

    def get(self, resource_key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, resource_key: str, holder_token: str) -> None:
        raise NotImplementedError

    def clear(self, resource_key: str) -> None:
        raise NotImplementedError


class MemoryTokenStore(TokenStore):
    def __init__(self):
        self._tokens: Dict[str, str] = {}

    def get(self, resource_key: str) -> Optional[str]:
        return self._tokens.get(resource_key)

    def set(self, resource_key: str, holder_token: str) -> None:
        self._tokens[resource_key] = holder_token

    def clear(self, resource_key: str) -> None:
        self._tokens.pop(resource_key, None)


class FileTokenStore(TokenStore):
    """JSON file mapping resource key -> holder token."""

    def __init__(self, path):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable token store {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, tokens: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(tokens, indent=2), encoding="utf-8")

    def get(self, resource_key: str) -> Optional[str]:
        return self._load().get(resource_key)

    def set(self, resource_key: str, holder_token: str) -> None:
        tokens = self._load()
        tokens[resource_key] = holder_token
        self._save(tokens)

    def clear(self, resource_key: str) -> None:
        tokens = self._load()
        if tokens.pop(resource_key, None) is not None:
            self._save(tokens)


def parse_expires_at(value: Optional[str]) -> Optional[datetime]:
    """Parse the service's expires_at into naive UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class HeartbeatDriver:
    """
    Holds at most one reservation and keeps it alive.

    Args:
        client: ClaimClient (or anything with acquire/release/commit)
        interval_sec: Seconds between renewals; well below the lease TTL
        token_store: Token persistence (default: in memory)
        on_lost: Called with (resource_key, error) when the lease is lost
        clock: Naive-UTC clock used for the local expiry check
    """

    def __init__(
        self,
        client: ClaimClient,
        interval_sec: Optional[float] = None,
        token_store: Optional[TokenStore] = None,
        on_lost: Optional[Callable[[str, Exception], None]] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.client = client
        self.interval_sec = interval_sec or DEFAULT_HEARTBEAT_SECONDS
        self.token_store = token_store or MemoryTokenStore()
        self.on_lost = on_lost
        self.clock = clock

        self.state = HoldState.UNHELD
        self.resource_key: Optional[str] = None
        self.holder_token: Optional[str] = None
        self.expires_at: Optional[datetime] = None
        self.last_error: Optional[Exception] = None

        self._lock = threading.RLock()
        self._stop_event: Optional[threading.Event] = None
        self._timer_thread: Optional[threading.Thread] = None
        self._release_thread: Optional[threading.Thread] = None

    @classmethod
    def from_service(cls, client: ClaimClient, **kwargs) -> "HeartbeatDriver":
        """Build a driver using the heartbeat interval advertised by the service."""
        board = client.get_statuses()
        interval = board.get("heartbeat_seconds") or DEFAULT_HEARTBEAT_SECONDS
        return cls(client, interval_sec=interval, **kwargs)

    # -- state -------------------------------------------------------------

    def _set_state(self, new_state: HoldState) -> None:
        if new_state != HoldState.RELEASED and new_state not in ALLOWED_TRANSITIONS.get(self.state, []):
            raise InvalidTransition(
                f"Invalid reservation transition: {self.state.value} → {new_state.value}"
            )
        logger.debug(f"Reservation {self.resource_key}: {self.state.value} → {new_state.value}")
        self.state = new_state

    def _hold(self, grant: Dict[str, Any]) -> None:
        self.resource_key = grant["resource_key"]
        self.holder_token = grant["holder_token"]
        self.expires_at = parse_expires_at(grant.get("expires_at"))
        self.token_store.set(self.resource_key, self.holder_token)
        self._set_state(HoldState.HELD)

    def _forget(self) -> None:
        if self.resource_key:
            self.token_store.clear(self.resource_key)
        self.holder_token = None
        self.expires_at = None

    def _lose(self, error: Exception) -> None:
        key = self.resource_key
        self._stop_timer()
        self._forget()
        self.last_error = error
        self._set_state(HoldState.LOST)
        logger.warning(f"Reservation for {key} lost: {error}")
        if self.on_lost is not None:
            self.on_lost(key, error)

    def _locally_expired(self) -> bool:
        return self.expires_at is not None and self.clock() >= self.expires_at

    # -- timer -------------------------------------------------------------

    def _start_timer(self) -> None:
        self._stop_timer()
        stop_event = threading.Event()
        thread = threading.Thread(
            target=self._run_timer,
            args=(stop_event,),
            name=f"heartbeat-{self.resource_key}",
            daemon=True,
        )
        self._stop_event = stop_event
        self._timer_thread = thread
        thread.start()

    def _stop_timer(self) -> None:
        # Never joins: the timer thread may be the caller, or blocked on _lock.
        if self._stop_event is not None:
            self._stop_event.set()
        self._stop_event = None
        self._timer_thread = None

    def _run_timer(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.interval_sec):
            self.beat()

    @property
    def timer_running(self) -> bool:
        return self._timer_thread is not None and self._timer_thread.is_alive()

    # -- operations --------------------------------------------------------

    def select(self, resource_key: str) -> bool:
        """
        Reserve resource_key, releasing any reservation on a different key.

        Reuses the held token (or a stored one) for the same key, so a
        restarted claimant resumes its lease instead of conflicting with it.
        Only a rejection by the service discards the token; after a
        transport or 5xx failure it stays stored for the next attempt.

        Returns:
            True if the reservation is now held
        """
        key = resource_key.strip().lower()

        with self._lock:
            if self.resource_key and self.resource_key != key and self.holder_token:
                self.release()

            was_held = self.state == HoldState.HELD and self.resource_key == key
            token = self.holder_token if was_held else self.token_store.get(key)

            self._set_state(HoldState.ACQUIRING)
            self.resource_key = key

            try:
                grant = self.client.acquire(key, token)
            except (ServiceError, requests.RequestException) as e:
                self.last_error = e
                if was_held:
                    self._set_state(HoldState.HELD)
                    logger.warning(f"Could not refresh {key}, still holding it: {e}")
                    return True
                self._stop_timer()
                self.holder_token = None
                self.expires_at = None
                self._set_state(HoldState.UNHELD)
                logger.warning(f"Could not reach the service to reserve {key}: {e}")
                return False
            except ClaimClientError as e:
                self._stop_timer()
                self._forget()
                self.last_error = e
                self._set_state(HoldState.UNHELD)
                logger.info(f"Could not reserve {key}: {e}")
                return False

            self.last_error = None
            self._hold(grant)
            self._start_timer()
            logger.info(f"Reserved {key} until {grant.get('expires_at')}")
            return True

    def beat(self) -> bool:
        """
        Renew the held lease once. Called by the timer thread.

        Returns:
            True if the reservation is still held afterwards
        """
        with self._lock:
            if self.state != HoldState.HELD:
                return False

            self._set_state(HoldState.RENEWING)
            try:
                grant = self.client.acquire(self.resource_key, self.holder_token)
            except (ServiceError, requests.RequestException) as e:
                self.last_error = e
                if self._locally_expired():
                    self._lose(e)
                    return False
                logger.warning(f"Heartbeat for {self.resource_key} failed, retrying next beat: {e}")
                self._set_state(HoldState.HELD)
                return True
            except ClaimClientError as e:
                self._lose(e)
                return False

            self._hold(grant)
            return True

    def submit(self, claimant_payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Commit the held reservation.

        A duplicate claimant or an invalid payload leaves the reservation
        HELD (renewal continues); a missing/expired reservation or an
        already-assigned resource makes it LOST.

        Raises:
            InvalidTransition: Nothing is held
            ClaimClientError / requests.RequestException: Commit failed
        """
        with self._lock:
            if self.state != HoldState.HELD:
                raise InvalidTransition(f"Cannot submit while {self.state.value}")

            self._set_state(HoldState.COMMITTING)
            try:
                result = self.client.commit(self.resource_key, self.holder_token, claimant_payload)
            except ReservationConflictError as e:
                self.last_error = e
                if e.reason == "duplicate_claimant":
                    self._set_state(HoldState.HELD)
                else:
                    self._lose(e)
                raise
            except (ClaimClientError, requests.RequestException) as e:
                self.last_error = e
                self._set_state(HoldState.HELD)
                raise

            self._stop_timer()
            self._forget()
            self.last_error = None
            self._set_state(HoldState.COMMITTED)
            logger.info(f"Reservation for {self.resource_key} committed")
            return result

    def release(self) -> None:
        """
        Abandon the reservation. Local state is torn down immediately; the
        release call is sent from a background thread and a failure is only
        logged, the lease expires on its own.
        """
        with self._lock:
            key, token = self.resource_key, self.holder_token
            self._stop_timer()
            self._forget()
            self._set_state(HoldState.RELEASED)

            if not key or not token:
                return

            thread = threading.Thread(
                target=self._deliver_release,
                args=(key, token),
                name=f"release-{key}",
                daemon=True,
            )
            self._release_thread = thread
            thread.start()

    def _deliver_release(self, resource_key: str, holder_token: str) -> None:
        try:
            self.client.release(resource_key, holder_token)
        except (ClaimClientError, requests.RequestException) as e:
            logger.warning(f"Release of {resource_key} not delivered, lease will expire: {e}")
