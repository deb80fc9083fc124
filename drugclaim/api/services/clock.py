"""
Wall clock used by every lease decision.

All timestamps in the stores are naive UTC. Services take a clock callable
so expiry can be driven deterministically in tests.
"""
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
