"""Domain Types — status enums shared by the registry, matching and request log.

Invariants:
    - All valid states encoded as Enums — no raw string matching
    - ACTIVE excludes recycleStatus started/finished (shared filter for registry and matching)

Design Decisions:
    - str Enums: serialize into JSON documents without custom encoders
"""

from enum import Enum


class RequestStatus(str, Enum):
    """Recycling request approval axis. ACCEPTED and REJECTED are terminal."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class RecycleStatus(str, Enum):
    """Physical recycling axis — monotonic, never reverses."""
    UNINITIATED = "uninitiated"
    STARTED = "started"
    FINISHED = "finished"


INACTIVE_RECYCLE_STATUSES: frozenset[str] = frozenset({
    RecycleStatus.STARTED.value, RecycleStatus.FINISHED.value,
})


def is_active_recycle_status(value: str | None) -> bool:
    """A product is active until recycling has started. Missing counts as uninitiated."""
    return (value or RecycleStatus.UNINITIATED.value) not in INACTIVE_RECYCLE_STATUSES
