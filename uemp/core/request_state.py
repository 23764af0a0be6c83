"""Recycling Request State Machine — two loosely-coupled axes, validated purely.

Invariants:
    - status: pending → accepted | rejected; both branches terminal
    - recycleStatus: uninitiated → started → finished, one step at a time, never reverses
    - Recycling can only start on an accepted request
    - Functions return nothing on success and raise InvalidTransitionError otherwise
"""

from uemp.core.domain_types import RecycleStatus, RequestStatus
from uemp.core.errors import InvalidTransitionError

_STATUS_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.ACCEPTED, RequestStatus.REJECTED}),
    RequestStatus.ACCEPTED: frozenset(),
    RequestStatus.REJECTED: frozenset(),
}

NEXT_RECYCLE_STATUS: dict[RecycleStatus, RecycleStatus | None] = {
    RecycleStatus.UNINITIATED: RecycleStatus.STARTED,
    RecycleStatus.STARTED: RecycleStatus.FINISHED,
    RecycleStatus.FINISHED: None,
}


def is_terminal_status(status: RequestStatus) -> bool:
    return not _STATUS_TRANSITIONS[status]


def check_status_transition(current: RequestStatus, target: RequestStatus) -> None:
    if target not in _STATUS_TRANSITIONS[current]:
        raise InvalidTransitionError("status", current.value, target.value)


def check_recycle_transition(
    current: RecycleStatus, target: RecycleStatus, request_status: RequestStatus,
) -> None:
    if NEXT_RECYCLE_STATUS[current] is not target:
        raise InvalidTransitionError("recycleStatus", current.value, target.value)
    if target is RecycleStatus.STARTED and request_status is not RequestStatus.ACCEPTED:
        raise InvalidTransitionError(
            "recycleStatus", current.value, target.value,
        )
