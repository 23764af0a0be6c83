"""Field Mutators — atomic-increment, set-union, set-remove and delete sentinels for document writes.

Invariants:
    - apply_write is PURE: returns a new dict (or None for delete), never mutates its input
    - Mutators resolve against the value stored at commit time, not the caller's snapshot
    - update() on an absent document raises ResourceNotFoundError
    - Dotted keys in update() address nested maps ("recyclingRequest.status")

Design Decisions:
    - Sentinels are plain frozen dataclasses so writes stay JSON-like until commit
    - SERVER_TIMESTAMP resolves to an ISO-8601 UTC string (documents are stored as JSON)
"""

import copy
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from uemp.core.errors import ResourceNotFoundError


@dataclass(frozen=True)
class Increment:
    amount: int | float = 1


@dataclass(frozen=True)
class ArrayUnion:
    values: tuple

    def __init__(self, *values: Any):
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class ArrayRemove:
    values: tuple

    def __init__(self, *values: Any):
        object.__setattr__(self, "values", tuple(values))


class _Sentinel:
    def __init__(self, name: str):
        self._name = name

    def __repr__(self) -> str:
        return self._name


DELETE_FIELD = _Sentinel("DELETE_FIELD")
SERVER_TIMESTAMP = _Sentinel("SERVER_TIMESTAMP")


@dataclass(frozen=True)
class WriteOp:
    """One buffered write. kind is 'set', 'update' or 'delete'."""
    kind: str
    fields: dict | None = None
    merge: bool = False


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _resolve(current: Any, value: Any, now: str) -> Any:
    if isinstance(value, Increment):
        base = current if isinstance(current, (int, float)) and not isinstance(current, bool) else 0
        return base + value.amount
    if isinstance(value, ArrayUnion):
        result = list(current) if isinstance(current, list) else []
        for v in value.values:
            if v not in result:
                result.append(v)
        return result
    if isinstance(value, ArrayRemove):
        if not isinstance(current, list):
            return []
        return [v for v in current if v not in value.values]
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, dict):
        base = current if isinstance(current, dict) else {}
        return _merge(base, value, now)
    return value


def _merge(base: dict, fields: dict, now: str) -> dict:
    result = dict(base)
    for key, value in fields.items():
        if value is DELETE_FIELD:
            result.pop(key, None)
        else:
            result[key] = _resolve(result.get(key), value, now)
    return result


def _strip(fields: dict, now: str) -> dict:
    """Resolve sentinels for a non-merge set: no prior value is visible."""
    result = {}
    for key, value in fields.items():
        if value is DELETE_FIELD:
            continue
        result[key] = _resolve(None, value, now)
    return result


def _update_dotted(base: dict, fields: dict, now: str) -> dict:
    result = copy.deepcopy(base)
    for dotted, value in fields.items():
        parts = dotted.split(".")
        node = result
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        leaf = parts[-1]
        if value is DELETE_FIELD:
            node.pop(leaf, None)
        else:
            node[leaf] = _resolve(node.get(leaf), value, now)
    return result


def apply_write(
    current: dict | None, op: WriteOp, path: str, now: str | None = None,
) -> dict | None:
    """Apply one buffered write to the stored document. Pure."""
    now = now or utc_now_iso()
    if op.kind == "delete":
        return None
    if op.kind == "set":
        if op.merge and current is not None:
            return _merge(current, op.fields or {}, now)
        return _strip(op.fields or {}, now)
    if op.kind == "update":
        if current is None:
            raise ResourceNotFoundError("Document", path)
        return _update_dotted(current, op.fields or {}, now)
    raise ValueError(f"unknown write kind: {op.kind}")
