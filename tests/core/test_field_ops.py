"""Field Mutators — tests for pure write application.

Tests cover:
    - set without merge replaces, set with merge deep-merges
    - Increment / ArrayUnion / ArrayRemove resolve against the stored value
    - DELETE_FIELD and SERVER_TIMESTAMP sentinels
    - update uses dotted paths and refuses absent documents
    - apply_write never mutates its input
"""

import pytest

from uemp.core.errors import ResourceNotFoundError
from uemp.core.field_ops import (
    DELETE_FIELD, SERVER_TIMESTAMP, ArrayRemove, ArrayUnion, Increment, WriteOp,
    apply_write,
)

NOW = "2026-01-01T00:00:00+00:00"


# ─── set ─────────────────────────────────────────────────────────

def test_set_replaces_document():
    result = apply_write({"a": 1, "b": 2}, WriteOp("set", {"a": 5}), "c/d", NOW)
    assert result == {"a": 5}


def test_set_merge_keeps_other_fields_and_merges_maps():
    current = {"a": 1, "loc": {"lat": 1.0, "lng": 2.0}}
    op = WriteOp("set", {"loc": {"lat": 9.0}, "b": 2}, merge=True)
    assert apply_write(current, op, "c/d", NOW) == {
        "a": 1, "b": 2, "loc": {"lat": 9.0, "lng": 2.0},
    }


def test_set_on_absent_document_strips_delete_sentinel():
    op = WriteOp("set", {"a": DELETE_FIELD, "b": 1, "t": SERVER_TIMESTAMP})
    assert apply_write(None, op, "c/d", NOW) == {"b": 1, "t": NOW}


def test_increment_on_new_document_starts_from_zero():
    assert apply_write(None, WriteOp("set", {"n": Increment(3)}), "c/d", NOW) == {"n": 3}


# ─── update ──────────────────────────────────────────────────────

def test_update_absent_document_raises_not_found():
    with pytest.raises(ResourceNotFoundError):
        apply_write(None, WriteOp("update", {"a": 1}), "c/d", NOW)


def test_update_increment_and_array_ops():
    current = {"userCount": 1, "registeredUsers": ["u1"]}
    added = apply_write(current, WriteOp("update", {
        "userCount": Increment(1), "registeredUsers": ArrayUnion("u2", "u1"),
    }), "c/d", NOW)
    assert added == {"userCount": 2, "registeredUsers": ["u1", "u2"]}

    removed = apply_write(added, WriteOp("update", {
        "userCount": Increment(-1), "registeredUsers": ArrayRemove("u1"),
    }), "c/d", NOW)
    assert removed == {"userCount": 1, "registeredUsers": ["u2"]}


def test_update_dotted_path_touches_only_the_leaf():
    current = {"recyclingRequest": {"status": "pending", "queryId": "q1"}}
    result = apply_write(
        current, WriteOp("update", {"recyclingRequest.status": "accepted"}), "c/d", NOW,
    )
    assert result == {"recyclingRequest": {"status": "accepted", "queryId": "q1"}}


def test_update_delete_field_removes_key():
    result = apply_write(
        {"registeredBy": "u1", "x": 1}, WriteOp("update", {"registeredBy": DELETE_FIELD}),
        "c/d", NOW,
    )
    assert result == {"x": 1}


def test_apply_write_does_not_mutate_input():
    current = {"nested": {"a": 1}, "list": ["x"]}
    apply_write(current, WriteOp("update", {"nested.a": 2, "list": ArrayUnion("y")}), "c/d", NOW)
    assert current == {"nested": {"a": 1}, "list": ["x"]}


def test_delete_returns_none():
    assert apply_write({"a": 1}, WriteOp("delete"), "c/d", NOW) is None
