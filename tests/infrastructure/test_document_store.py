"""SQL document store — reads, buffered writes, optimistic conflicts and retries.

Tests cover:
    - get/set/update/delete and direct-child listing
    - a failing transaction leaves no partial writes
    - a concurrent write to a read document is detected and the transaction re-runs
    - exhausted retries surface TransactionConflictError
    - domain errors are not retried
    - driver failures map to DatabaseError
"""

import pytest

from uemp.core.errors import (
    DatabaseError, InternalError, ResourceNotFoundError, TransactionConflictError,
)
from uemp.core.field_ops import Increment
from uemp.infrastructure.database import DatabaseSessionManager
from uemp.infrastructure.document_store import SqlDocumentStore


# ─── Basic operations ────────────────────────────────────────────

async def test_get_missing_returns_none(store):
    assert await store.get("recyclers/nobody") is None


async def test_set_update_delete(store):
    await store.set("recyclers/r1", {"address": "A", "location": {"lat": 1, "lng": 2}})
    await store.update("recyclers/r1", {"location.lat": 5})
    assert await store.get("recyclers/r1") == {
        "address": "A", "location": {"lat": 5, "lng": 2},
    }
    await store.delete("recyclers/r1")
    assert await store.get("recyclers/r1") is None


async def test_update_absent_document_is_not_found(store):
    with pytest.raises(ResourceNotFoundError):
        await store.update("recyclers/r1", {"address": "A"})


async def test_list_documents_returns_direct_children_only(store):
    await store.set("recyclers/r2", {"address": "B"})
    await store.set("recyclers/r1", {"address": "A"})
    await store.set("recyclers/r1/products/i1", {"productId": "P1"})
    listed = await store.list_documents("recyclers")
    assert [path for path, _ in listed] == ["recyclers/r1", "recyclers/r2"]


# ─── Transactions ────────────────────────────────────────────────

async def test_failed_transaction_writes_nothing(store):
    async def partial(tx):
        tx.set("recyclers/r1", {"address": "A"})
        tx.update("recyclers/missing", {"address": "B"})

    with pytest.raises(ResourceNotFoundError):
        await store.run_transaction(partial)
    assert await store.get("recyclers/r1") is None


async def test_read_after_write_is_rejected(store):
    async def misordered(tx):
        tx.set("recyclers/r1", {"address": "A"})
        await tx.get("recyclers/r1")

    with pytest.raises(InternalError):
        await store.run_transaction(misordered)


async def test_concurrent_write_is_detected_and_retried(store):
    await store.set("counters/c1", {"n": 0})
    attempts = 0

    async def bump(tx):
        nonlocal attempts
        attempts += 1
        doc = await tx.get("counters/c1")
        if attempts == 1:
            await store.update("counters/c1", {"n": Increment(10)})
        tx.set("counters/c1", {"n": doc["n"] + 1})
        return doc["n"]

    seen = await store.run_transaction(bump)
    assert attempts == 2
    assert seen == 10
    assert (await store.get("counters/c1"))["n"] == 11


async def test_concurrent_insert_is_detected(store):
    attempts = 0

    async def create(tx):
        nonlocal attempts
        attempts += 1
        existing = await tx.get("counters/c2")
        if attempts == 1:
            await store.set("counters/c2", {"n": 100})
        tx.set("counters/c2", {"n": (existing or {}).get("n", 0) + 1})

    await store.run_transaction(create)
    assert attempts == 2
    assert (await store.get("counters/c2"))["n"] == 101


async def test_read_only_document_change_is_a_conflict(store):
    await store.set("counters/guard", {"open": True})
    attempts = 0

    async def guarded(tx):
        nonlocal attempts
        attempts += 1
        guard = await tx.get("counters/guard")
        if attempts == 1:
            await store.set("counters/guard", {"open": False})
        if guard["open"]:
            tx.set("counters/written", {"by": "guarded"})

    await store.run_transaction(guarded)
    assert attempts == 2
    assert await store.get("counters/written") is None


async def test_exhausted_retries_raise_conflict(db_manager):
    store = SqlDocumentStore(db_manager.session_factory, max_attempts=3, base_delay_ms=0)
    await store.set("counters/c3", {"n": 0})
    attempts = 0

    async def always_loses(tx):
        nonlocal attempts
        attempts += 1
        await tx.get("counters/c3")
        await store.update("counters/c3", {"n": Increment(1)})
        tx.update("counters/c3", {"n": Increment(1)})

    with pytest.raises(TransactionConflictError):
        await store.run_transaction(always_loses)
    assert attempts == 3
    assert (await store.get("counters/c3"))["n"] == 3


async def test_domain_error_is_not_retried(store):
    attempts = 0

    async def refuses(tx):
        nonlocal attempts
        attempts += 1
        raise ResourceNotFoundError("Product", "SN1")

    with pytest.raises(ResourceNotFoundError):
        await store.run_transaction(refuses)
    assert attempts == 1


def test_backoff_is_bounded_with_jitter(store):
    store.base_delay_ms = 100
    store.max_delay_ms = 1000
    first = store._calculate_backoff(1)
    assert 0.075 <= first <= 0.125
    assert store._calculate_backoff(20) <= 1.25


async def test_missing_table_maps_to_database_error(tmp_path):
    manager = DatabaseSessionManager(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    store = SqlDocumentStore(manager.session_factory)
    try:
        with pytest.raises(DatabaseError):
            await store.get("recyclers/r1")
        with pytest.raises(DatabaseError):
            await store.set("recyclers/r1", {"address": "A"})
    finally:
        await manager.dispose()
