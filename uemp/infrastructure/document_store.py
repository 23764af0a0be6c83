"""SQL Document Store — transactional, path-addressed JSON documents over async SQLAlchemy.

Invariants:
    - run_transaction(fn): fn reads through the handle, buffers writes; writes hit the
      database only at commit, inside one SQL transaction
    - Commit re-checks the version of every document the transaction read or wrote;
      any mismatch (or a concurrent insert) is a store-level conflict
    - Conflicts roll back and re-run fn (bounded, exponential backoff with jitter);
      exhausted retries raise TransactionConflictError
    - UempError raised by fn aborts immediately: no retry, no writes
    - Other SQLAlchemy failures map to DatabaseError
    - Non-transactional set/update/delete are single-write transactions

Design Decisions:
    - Optimistic version column over SELECT ... FOR UPDATE: same behavior on Postgres
      and SQLite, and conflicts surface as retryable errors rather than lock waits
    - Core statements on the documents table (not ORM entities) so every read bypasses
      the session identity map and sees the committed row
"""

import asyncio
import copy
import logging
import random
from datetime import datetime, timezone
from typing import Awaitable, Callable, TypeVar

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from uemp.core.document_paths import parent_collection
from uemp.core.errors import (
    DatabaseError, InternalError, TransactionConflictError, UempError,
)
from uemp.core.field_ops import WriteOp, apply_write, utc_now_iso
from uemp.models.document import Document

logger = logging.getLogger(__name__)

T = TypeVar("T")

documents = Document.__table__

# Driver messages that mean "another transaction got there first" rather than a fault
_RETRYABLE_DB_MESSAGES: tuple[str, ...] = (
    "database is locked",
    "deadlock detected",
    "could not serialize access",
)


def _is_retryable_db_error(e: SQLAlchemyError) -> bool:
    message = str(e).lower()
    return any(marker in message for marker in _RETRYABLE_DB_MESSAGES)


async def _load_row(session: AsyncSession, path: str):
    result = await session.execute(
        select(documents.c.version, documents.c.data).where(documents.c.path == path),
    )
    return result.first()


class SqlDocumentTransaction:
    """Transaction handle: snapshot reads, buffered writes."""

    def __init__(self, session: AsyncSession):
        self._session = session
        self._read_versions: dict[str, int | None] = {}
        self._snapshots: dict[str, dict | None] = {}
        self._writes: list[tuple[str, WriteOp]] = []

    async def get(self, path: str) -> dict | None:
        if self._writes:
            raise InternalError("Transaction reads must precede writes")
        if path not in self._snapshots:
            row = await _load_row(self._session, path)
            self._read_versions[path] = row.version if row else None
            self._snapshots[path] = dict(row.data) if row else None
        return copy.deepcopy(self._snapshots[path])

    def set(self, path: str, fields: dict, merge: bool = False) -> None:
        self._writes.append((path, WriteOp("set", dict(fields), merge)))

    def update(self, path: str, fields: dict) -> None:
        self._writes.append((path, WriteOp("update", dict(fields))))

    def delete(self, path: str) -> None:
        self._writes.append((path, WriteOp("delete")))

    @property
    def read_versions(self) -> dict[str, int | None]:
        return self._read_versions

    def grouped_writes(self) -> dict[str, list[WriteOp]]:
        grouped: dict[str, list[WriteOp]] = {}
        for path, op in self._writes:
            grouped.setdefault(path, []).append(op)
        return grouped


class SqlDocumentStore:
    """DocumentStore implementation backed by the documents table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_attempts: int = 5,
        base_delay_ms: int = 20,
        max_delay_ms: int = 1000,
    ):
        self._session_factory = session_factory
        self.max_attempts = max(1, max_attempts)
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    # ─── Reads ───────────────────────────────────────────────────

    async def get(self, path: str) -> dict | None:
        try:
            async with self._session_factory() as session:
                row = await _load_row(session, path)
        except SQLAlchemyError as e:
            logger.error(f"Document read failed for {path}: {e}", extra={"path": path})
            raise DatabaseError("Document read failed", "get")
        return dict(row.data) if row else None

    async def list_documents(self, collection: str) -> list[tuple[str, dict]]:
        """Direct children of a collection, ordered by path."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(documents.c.path, documents.c.data)
                    .where(documents.c.collection == collection)
                    .order_by(documents.c.path),
                )
                rows = result.all()
        except SQLAlchemyError as e:
            logger.error(f"Collection read failed for {collection}: {e}")
            raise DatabaseError("Collection read failed", "list")
        return [(row.path, dict(row.data)) for row in rows]

    # ─── Single writes ───────────────────────────────────────────

    async def set(self, path: str, fields: dict, merge: bool = False) -> None:
        async def write(tx: SqlDocumentTransaction) -> None:
            tx.set(path, fields, merge=merge)
        await self.run_transaction(write)

    async def update(self, path: str, fields: dict) -> None:
        async def write(tx: SqlDocumentTransaction) -> None:
            tx.update(path, fields)
        await self.run_transaction(write)

    async def delete(self, path: str) -> None:
        async def write(tx: SqlDocumentTransaction) -> None:
            tx.delete(path)
        await self.run_transaction(write)

    # ─── Transactions ────────────────────────────────────────────

    async def run_transaction(
        self, fn: Callable[[SqlDocumentTransaction], Awaitable[T]],
    ) -> T:
        """Run fn atomically, retrying on store-level conflicts only."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                async with self._session_factory() as session:
                    async with session.begin():
                        tx = SqlDocumentTransaction(session)
                        result = await fn(tx)
                        await self._commit(session, tx)
                return result

            except TransactionConflictError as e:
                await self._handle_conflict(e, attempt)

            except UempError:
                raise

            except SQLAlchemyError as e:
                if _is_retryable_db_error(e):
                    await self._handle_conflict(
                        TransactionConflictError(f"Database contention: {e}"), attempt,
                    )
                    continue
                logger.error(f"Transaction failed: {e}", exc_info=True)
                raise DatabaseError("Transaction failed", "transaction")

        raise TransactionConflictError(
            f"Transaction aborted after {self.max_attempts} attempts",
        )

    async def _handle_conflict(
        self, error: TransactionConflictError, attempt: int,
    ) -> None:
        if attempt >= self.max_attempts:
            logger.warning(
                f"Transaction conflict, giving up: {error.message}",
                extra={"attempt": attempt, "error_code": error.code},
            )
            raise error
        delay = self._calculate_backoff(attempt)
        logger.info(
            f"Transaction conflict, retrying in {delay:.3f}s: {error.message}",
            extra={"attempt": attempt},
        )
        await asyncio.sleep(delay)

    def _calculate_backoff(self, attempt: int) -> float:
        """Exponential backoff with ±25% jitter, in seconds."""
        delay_ms = min(self.base_delay_ms * (2 ** (attempt - 1)), self.max_delay_ms)
        jitter = delay_ms * 0.25 * (2 * random.random() - 1)
        return max(0.0, (delay_ms + jitter) / 1000)

    async def _commit(self, session: AsyncSession, tx: SqlDocumentTransaction) -> None:
        now_iso = utc_now_iso()
        now = datetime.now(timezone.utc)
        writes = tx.grouped_writes()

        for path, seen_version in tx.read_versions.items():
            if path in writes:
                continue
            row = await _load_row(session, path)
            if (row.version if row else None) != seen_version:
                raise TransactionConflictError(f"Document changed during transaction: {path}")

        for path, ops in writes.items():
            row = await _load_row(session, path)
            current_version = row.version if row else None
            if path in tx.read_versions and tx.read_versions[path] != current_version:
                raise TransactionConflictError(f"Document changed during transaction: {path}")

            data = dict(row.data) if row else None
            for op in ops:
                data = apply_write(data, op, path, now_iso)

            if row is None:
                if data is None:
                    continue
                try:
                    await session.execute(
                        insert(documents).values(
                            path=path, collection=parent_collection(path),
                            data=data, version=1, created_at=now, updated_at=now,
                        ),
                    )
                except IntegrityError:
                    raise TransactionConflictError(f"Document created concurrently: {path}")
            elif data is None:
                result = await session.execute(
                    delete(documents).where(
                        documents.c.path == path, documents.c.version == current_version,
                    ),
                )
                if result.rowcount != 1:
                    raise TransactionConflictError(f"Document changed during delete: {path}")
            else:
                result = await session.execute(
                    update(documents)
                    .where(documents.c.path == path, documents.c.version == current_version)
                    .values(data=data, version=current_version + 1, updated_at=now),
                )
                if result.rowcount != 1:
                    raise TransactionConflictError(f"Document changed during update: {path}")
