"""Boundary Protocols — contracts between core/services and the infrastructure shell.

Invariants:
    - Services depend on these Protocols, never on SQLAlchemy or httpx directly
    - Implementations are injected through constructors (no module-level clients)
    - DocumentTransaction: reads are async, writes are buffered and applied at commit

Design Decisions:
    - Protocol over ABC: structural subtyping, test doubles need no inheritance
"""

from typing import Any, Awaitable, Callable, Protocol, TypeVar

T = TypeVar("T")


class DocumentTransaction(Protocol):
    """Transaction handle passed to DocumentStore.run_transaction callbacks."""
    async def get(self, path: str) -> dict | None: ...
    def set(self, path: str, fields: dict, merge: bool = False) -> None: ...
    def update(self, path: str, fields: dict) -> None: ...
    def delete(self, path: str) -> None: ...


class DocumentStore(Protocol):
    """Contract for the transactional document database."""
    async def get(self, path: str) -> dict | None: ...
    async def set(self, path: str, fields: dict, merge: bool = False) -> None: ...
    async def update(self, path: str, fields: dict) -> None: ...
    async def delete(self, path: str) -> None: ...
    async def list_documents(self, collection: str) -> list[tuple[str, dict]]: ...
    async def run_transaction(
        self, fn: Callable[[DocumentTransaction], Awaitable[T]],
    ) -> T: ...


class GeocodingClient(Protocol):
    """Reverse geocoding — best-effort, None when no address is known."""
    async def reverse_geocode(self, lat: float, lng: float) -> str | None: ...


class NotificationClient(Protocol):
    """Out-of-band notification side-channel."""
    async def send_rejection_email(
        self, recipient: str, product_name: str, reason: str,
    ) -> Any: ...
