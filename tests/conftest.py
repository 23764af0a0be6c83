"""Root conftest — shared fixtures: file-backed SQLite store, services, fakes, API client.

Invariants:
    - Every test gets a fresh SQLite file under tmp_path
    - Outbound clients (geocoding, email) are replaced with in-memory fakes
    - Retry backoff is zero so conflict tests stay fast

Design Decisions:
    - File-backed over :memory: so two sessions get two connections, which the
      optimistic-concurrency tests rely on
"""

import os

# Ensure tests don't accidentally use real API keys
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")
os.environ.setdefault("SENDGRID_API_KEY", "")
os.environ.setdefault("GOOGLE_MAPS_API_KEY", "")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest
from httpx import ASGITransport, AsyncClient

from uemp.core import document_paths as paths
from uemp.core.errors import ExternalServiceError
from uemp.infrastructure.database import DatabaseSessionManager
from uemp.infrastructure.document_store import SqlDocumentStore
from uemp.services.inventory import InventoryService
from uemp.services.locations import LocationService
from uemp.services.product_registry import ProductRegistry
from uemp.services.recycler_matching import RecyclerMatchingService
from uemp.services.recycling_requests import RecyclingRequestService
from uemp.services.registration import RegistrationService


class FakeNotifier:
    """Records rejection emails instead of sending them."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[dict] = []

    async def send_rejection_email(self, recipient: str, product_name: str, reason: str):
        if self.fail:
            raise ExternalServiceError("notification", "provider unavailable")
        self.sent.append(
            {"recipient": recipient, "product_name": product_name, "reason": reason},
        )


class FakeGeocoder:
    def __init__(self, address: str | None = "221B Baker Street, London"):
        self.address = address
        self.calls: list[tuple[float, float]] = []

    async def reverse_geocode(self, lat: float, lng: float) -> str | None:
        self.calls.append((lat, lng))
        return self.address


async def seed_instance(
    store,
    manufacturer_id: str = "mfgA",
    product_id: str = "modelX",
    serial_number: str = "SN001",
    secret_key: str = "K3y",
    name: str = "Kettle",
    category: str = "Electronics",
) -> None:
    """Write a model and one unit with a known secret directly to the store."""
    model_path = paths.model_path(manufacturer_id, product_id)
    existing = await store.get(model_path)
    count = (existing or {}).get("instanceCount", 0) + 1
    await store.set(model_path, {"name": name, "category": category, "instanceCount": count})
    await store.set(
        paths.model_key_path(manufacturer_id, name, category), {"productId": product_id},
    )
    await store.set(paths.instance_path(manufacturer_id, product_id, serial_number), {
        "secretKey": secret_key,
        "registered": False,
        "registeredUsers": [],
        "userCount": 0,
        "recycleStatus": "uninitiated",
    })


@pytest.fixture
async def db_manager(tmp_path):
    manager = DatabaseSessionManager(f"sqlite+aiosqlite:///{tmp_path / 'uemp.db'}")
    await manager.create_all()
    yield manager
    await manager.dispose()


@pytest.fixture
def store(db_manager):
    return SqlDocumentStore(
        db_manager.session_factory, max_attempts=5, base_delay_ms=0, max_delay_ms=0,
    )


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def registry(store):
    return ProductRegistry(store)


@pytest.fixture
def registration(store):
    return RegistrationService(store)


@pytest.fixture
def matching(store, registry):
    return RecyclerMatchingService(store, registry)


@pytest.fixture
def requests_service(store, notifier):
    return RecyclingRequestService(store, notifier)


@pytest.fixture
def locations(store, geocoder):
    return LocationService(store, geocoder)


@pytest.fixture
def inventory(store):
    return InventoryService(store)


@pytest.fixture
async def client(db_manager, store, notifier, geocoder):
    """FastAPI test client wired to the test store (lifespan not run)."""
    from uemp.main import app

    app.state.db_manager = db_manager
    app.state.store = store
    app.state.notifier = notifier
    app.state.geocoder = geocoder
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c


@pytest.fixture
def seed(store):
    """seed(**overrides) writes a model plus one unit with a known secret."""
    async def _seed(**kwargs):
        await seed_instance(store, **kwargs)
    return _seed
