"""Request Dependencies — caller identity and services built from app.state.

Invariants:
    - The store and outbound clients are read from app.state (set by the lifespan)
    - Caller identity comes from the configured header; missing → UNAUTHENTICATED
"""

from fastapi import Depends, Request

from uemp.config import get_settings
from uemp.core.errors import UnauthenticatedError
from uemp.core.repository_protocols import DocumentStore
from uemp.services.inventory import InventoryService
from uemp.services.locations import LocationService
from uemp.services.product_registry import ProductRegistry
from uemp.services.recycler_matching import RecyclerMatchingService
from uemp.services.recycling_requests import RecyclingRequestService
from uemp.services.registration import RegistrationService


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_caller_id(request: Request) -> str | None:
    """Optional identity; routes that must run their own checks first use this."""
    value = request.headers.get(get_settings().auth_user_header)
    return value.strip() if value and value.strip() else None


def require_caller_id(caller_id: str | None = Depends(get_caller_id)) -> str:
    if not caller_id:
        raise UnauthenticatedError()
    return caller_id


def get_registry(store: DocumentStore = Depends(get_store)) -> ProductRegistry:
    return ProductRegistry(store)


def get_registration_service(
    store: DocumentStore = Depends(get_store),
) -> RegistrationService:
    return RegistrationService(store)


def get_matching_service(
    registry: ProductRegistry = Depends(get_registry),
) -> RecyclerMatchingService:
    return RecyclerMatchingService(registry.store, registry)


def get_request_service(
    request: Request, store: DocumentStore = Depends(get_store),
) -> RecyclingRequestService:
    return RecyclingRequestService(store, getattr(request.app.state, "notifier", None))


def get_location_service(
    request: Request, store: DocumentStore = Depends(get_store),
) -> LocationService:
    return LocationService(store, getattr(request.app.state, "geocoder", None))


def get_inventory_service(
    store: DocumentStore = Depends(get_store),
) -> InventoryService:
    return InventoryService(store)
