"""Consumer Routes — registered products, the stale-record sweep, home location, matches.

Invariants:
    - Every route acts on the caller's own data (/me)
    - Matches use explicit coordinates when both lat and lng are given, the saved
      home location otherwise
"""

from fastapi import APIRouter, Depends, Query

from uemp.api.dependencies import (
    get_location_service, get_matching_service, get_registration_service,
    get_registry, require_caller_id,
)
from uemp.config import get_settings
from uemp.core.documents import GeoPoint
from uemp.core.errors import InvalidArgumentError, ResourceNotFoundError
from uemp.schemas.recyclers import LocationUpdate
from uemp.services.locations import LocationService
from uemp.services.product_registry import ProductRegistry
from uemp.services.recycler_matching import RecyclerMatchingService
from uemp.services.registration import RegistrationService

router = APIRouter(prefix="/api/v1/consumers/me", tags=["consumers"])


@router.get("/products")
async def list_products(
    include_inactive: bool = Query(False),
    consumer_id: str = Depends(require_caller_id),
    registry: ProductRegistry = Depends(get_registry),
):
    records = await registry.list_registered_products(consumer_id, include_inactive)
    return {"success": True, "products": [r.to_document() for r in records]}


@router.get("/products/{product_id}")
async def get_product(
    product_id: str,
    consumer_id: str = Depends(require_caller_id),
    service: RegistrationService = Depends(get_registration_service),
):
    record = await service.get_scan_record(consumer_id, product_id)
    return {"success": True, "product": record.to_document()}


@router.delete("/products/{product_id}")
async def delete_product(
    product_id: str,
    consumer_id: str = Depends(require_caller_id),
    service: RegistrationService = Depends(get_registration_service),
):
    """Remove a scan record; the manufacturer's instance is released afterwards."""
    await service.delete_scan_record(consumer_id, product_id)
    return {"success": True}


@router.post("/products/verify")
async def verify_products(
    consumer_id: str = Depends(require_caller_id),
    service: RegistrationService = Depends(get_registration_service),
):
    records = await service.verify_scan_records(consumer_id)
    return {"success": True, "products": [r.to_document() for r in records]}


@router.put("/home-location")
async def save_home_location(
    body: LocationUpdate,
    consumer_id: str = Depends(require_caller_id),
    service: LocationService = Depends(get_location_service),
):
    saved = await service.save_home_location(consumer_id, body.lat, body.lng, body.address)
    return {"success": True, **saved}


@router.get("/home-location")
async def get_home_location(
    consumer_id: str = Depends(require_caller_id),
    service: LocationService = Depends(get_location_service),
):
    data = await service.get_home_location(consumer_id)
    if data is None:
        raise ResourceNotFoundError("Home location", consumer_id)
    return {"success": True, "location": data.get("location"), "address": data.get("address")}


@router.get("/matches")
async def find_matches(
    lat: float | None = Query(None, ge=-90, le=90),
    lng: float | None = Query(None, ge=-180, le=180),
    max_distance_km: float | None = Query(None, gt=0),
    include_unmatched: bool = Query(True),
    consumer_id: str = Depends(require_caller_id),
    service: RecyclerMatchingService = Depends(get_matching_service),
):
    if max_distance_km is None:
        max_distance_km = get_settings().matching_max_distance_km
    if (lat is None) != (lng is None):
        raise InvalidArgumentError("Provide both lat and lng, or neither.", field="lat")
    if lat is None:
        matches = await service.find_matches_from_home(
            consumer_id, max_distance_km, include_unmatched,
        )
    else:
        matches = await service.find_nearby_matches(
            GeoPoint(lat=lat, lng=lng), consumer_id, max_distance_km, include_unmatched,
        )
    return {"success": True, "matches": [m.to_public() for m in matches]}
