"""Recycler Routes — facility location, inventory, and the request log with its transitions.

Invariants:
    - /me/... routes act on the caller's own facility (caller id == recyclerId)
    - A consumer opens a request against /{recycler_id}/requests
    - Transition routes delegate every state check to the service
"""

from fastapi import APIRouter, Depends, Query, status

from uemp.api.dependencies import (
    get_inventory_service, get_location_service, get_request_service,
    require_caller_id,
)
from uemp.core.domain_types import RequestStatus
from uemp.schemas.recyclers import (
    InventoryItemCreate, InventoryItemUpdate, LocationUpdate,
    RecyclingRequestCreate, RejectionNotice, RejectRequest,
)
from uemp.services.inventory import InventoryService
from uemp.services.locations import LocationService
from uemp.services.recycling_requests import RecyclingRequestService

router = APIRouter(prefix="/api/v1/recyclers", tags=["recyclers"])


# ─── Facility ────────────────────────────────────────────────────

@router.put("/me/location")
async def save_facility_location(
    body: LocationUpdate,
    recycler_id: str = Depends(require_caller_id),
    service: LocationService = Depends(get_location_service),
):
    saved = await service.save_facility_location(recycler_id, body.lat, body.lng, body.address)
    return {"success": True, **saved}


# ─── Inventory ───────────────────────────────────────────────────

@router.get("/me/inventory")
async def list_inventory(
    q: str | None = Query(None, max_length=200),
    recycler_id: str = Depends(require_caller_id),
    service: InventoryService = Depends(get_inventory_service),
):
    if q:
        items = await service.search_inventory(recycler_id, q)
    else:
        items = await service.list_inventory(recycler_id)
    return {"success": True, "items": [item.to_public() for item in items]}


@router.post("/me/inventory", status_code=status.HTTP_201_CREATED)
async def add_inventory_item(
    body: InventoryItemCreate,
    recycler_id: str = Depends(require_caller_id),
    service: InventoryService = Depends(get_inventory_service),
):
    item = await service.add_inventory_item(
        recycler_id, body.product_id, body.model_dump(by_alias=True, exclude_none=True),
    )
    return {"success": True, "item": item.to_public()}


@router.patch("/me/inventory/{item_id}")
async def update_inventory_item(
    item_id: str,
    body: InventoryItemUpdate,
    recycler_id: str = Depends(require_caller_id),
    service: InventoryService = Depends(get_inventory_service),
):
    item = await service.update_inventory_item(
        recycler_id, item_id, body.model_dump(by_alias=True, exclude_none=True),
    )
    return {"success": True, "item": item.to_public()}


@router.delete("/me/inventory/{item_id}")
async def delete_inventory_item(
    item_id: str,
    recycler_id: str = Depends(require_caller_id),
    service: InventoryService = Depends(get_inventory_service),
):
    await service.delete_inventory_item(recycler_id, item_id)
    return {"success": True}


# ─── Requests ────────────────────────────────────────────────────

@router.post("/{recycler_id}/requests", status_code=status.HTTP_201_CREATED)
async def open_request(
    recycler_id: str,
    body: RecyclingRequestCreate,
    consumer_id: str = Depends(require_caller_id),
    service: RecyclingRequestService = Depends(get_request_service),
):
    """Consumer asks a recycler to take back one of their registered products."""
    request = await service.open_request(
        consumer_id,
        recycler_id,
        body.serial_number,
        body.product_id,
        body.details.model_dump(),
        body.product_name,
    )
    return {"success": True, "request": request.to_public()}


@router.get("/me/requests")
async def list_requests(
    status_filter: RequestStatus | None = Query(None, alias="status"),
    recycler_id: str = Depends(require_caller_id),
    service: RecyclingRequestService = Depends(get_request_service),
):
    requests = await service.list_requests(recycler_id, status_filter)
    return {"success": True, "requests": [r.to_public() for r in requests]}


@router.get("/me/requests/{query_id}")
async def get_request(
    query_id: str,
    recycler_id: str = Depends(require_caller_id),
    service: RecyclingRequestService = Depends(get_request_service),
):
    request = await service.get_request(recycler_id, query_id)
    return {"success": True, "request": request.to_public()}


@router.post("/me/requests/{query_id}/accept")
async def accept_request(
    query_id: str,
    recycler_id: str = Depends(require_caller_id),
    service: RecyclingRequestService = Depends(get_request_service),
):
    request = await service.accept(recycler_id, query_id)
    return {"success": True, "request": request.to_public()}


@router.post("/me/requests/{query_id}/reject")
async def reject_request(
    query_id: str,
    body: RejectRequest | None = None,
    recycler_id: str = Depends(require_caller_id),
    service: RecyclingRequestService = Depends(get_request_service),
):
    outcome = await service.reject(recycler_id, query_id, body.reason if body else None)
    return outcome.to_response()


@router.post("/me/requests/{query_id}/notify")
async def notify_rejection(
    query_id: str,
    body: RejectionNotice,
    recycler_id: str = Depends(require_caller_id),
    service: RecyclingRequestService = Depends(get_request_service),
):
    outcome = await service.notify_rejection(recycler_id, query_id, body.reason)
    return outcome.to_response()


@router.post("/me/requests/{query_id}/start")
async def start_recycling(
    query_id: str,
    recycler_id: str = Depends(require_caller_id),
    service: RecyclingRequestService = Depends(get_request_service),
):
    request = await service.start_recycling(recycler_id, query_id)
    return {"success": True, "request": request.to_public()}


@router.post("/me/requests/{query_id}/finish")
async def finish_recycling(
    query_id: str,
    recycler_id: str = Depends(require_caller_id),
    service: RecyclingRequestService = Depends(get_request_service),
):
    request = await service.finish_recycling(recycler_id, query_id)
    return {"success": True, "request": request.to_public()}


@router.delete("/me/requests/{query_id}")
async def delete_request_log(
    query_id: str,
    recycler_id: str = Depends(require_caller_id),
    service: RecyclingRequestService = Depends(get_request_service),
):
    await service.delete_request_log(recycler_id, query_id)
    return {"success": True}
