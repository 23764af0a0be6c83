"""Manufacturer Routes — product models, serialized units, public summaries, QR decode.

Invariants:
    - /me/... routes act on the caller's own catalogue (caller id == manufacturerId)
    - Public summary and QR decode need no identity
    - Secret keys are returned exactly once, in the create response
"""

import logging

from fastapi import APIRouter, Depends, status

from uemp.api.dependencies import get_registry, require_caller_id
from uemp.config import get_settings
from uemp.core.qr_payload import build_qr_url, decode_qr_payload
from uemp.schemas.products import (
    InstanceCreate, ModelCreate, ProductIssue, QrDecodeRequest,
)
from uemp.services.product_registry import ProductRegistry

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/manufacturers", tags=["manufacturers"])


def _with_qr_url(manufacturer_id: str, product_id: str, serial_number: str, created: dict) -> dict:
    url = build_qr_url(get_settings().qr_base_url, manufacturer_id, product_id, serial_number)
    return {"success": True, **created, "qrUrl": url}


@router.post("/me/models", status_code=status.HTTP_201_CREATED)
async def create_model(
    body: ModelCreate,
    manufacturer_id: str = Depends(require_caller_id),
    registry: ProductRegistry = Depends(get_registry),
):
    """Resolve (name, category) to a productId, creating the model when new."""
    product_id = await registry.resolve_or_create_model(
        manufacturer_id, body.name, body.category, body.model_dump(),
    )
    return {"success": True, "productId": product_id}


@router.get("/me/models")
async def list_models(
    manufacturer_id: str = Depends(require_caller_id),
    registry: ProductRegistry = Depends(get_registry),
):
    models = await registry.list_models(manufacturer_id)
    return {"success": True, "models": [m.to_public() for m in models]}


@router.get("/me/models/{product_id}")
async def get_model(
    product_id: str,
    manufacturer_id: str = Depends(require_caller_id),
    registry: ProductRegistry = Depends(get_registry),
):
    model = await registry.get_model(manufacturer_id, product_id)
    return {"success": True, "model": model.to_public()}


@router.post("/me/models/{product_id}/instances", status_code=status.HTTP_201_CREATED)
async def create_instance(
    product_id: str,
    body: InstanceCreate,
    manufacturer_id: str = Depends(require_caller_id),
    registry: ProductRegistry = Depends(get_registry),
):
    created = await registry.create_instance(
        manufacturer_id, product_id, body.serial_number, body.model_dump(),
    )
    return _with_qr_url(manufacturer_id, product_id, body.serial_number, created)


@router.get("/me/models/{product_id}/instances")
async def list_instances(
    product_id: str,
    manufacturer_id: str = Depends(require_caller_id),
    registry: ProductRegistry = Depends(get_registry),
):
    instances = await registry.list_instances(manufacturer_id, product_id)
    return {"success": True, "instances": [i.to_private() for i in instances]}


@router.get("/me/models/{product_id}/instances/{serial_number}")
async def get_instance(
    product_id: str,
    serial_number: str,
    manufacturer_id: str = Depends(require_caller_id),
    registry: ProductRegistry = Depends(get_registry),
):
    instance = await registry.get_instance(manufacturer_id, product_id, serial_number)
    return {"success": True, "instance": instance.to_private()}


@router.delete("/me/models/{product_id}/instances/{serial_number}")
async def delete_instance(
    product_id: str,
    serial_number: str,
    manufacturer_id: str = Depends(require_caller_id),
    registry: ProductRegistry = Depends(get_registry),
):
    model_deleted = await registry.delete_instance(manufacturer_id, product_id, serial_number)
    return {"success": True, "modelDeleted": model_deleted}


@router.post("/me/products", status_code=status.HTTP_201_CREATED)
async def issue_product(
    body: ProductIssue,
    manufacturer_id: str = Depends(require_caller_id),
    registry: ProductRegistry = Depends(get_registry),
):
    """Add-product form: model resolution plus unit creation."""
    created = await registry.issue_product(
        manufacturer_id, body.name, body.category, body.serial_number, body.model_dump(),
    )
    return _with_qr_url(manufacturer_id, created["productId"], body.serial_number, created)


@router.get("/{manufacturer_id}/products/{serial_number}")
async def get_public_summary(
    manufacturer_id: str,
    serial_number: str,
    registry: ProductRegistry = Depends(get_registry),
):
    summary = await registry.get_public_summary(manufacturer_id, serial_number)
    return {"success": True, "product": summary.to_document()}


@router.post("/qr/decode")
async def decode_qr(body: QrDecodeRequest):
    identity = decode_qr_payload(body.text)
    return {
        "success": True,
        "manufacturerId": identity.manufacturer_id,
        "productId": identity.product_id,
        "serialNumber": identity.serial_number,
    }
