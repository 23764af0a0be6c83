"""Registration Route — a consumer claims a product with its secret key.

Invariants:
    - Missing caller identity → 401 UNAUTHENTICATED before any other check
    - Body fields are validated by the service so the check order is preserved
"""

from fastapi import APIRouter, Depends

from uemp.api.dependencies import get_caller_id, get_registration_service
from uemp.schemas.registration import RegisterRequest, RegistrationResponse
from uemp.services.registration import RegistrationService

router = APIRouter(prefix="/api/v1/registrations", tags=["registrations"])


@router.post("", response_model=RegistrationResponse)
async def register_product(
    body: RegisterRequest,
    consumer_id: str | None = Depends(get_caller_id),
    service: RegistrationService = Depends(get_registration_service),
):
    result = await service.register(
        consumer_id,
        body.manufacturer_id,
        body.product_id,
        body.serial_number,
        body.model_number,
        body.secret_key,
    )
    return RegistrationResponse(success=result.success, message=result.message)
