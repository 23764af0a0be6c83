"""Registration Schemas.

Design Decisions:
    - Every RegisterRequest field is optional: missing values must surface as
      INVALID_ARGUMENT from the service, after the caller identity check
"""

from uemp.schemas.base import CamelModel


class RegisterRequest(CamelModel):
    manufacturer_id: str | None = None
    product_id: str | None = None
    serial_number: str | None = None
    model_number: str | None = None
    secret_key: str | None = None


class RegistrationResponse(CamelModel):
    success: bool
    message: str | None = None
