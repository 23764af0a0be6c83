"""Recycler Schemas — locations, inventory and recycling requests.

Invariants:
    - Coordinates are range-checked here and again in core/geo.py
    - price and points are non-negative
    - RequestDetails requires name, phone and address; email is optional
"""

from pydantic import Field, field_validator

from uemp.schemas.base import CamelModel


class LocationUpdate(CamelModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    address: str | None = Field(None, max_length=500)


class InventoryItemCreate(CamelModel):
    product_id: str = Field(min_length=1, max_length=200)
    product_name: str = Field(min_length=1, max_length=200)
    category: str | None = Field(None, max_length=100)
    price: float | None = Field(None, ge=0)
    points: int | None = Field(None, ge=0)
    desc: str | None = Field(None, max_length=2000)


class InventoryItemUpdate(CamelModel):
    product_name: str | None = Field(None, min_length=1, max_length=200)
    category: str | None = Field(None, max_length=100)
    price: float | None = Field(None, ge=0)
    points: int | None = Field(None, ge=0)
    desc: str | None = Field(None, max_length=2000)


class RequestDetails(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    phone: str = Field(min_length=1, max_length=50)
    address: str = Field(min_length=1, max_length=500)
    email: str | None = Field(None, max_length=320)

    @field_validator("name", "phone", "address")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty or whitespace")
        return v


class RecyclingRequestCreate(CamelModel):
    product_id: str = Field(min_length=1)
    serial_number: str = Field(min_length=1)
    product_name: str = Field(min_length=1, max_length=200)
    details: RequestDetails


class RejectRequest(CamelModel):
    reason: str | None = Field(None, max_length=2000)


class RejectionNotice(CamelModel):
    reason: str = Field(min_length=1, max_length=2000)
