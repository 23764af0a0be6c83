"""Product Schemas — manufacturer-side catalogue bodies.

Invariants:
    - name, category and serialNumber are stripped and non-empty
    - serialNumber cannot contain '/' or '|' (path segment and QR separator)
"""

from pydantic import Field, field_validator

from uemp.schemas.base import CamelModel


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("cannot be empty or whitespace")
    return v


def _check_serial(v: str) -> str:
    v = _strip_required(v)
    if "/" in v or "|" in v:
        raise ValueError("serial number cannot contain '/' or '|'")
    return v


class DescriptiveAttributes(CamelModel):
    recyclability: str | None = Field(None, max_length=200)
    recoverable_metals: str | None = Field(None, max_length=1000)


class ModelCreate(DescriptiveAttributes):
    name: str = Field(min_length=1, max_length=200)
    category: str = Field(min_length=1, max_length=100)

    @field_validator("name", "category")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return _strip_required(v)


class InstanceCreate(DescriptiveAttributes):
    serial_number: str = Field(min_length=1, max_length=200)

    @field_validator("serial_number")
    @classmethod
    def check_serial(cls, v: str) -> str:
        return _check_serial(v)


class ProductIssue(ModelCreate):
    """Model resolution and unit creation in one call."""
    serial_number: str = Field(min_length=1, max_length=200)

    @field_validator("serial_number")
    @classmethod
    def check_serial(cls, v: str) -> str:
        return _check_serial(v)


class QrDecodeRequest(CamelModel):
    text: str = Field(min_length=1, max_length=4000)
