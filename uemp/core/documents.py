"""Typed Documents — dataclass views over the loosely-typed documents in the store.

Invariants:
    - from_document() either returns a fully-typed entity or raises DataCorruptionError
    - to_document() emits camelCase field names (the stored wire shape)
    - ProductInstance: user_count == len(registered_users);
      registered_by set ⇒ registered_by in registered_users
    - Missing optional counters default the way a freshly created document would

Design Decisions:
    - One dataclass per entity, keys passed in from the path rather than trusted from the body
"""

from dataclasses import dataclass, field
from typing import Any

from uemp.core.domain_types import (
    RecycleStatus, RequestStatus, is_active_recycle_status,
)
from uemp.core.errors import DataCorruptionError


# ─── Field readers ───────────────────────────────────────────────

def _require_str(data: dict, key: str, doc_type: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise DataCorruptionError(doc_type, f"'{key}' must be a non-empty string")
    return value


def _optional_str(data: dict, key: str, doc_type: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise DataCorruptionError(doc_type, f"'{key}' must be a string")
    return value


def _number(data: dict, key: str, doc_type: str, default: float | None = None) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DataCorruptionError(doc_type, f"'{key}' must be a number")
    return value


def _enum(data: dict, key: str, enum_cls, default, doc_type: str):
    value = data.get(key, default.value)
    try:
        return enum_cls(value)
    except ValueError:
        raise DataCorruptionError(doc_type, f"'{key}' has unknown value {value!r}")


# ─── Manufacturer side ───────────────────────────────────────────

@dataclass
class ProductModel:
    manufacturer_id: str
    product_id: str
    name: str
    category: str
    recyclability: str | None = None
    recoverable_metals: str | None = None
    instance_count: int = 0
    updated_at: str | None = None

    @classmethod
    def from_document(
        cls, data: dict | None, manufacturer_id: str, product_id: str,
    ) -> "ProductModel":
        doc_type = "ProductModel"
        if not data:
            raise DataCorruptionError(doc_type, "document is empty")
        count = _number(data, "instanceCount", doc_type, default=0)
        return cls(
            manufacturer_id=manufacturer_id,
            product_id=product_id,
            name=_require_str(data, "name", doc_type),
            category=_require_str(data, "category", doc_type),
            recyclability=_optional_str(data, "recyclability", doc_type),
            recoverable_metals=_optional_str(data, "recoverableMetals", doc_type),
            instance_count=int(count),
            updated_at=data.get("updatedAt"),
        )

    def to_public(self) -> dict:
        return {
            "manufacturerId": self.manufacturer_id,
            "productId": self.product_id,
            "name": self.name,
            "category": self.category,
            "recyclability": self.recyclability,
            "recoverableMetals": self.recoverable_metals,
            "instanceCount": self.instance_count,
            "updatedAt": self.updated_at,
        }


@dataclass
class ProductInstance:
    manufacturer_id: str
    product_id: str
    serial_number: str
    secret_key: str
    registered: bool = False
    registered_by: str | None = None
    registered_users: list[str] = field(default_factory=list)
    user_count: int = 0
    recycle_status: RecycleStatus = RecycleStatus.UNINITIATED
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_document(
        cls, data: dict | None, manufacturer_id: str, product_id: str,
        serial_number: str,
    ) -> "ProductInstance":
        doc_type = "ProductInstance"
        if not data:
            raise DataCorruptionError(doc_type, "document is empty")
        users = data.get("registeredUsers", [])
        if not isinstance(users, list) or not all(isinstance(u, str) for u in users):
            raise DataCorruptionError(doc_type, "'registeredUsers' must be a list of ids")
        count = _number(data, "userCount", doc_type, default=len(users))
        if int(count) != len(users):
            raise DataCorruptionError(
                doc_type, f"userCount {count} != {len(users)} registered users",
            )
        registered_by = _optional_str(data, "registeredBy", doc_type)
        if registered_by and registered_by not in users:
            raise DataCorruptionError(doc_type, "registeredBy not in registeredUsers")
        return cls(
            manufacturer_id=manufacturer_id,
            product_id=product_id,
            serial_number=serial_number,
            secret_key=_require_str(data, "secretKey", doc_type),
            registered=bool(data.get("registered", False)),
            registered_by=registered_by,
            registered_users=list(users),
            user_count=int(count),
            recycle_status=_enum(
                data, "recycleStatus", RecycleStatus, RecycleStatus.UNINITIATED, doc_type,
            ),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )

    def to_private(self) -> dict:
        """Manufacturer-facing view. Still omits the secret."""
        return {
            "manufacturerId": self.manufacturer_id,
            "productId": self.product_id,
            "serialNumber": self.serial_number,
            "registered": self.registered,
            "registeredBy": self.registered_by,
            "registeredUsers": list(self.registered_users),
            "userCount": self.user_count,
            "recycleStatus": self.recycle_status.value,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class PublicProductSummary:
    manufacturer_id: str
    serial_number: str
    product_id: str
    name: str
    category: str
    qr_payload: str

    @classmethod
    def from_document(
        cls, data: dict | None, manufacturer_id: str, serial_number: str,
    ) -> "PublicProductSummary":
        doc_type = "PublicProductSummary"
        if not data:
            raise DataCorruptionError(doc_type, "document is empty")
        return cls(
            manufacturer_id=manufacturer_id,
            serial_number=serial_number,
            product_id=_require_str(data, "productId", doc_type),
            name=_require_str(data, "name", doc_type),
            category=_require_str(data, "category", doc_type),
            qr_payload=_require_str(data, "qrPayload", doc_type),
        )

    def to_document(self) -> dict:
        return {
            "manufacturerId": self.manufacturer_id,
            "serialNumber": self.serial_number,
            "productId": self.product_id,
            "name": self.name,
            "category": self.category,
            "qrPayload": self.qr_payload,
        }


# ─── Consumer side ───────────────────────────────────────────────

@dataclass
class ConsumerScanRecord:
    consumer_id: str
    product_id: str
    serial_number: str
    manufacturer_id: str
    model_number: str
    recycle_status: RecycleStatus = RecycleStatus.UNINITIATED
    registered_at: str | None = None
    recycling_request: dict | None = None

    @classmethod
    def from_document(
        cls, data: dict | None, consumer_id: str, product_id: str,
    ) -> "ConsumerScanRecord":
        doc_type = "ConsumerScanRecord"
        if not data:
            raise DataCorruptionError(doc_type, "document is empty")
        request = data.get("recyclingRequest")
        if request is not None and not isinstance(request, dict):
            raise DataCorruptionError(doc_type, "'recyclingRequest' must be a map")
        return cls(
            consumer_id=consumer_id,
            product_id=product_id,
            serial_number=_require_str(data, "serialNumber", doc_type),
            manufacturer_id=_require_str(data, "manufacturerId", doc_type),
            model_number=_optional_str(data, "modelNumber", doc_type) or "",
            recycle_status=_enum(
                data, "recycleStatus", RecycleStatus, RecycleStatus.UNINITIATED, doc_type,
            ),
            registered_at=data.get("registeredAt"),
            recycling_request=request,
        )

    @property
    def is_active(self) -> bool:
        return is_active_recycle_status(self.recycle_status.value)

    def to_document(self) -> dict:
        doc: dict[str, Any] = {
            "serialNumber": self.serial_number,
            "productId": self.product_id,
            "manufacturerId": self.manufacturer_id,
            "modelNumber": self.model_number,
            "recycleStatus": self.recycle_status.value,
            "registeredAt": self.registered_at,
        }
        if self.recycling_request is not None:
            doc["recyclingRequest"] = self.recycling_request
        return doc


# ─── Recycler side ───────────────────────────────────────────────

@dataclass
class GeoPoint:
    lat: float
    lng: float

    @classmethod
    def from_document(cls, data: Any, doc_type: str = "GeoPoint") -> "GeoPoint":
        if not isinstance(data, dict):
            raise DataCorruptionError(doc_type, "location must be a {lat, lng} map")
        return cls(lat=float(_number(data, "lat", doc_type)), lng=float(_number(data, "lng", doc_type)))

    def to_document(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}


@dataclass
class RecyclerFacility:
    recycler_id: str
    location: GeoPoint | None
    address: str | None = None

    @classmethod
    def from_document(cls, data: dict | None, recycler_id: str) -> "RecyclerFacility":
        doc_type = "RecyclerFacility"
        if data is None:
            raise DataCorruptionError(doc_type, "document is empty")
        raw = data.get("location")
        location = GeoPoint.from_document(raw, doc_type) if raw is not None else None
        return cls(
            recycler_id=recycler_id,
            location=location,
            address=_optional_str(data, "address", doc_type),
        )


@dataclass
class InventoryItem:
    recycler_id: str
    item_id: str
    product_id: str
    product_name: str
    category: str | None = None
    price: float | None = None
    points: int | None = None
    desc: str | None = None

    @classmethod
    def from_document(
        cls, data: dict | None, recycler_id: str, item_id: str,
    ) -> "InventoryItem":
        doc_type = "InventoryItem"
        if not data:
            raise DataCorruptionError(doc_type, "document is empty")
        price = data.get("price")
        points = data.get("points")
        return cls(
            recycler_id=recycler_id,
            item_id=item_id,
            product_id=_require_str(data, "productId", doc_type),
            product_name=_require_str(data, "productName", doc_type),
            category=_optional_str(data, "category", doc_type),
            price=float(_number(data, "price", doc_type)) if price is not None else None,
            points=int(_number(data, "points", doc_type)) if points is not None else None,
            desc=_optional_str(data, "desc", doc_type),
        )

    def to_document(self) -> dict:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "category": self.category,
            "price": self.price,
            "points": self.points,
            "desc": self.desc,
        }

    def to_public(self) -> dict:
        return {"id": self.item_id, **self.to_document()}


@dataclass
class RecyclingRequest:
    query_id: str
    recycler_id: str
    consumer_id: str
    product_id: str
    serial_number: str
    product_name: str
    status: RequestStatus = RequestStatus.PENDING
    recycle_status: RecycleStatus = RecycleStatus.UNINITIATED
    manufacturer_id: str | None = None
    consumer_name: str | None = None
    consumer_phone: str | None = None
    consumer_address: str | None = None
    consumer_email: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    finished_at: str | None = None

    @classmethod
    def from_document(
        cls, data: dict | None, recycler_id: str, query_id: str,
    ) -> "RecyclingRequest":
        doc_type = "RecyclingRequest"
        if not data:
            raise DataCorruptionError(doc_type, "document is empty")
        return cls(
            query_id=query_id,
            recycler_id=recycler_id,
            consumer_id=_require_str(data, "consumerId", doc_type),
            product_id=_require_str(data, "productId", doc_type),
            serial_number=_require_str(data, "serialNumber", doc_type),
            product_name=_require_str(data, "productName", doc_type),
            status=_enum(data, "status", RequestStatus, RequestStatus.PENDING, doc_type),
            recycle_status=_enum(
                data, "recycleStatus", RecycleStatus, RecycleStatus.UNINITIATED, doc_type,
            ),
            manufacturer_id=_optional_str(data, "manufacturerId", doc_type),
            consumer_name=_optional_str(data, "consumerName", doc_type),
            consumer_phone=_optional_str(data, "consumerPhone", doc_type),
            consumer_address=_optional_str(data, "consumerAddress", doc_type),
            consumer_email=_optional_str(data, "consumerEmail", doc_type),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
            finished_at=data.get("finishedAt"),
        )

    def to_document(self) -> dict:
        return {
            "consumerId": self.consumer_id,
            "recyclerId": self.recycler_id,
            "productId": self.product_id,
            "serialNumber": self.serial_number,
            "productName": self.product_name,
            "manufacturerId": self.manufacturer_id,
            "status": self.status.value,
            "recycleStatus": self.recycle_status.value,
            "consumerName": self.consumer_name,
            "consumerPhone": self.consumer_phone,
            "consumerAddress": self.consumer_address,
            "consumerEmail": self.consumer_email,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "finishedAt": self.finished_at,
        }

    def to_public(self) -> dict:
        return {"queryId": self.query_id, **self.to_document()}

    def to_embedded(self) -> dict:
        """Copy kept inside the consumer's scan record."""
        return {
            "queryId": self.query_id,
            "recyclerId": self.recycler_id,
            "status": self.status.value,
            "recycleStatus": self.recycle_status.value,
            "serialNumber": self.serial_number,
            "productId": self.product_id,
            "productName": self.product_name,
            "timestamp": self.created_at,
        }
