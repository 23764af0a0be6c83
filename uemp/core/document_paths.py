"""Document Paths — single source of truth for where each entity lives in the document store.

Invariants:
    - Paths alternate collection/document segments: collection paths have an odd
      number of segments, document paths an even number
    - No segment is empty or contains '/'
    - Scan records are keyed by productId so one consumer holds at most one unit per model
"""

import hashlib

from uemp.core.errors import InvalidArgumentError


def _segment(value: str, name: str) -> str:
    if not isinstance(value, str) or not value or "/" in value:
        raise InvalidArgumentError(f"Invalid {name}: {value!r}", field=name)
    return value


def parent_collection(path: str) -> str:
    """'a/b/c/d' → 'a/b/c'."""
    return path.rsplit("/", 1)[0]


def document_id(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def model_key(name: str, category: str) -> str:
    """Stable index key for a (name, category) pair; outer whitespace ignored, case kept."""
    normalized = f"{name.strip()}|{category.strip()}"
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


# ─── Manufacturer side ───────────────────────────────────────────

def models_collection(manufacturer_id: str) -> str:
    return f"manufacturers/{_segment(manufacturer_id, 'manufacturerId')}/models"


def model_path(manufacturer_id: str, product_id: str) -> str:
    return f"{models_collection(manufacturer_id)}/{_segment(product_id, 'productId')}"


def model_key_path(manufacturer_id: str, name: str, category: str) -> str:
    return (
        f"manufacturers/{_segment(manufacturer_id, 'manufacturerId')}"
        f"/modelKeys/{model_key(name, category)}"
    )


def instances_collection(manufacturer_id: str, product_id: str) -> str:
    return f"{model_path(manufacturer_id, product_id)}/instances"


def instance_path(manufacturer_id: str, product_id: str, serial_number: str) -> str:
    return (
        f"{instances_collection(manufacturer_id, product_id)}"
        f"/{_segment(serial_number, 'serialNumber')}"
    )


def public_summary_path(manufacturer_id: str, serial_number: str) -> str:
    return (
        f"manufacturers/{_segment(manufacturer_id, 'manufacturerId')}"
        f"/publicProducts/{_segment(serial_number, 'serialNumber')}"
    )


# ─── Consumer side ───────────────────────────────────────────────

def scan_records_collection(consumer_id: str) -> str:
    return f"consumers/{_segment(consumer_id, 'consumerId')}/scannedProducts"


def scan_record_path(consumer_id: str, product_id: str) -> str:
    return f"{scan_records_collection(consumer_id)}/{_segment(product_id, 'productId')}"


def home_location_path(consumer_id: str) -> str:
    return f"consumers/{_segment(consumer_id, 'consumerId')}/maps/homeLocation"


# ─── Recycler side ───────────────────────────────────────────────

RECYCLERS_COLLECTION = "recyclers"


def facility_path(recycler_id: str) -> str:
    return f"{RECYCLERS_COLLECTION}/{_segment(recycler_id, 'recyclerId')}"


def inventory_collection(recycler_id: str) -> str:
    return f"{facility_path(recycler_id)}/products"


def inventory_item_path(recycler_id: str, item_id: str) -> str:
    return f"{inventory_collection(recycler_id)}/{_segment(item_id, 'itemId')}"


def requests_collection(recycler_id: str) -> str:
    return f"{facility_path(recycler_id)}/requests"


def request_path(recycler_id: str, query_id: str) -> str:
    return f"{requests_collection(recycler_id)}/{_segment(query_id, 'queryId')}"


def request_key_path(recycler_id: str, consumer_id: str, serial_number: str) -> str:
    """One open request per (consumer, serial number) at a recycler."""
    key = hashlib.sha256(f"{consumer_id}|{serial_number}".encode("utf-8")).hexdigest()
    return f"{facility_path(recycler_id)}/requestKeys/{key}"


def organization_profile_path(user_id: str) -> str:
    return f"users/{_segment(user_id, 'userId')}"
