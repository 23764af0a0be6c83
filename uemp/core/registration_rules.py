"""Registration Rules — ordered preconditions and field updates for binding a consumer to a unit.

Invariants:
    - Preconditions checked in a fixed order, each mapping to exactly one error:
      NotFound → AlreadyRegisteredByCaller → AlreadyRegisteredByOther → DataCorruption
      → PermissionDenied
    - Pure: inputs are raw documents read inside the caller's transaction
    - bind/unbind updates keep userCount == len(registeredUsers)
    - unbind clears registeredBy only when it names the unbinding consumer

Design Decisions:
    - registeredBy is read from the raw document before parsing, so a corrupt document
      that is already owned still reports AlreadyRegisteredByOther
"""

from uemp.core.documents import ProductInstance
from uemp.core.errors import (
    AlreadyRegisteredByCallerError,
    AlreadyRegisteredByOtherError,
    ErrorContext,
    InvalidArgumentError,
    PermissionDeniedError,
    ResourceNotFoundError,
    UnauthenticatedError,
)
from uemp.core.field_ops import DELETE_FIELD, SERVER_TIMESTAMP, ArrayRemove, ArrayUnion, Increment
from uemp.core.secret_key import secret_keys_match

REGISTRATION_FIELDS: tuple[str, ...] = (
    "manufacturerId", "productId", "serialNumber", "modelNumber", "secretKey",
)


def validate_registration_input(consumer_id: str | None, payload: dict) -> None:
    """Identity first, then presence of every field."""
    if not consumer_id:
        raise UnauthenticatedError()
    missing = [
        name for name in REGISTRATION_FIELDS
        if not isinstance(payload.get(name), str) or not payload[name].strip()
    ]
    if missing:
        raise InvalidArgumentError(
            f"Missing required fields: {', '.join(missing)}.", field=missing[0],
        )


def check_registration(
    instance_doc: dict | None,
    scan_doc: dict | None,
    consumer_id: str,
    secret_key: str,
    manufacturer_id: str,
    product_id: str,
    serial_number: str,
) -> ProductInstance:
    ctx = ErrorContext(
        consumer_id=consumer_id, manufacturer_id=manufacturer_id,
        product_id=product_id, serial_number=serial_number,
    )
    if instance_doc is None:
        raise ResourceNotFoundError("Product", serial_number, ctx)
    if scan_doc is not None:
        raise AlreadyRegisteredByCallerError(ctx)
    if instance_doc.get("registeredBy"):
        raise AlreadyRegisteredByOtherError(ctx)
    instance = ProductInstance.from_document(
        instance_doc, manufacturer_id, product_id, serial_number,
    )
    if not secret_keys_match(secret_key, instance.secret_key):
        raise PermissionDeniedError(context=ctx)
    return instance


def bind_updates(consumer_id: str, instance: ProductInstance) -> dict:
    updates = {
        "registeredBy": consumer_id,
        "registered": True,
        "updatedAt": SERVER_TIMESTAMP,
    }
    if consumer_id not in instance.registered_users:
        updates["registeredUsers"] = ArrayUnion(consumer_id)
        updates["userCount"] = Increment(1)
    return updates


def unbind_updates(consumer_id: str, instance: ProductInstance) -> dict | None:
    """None when there is nothing to undo (idempotent replay)."""
    updates: dict = {}
    if consumer_id in instance.registered_users:
        updates["registeredUsers"] = ArrayRemove(consumer_id)
        updates["userCount"] = Increment(-1)
    if instance.registered_by == consumer_id:
        updates["registeredBy"] = DELETE_FIELD
        updates["registered"] = False
    if not updates:
        return None
    updates["updatedAt"] = SERVER_TIMESTAMP
    return updates
