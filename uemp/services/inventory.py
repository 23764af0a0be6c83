"""Recycler Inventory — the product models a recycler accepts, with price and points.

Invariants:
    - Every item names the productId it accepts; matching joins on that field
    - Items live under recyclers/{recyclerId}/products and are addressed by a generated id
"""

import logging
import uuid

from uemp.core import document_paths as paths
from uemp.core.documents import InventoryItem
from uemp.core.errors import (
    DataCorruptionError, InvalidArgumentError, ResourceNotFoundError,
)
from uemp.core.repository_protocols import DocumentStore, DocumentTransaction

logger = logging.getLogger(__name__)

EDITABLE_FIELDS: tuple[str, ...] = ("productName", "category", "price", "points", "desc")


def _clean_fields(fields: dict) -> dict:
    cleaned = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS and v is not None}
    if "productName" in cleaned and not str(cleaned["productName"]).strip():
        raise InvalidArgumentError("Product name cannot be empty.", field="productName")
    for key in ("price", "points"):
        value = cleaned.get(key)
        if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
            raise InvalidArgumentError(f"'{key}' must be a number.", field=key)
        if value is not None and value < 0:
            raise InvalidArgumentError(f"'{key}' cannot be negative.", field=key)
    return cleaned


class InventoryService:

    def __init__(self, store: DocumentStore):
        self.store = store

    async def add_inventory_item(self, recycler_id: str, product_id: str, fields: dict) -> InventoryItem:
        if not product_id or not product_id.strip():
            raise InvalidArgumentError("Missing productId.", field="productId")
        data = _clean_fields(fields)
        if "productName" not in data:
            raise InvalidArgumentError("Missing productName.", field="productName")
        item_id = uuid.uuid4().hex
        item = InventoryItem.from_document(
            {**data, "productId": product_id.strip()}, recycler_id, item_id,
        )
        await self.store.set(paths.inventory_item_path(recycler_id, item_id), item.to_document())
        logger.info(
            f"Inventory item added for product {item.product_id}",
            extra={"recycler_id": recycler_id},
        )
        return item

    async def update_inventory_item(self, recycler_id: str, item_id: str, fields: dict) -> InventoryItem:
        path = paths.inventory_item_path(recycler_id, item_id)
        updates = _clean_fields(fields)

        async def edit(tx: DocumentTransaction) -> InventoryItem:
            current = await tx.get(path)
            if current is None:
                raise ResourceNotFoundError("Inventory item", item_id)
            item = InventoryItem.from_document({**current, **updates}, recycler_id, item_id)
            if updates:
                tx.update(path, updates)
            return item

        return await self.store.run_transaction(edit)

    async def list_inventory(self, recycler_id: str) -> list[InventoryItem]:
        items = []
        for path, data in await self.store.list_documents(
            paths.inventory_collection(recycler_id),
        ):
            try:
                items.append(InventoryItem.from_document(data, recycler_id, paths.document_id(path)))
            except DataCorruptionError as e:
                logger.warning(f"Skipping malformed inventory item {path}: {e.reason}")
        return items

    async def search_inventory(self, recycler_id: str, term: str) -> list[InventoryItem]:
        """Case-insensitive substring match on product name or category."""
        needle = (term or "").strip().lower()
        items = await self.list_inventory(recycler_id)
        if not needle:
            return items
        return [
            item for item in items
            if needle in item.product_name.lower() or needle in (item.category or "").lower()
        ]

    async def delete_inventory_item(self, recycler_id: str, item_id: str) -> None:
        path = paths.inventory_item_path(recycler_id, item_id)

        async def remove(tx: DocumentTransaction) -> None:
            if await tx.get(path) is None:
                raise ResourceNotFoundError("Inventory item", item_id)
            tx.delete(path)

        await self.store.run_transaction(remove)
        logger.info("Inventory item deleted", extra={"recycler_id": recycler_id})
