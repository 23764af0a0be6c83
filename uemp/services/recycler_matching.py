"""Recycler Matching Service — nearby facilities whose inventory covers the consumer's products.

Invariants:
    - Reads fan out over three collections (facilities, scan records, inventories)
      with no cross-collection transaction; each per-item read is best-effort
    - Only active scan records (recycleStatus not started/finished) take part
    - Facilities are matched on productId; unmatched facilities are returned with an
      empty matchedProducts list unless include_unmatched=False
    - A missing or failing organization lookup yields UNKNOWN_ORGANIZATION
    - A facility whose inventory read fails stays in range results with no matches

Design Decisions:
    - Pure ranking and intersection live in core/matching.py; this module only does IO
"""

import logging

from uemp.core import document_paths as paths
from uemp.core.documents import GeoPoint, InventoryItem, RecyclerFacility
from uemp.core.errors import DataCorruptionError, ResourceNotFoundError
from uemp.core.geo import validate_coordinates
from uemp.core.matching import (
    DEFAULT_MAX_DISTANCE_KM, UNKNOWN_ORGANIZATION, RecyclerMatch,
    intersect_inventory, rank_facilities,
)
from uemp.core.repository_protocols import DocumentStore
from uemp.services.best_effort import gather_best_effort
from uemp.services.product_registry import ProductRegistry

logger = logging.getLogger(__name__)


class RecyclerMatchingService:
    """Discovery of recyclers near a consumer, joined against their registered models."""

    def __init__(self, store: DocumentStore, registry: ProductRegistry | None = None):
        self.store = store
        self.registry = registry or ProductRegistry(store)

    async def find_nearby_matches(
        self,
        consumer_location: GeoPoint,
        consumer_id: str,
        max_distance_km: float = DEFAULT_MAX_DISTANCE_KM,
        include_unmatched: bool = True,
    ) -> list[RecyclerMatch]:
        validate_coordinates(consumer_location.lat, consumer_location.lng)
        facilities = await self.load_facilities()
        ranked = rank_facilities(consumer_location, facilities, max_distance_km)

        active = await self.registry.list_registered_products(consumer_id)
        active_product_ids = {record.product_id for record in active}

        loaded = await gather_best_effort(
            [facility for facility, _ in ranked],
            lambda facility: self.load_inventory(facility.recycler_id),
            label="inventory of recycler",
        )
        inventories = {facility.recycler_id: items for facility, items in loaded}

        matches = []
        for facility, distance in ranked:
            matched = intersect_inventory(
                inventories.get(facility.recycler_id, []), active_product_ids,
            )
            if not matched and not include_unmatched:
                continue
            matches.append(RecyclerMatch(
                facility=facility,
                distance_km=distance,
                organization_name=await self.resolve_organization_name(facility.recycler_id),
                matched_products=matched,
            ))
        logger.info(
            f"Found {len(matches)} recycler(s) within {max_distance_km} km, "
            f"{sum(1 for m in matches if m.has_match)} with matching products",
            extra={"consumer_id": consumer_id},
        )
        return matches

    async def find_matches_from_home(
        self,
        consumer_id: str,
        max_distance_km: float = DEFAULT_MAX_DISTANCE_KM,
        include_unmatched: bool = True,
    ) -> list[RecyclerMatch]:
        data = await self.store.get(paths.home_location_path(consumer_id))
        if not data or data.get("location") is None:
            raise ResourceNotFoundError("Home location", consumer_id)
        origin = GeoPoint.from_document(data["location"], "HomeLocation")
        return await self.find_nearby_matches(
            origin, consumer_id, max_distance_km, include_unmatched,
        )

    async def load_facilities(self) -> list[RecyclerFacility]:
        """Every facility with a usable location; malformed ones are skipped."""
        facilities = []
        for path, data in await self.store.list_documents(paths.RECYCLERS_COLLECTION):
            try:
                facility = RecyclerFacility.from_document(data, paths.document_id(path))
            except DataCorruptionError as e:
                logger.warning(f"Skipping malformed facility {path}: {e.reason}")
                continue
            if facility.location is not None:
                facilities.append(facility)
        return facilities

    async def load_inventory(self, recycler_id: str) -> list[InventoryItem]:
        items = []
        for path, data in await self.store.list_documents(
            paths.inventory_collection(recycler_id),
        ):
            try:
                items.append(
                    InventoryItem.from_document(data, recycler_id, paths.document_id(path)),
                )
            except DataCorruptionError as e:
                logger.warning(
                    f"Skipping malformed inventory item {path}: {e.reason}",
                    extra={"recycler_id": recycler_id},
                )
        return items

    async def resolve_organization_name(self, recycler_id: str) -> str:
        try:
            profile = await self.store.get(paths.organization_profile_path(recycler_id))
        except Exception as e:
            logger.warning(
                f"Organization lookup failed: {e}", extra={"recycler_id": recycler_id},
            )
            return UNKNOWN_ORGANIZATION
        name = (profile or {}).get("organization")
        if not isinstance(name, str) or not name.strip():
            return UNKNOWN_ORGANIZATION
        return name
