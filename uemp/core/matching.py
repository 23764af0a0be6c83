"""Recycler Matching — pure distance ranking and model-level inventory intersection.

Invariants:
    - rank_facilities drops facilities without a location or beyond max_distance_km
    - Ordering is (distance ascending, recycler_id ascending): deterministic on ties
    - Intersection is by productId (model identity), never by serial number
    - A facility with zero matched items is still a RecyclerMatch (empty list)
"""

from dataclasses import dataclass, field

from uemp.core.documents import GeoPoint, InventoryItem, RecyclerFacility
from uemp.core.geo import haversine_km

DEFAULT_MAX_DISTANCE_KM: float = 500.0
UNKNOWN_ORGANIZATION: str = "Unknown organization"


@dataclass
class RecyclerMatch:
    facility: RecyclerFacility
    distance_km: float
    organization_name: str = UNKNOWN_ORGANIZATION
    matched_products: list[InventoryItem] = field(default_factory=list)

    @property
    def has_match(self) -> bool:
        return bool(self.matched_products)

    def to_public(self) -> dict:
        location = self.facility.location
        return {
            "recyclerId": self.facility.recycler_id,
            "organizationName": self.organization_name,
            "address": self.facility.address,
            "location": location.to_document() if location else None,
            "distanceKm": round(self.distance_km, 3),
            "matchedProducts": [item.to_public() for item in self.matched_products],
        }


def rank_facilities(
    origin: GeoPoint,
    facilities: list[RecyclerFacility],
    max_distance_km: float = DEFAULT_MAX_DISTANCE_KM,
) -> list[tuple[RecyclerFacility, float]]:
    ranked = []
    for facility in facilities:
        if facility.location is None:
            continue
        distance = haversine_km(
            origin.lat, origin.lng, facility.location.lat, facility.location.lng,
        )
        if distance <= max_distance_km:
            ranked.append((facility, distance))
    ranked.sort(key=lambda pair: (pair[1], pair[0].recycler_id))
    return ranked


def intersect_inventory(
    inventory: list[InventoryItem], active_product_ids: set[str],
) -> list[InventoryItem]:
    return [item for item in inventory if item.product_id in active_product_ids]
