"""Locations — facility and home coordinates, with a best-effort address lookup.

Invariants:
    - Coordinates are validated before anything is written
    - A failed or empty reverse geocode leaves the address unset; it never fails the save
    - Writes merge, so other fields on the facility document survive
"""

import logging

from uemp.core import document_paths as paths
from uemp.core.documents import GeoPoint
from uemp.core.field_ops import SERVER_TIMESTAMP
from uemp.core.geo import validate_coordinates
from uemp.core.repository_protocols import DocumentStore, GeocodingClient

logger = logging.getLogger(__name__)


class LocationService:

    def __init__(self, store: DocumentStore, geocoder: GeocodingClient | None = None):
        self.store = store
        self.geocoder = geocoder

    async def save_facility_location(
        self, recycler_id: str, lat: float, lng: float, address: str | None = None,
    ) -> dict:
        path = paths.facility_path(recycler_id)
        saved = await self._save(path, lat, lng, address)
        logger.info("Facility location saved", extra={"recycler_id": recycler_id})
        return saved

    async def save_home_location(
        self, consumer_id: str, lat: float, lng: float, address: str | None = None,
    ) -> dict:
        path = paths.home_location_path(consumer_id)
        saved = await self._save(path, lat, lng, address)
        logger.info("Home location saved", extra={"consumer_id": consumer_id})
        return saved

    async def get_home_location(self, consumer_id: str) -> dict | None:
        return await self.store.get(paths.home_location_path(consumer_id))

    async def _save(
        self, path: str, lat: float, lng: float, address: str | None,
    ) -> dict:
        validate_coordinates(lat, lng)
        location = GeoPoint(lat=float(lat), lng=float(lng))
        if not address:
            address = await self._lookup_address(location)
        fields = {"location": location.to_document(), "updatedAt": SERVER_TIMESTAMP}
        if address:
            fields["address"] = address
        await self.store.set(path, fields, merge=True)
        return {"location": location.to_document(), "address": address}

    async def _lookup_address(self, location: GeoPoint) -> str | None:
        if self.geocoder is None:
            return None
        try:
            return await self.geocoder.reverse_geocode(location.lat, location.lng)
        except Exception as e:
            logger.warning(f"Reverse geocoding failed: {e}")
            return None
