"""Reverse Geocoding Client — Google Geocoding API lookup of a formatted address.

Invariants:
    - reverse_geocode never raises: any failure returns None and is logged
    - No API key configured → None without a network call
    - Only status "OK" with at least one result yields an address

Design Decisions:
    - httpx.AsyncClient injected (or built per call): tests swap in httpx.MockTransport
"""

import logging

import httpx

from uemp.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class GoogleGeocodingClient:
    """Best-effort reverse geocoding over httpx."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://maps.googleapis.com/maps/api/geocode/json",
        timeout_seconds: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self._http_client = http_client

    async def reverse_geocode(self, lat: float, lng: float) -> str | None:
        if not self.api_key:
            logger.warning("Geocoding API key is missing; address left unset")
            return None
        try:
            return await self._lookup(lat, lng)
        except ExternalServiceError as e:
            logger.warning(f"Reverse geocoding failed for ({lat}, {lng}): {e.message}")
            return None

    async def _lookup(self, lat: float, lng: float) -> str | None:
        params = {"latlng": f"{lat},{lng}", "key": self.api_key}
        try:
            if self._http_client is not None:
                response = await self._http_client.get(self.base_url, params=params)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.get(self.base_url, params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ExternalServiceError("geocoding", str(e))

        if data.get("status") != "OK" or not data.get("results"):
            logger.info(f"Geocoding returned no address: {data.get('status')}")
            return None
        return data["results"][0].get("formatted_address")
