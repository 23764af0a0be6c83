"""Reverse geocoding client — best-effort lookups over a mocked transport."""

import httpx

from uemp.infrastructure.geocoding_client import GoogleGeocodingClient


def _http(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def test_returns_first_formatted_address():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["latlng"] == "12.5,77.25"
        assert request.url.params["key"] == "test-key"
        return httpx.Response(200, json={
            "status": "OK",
            "results": [{"formatted_address": "MG Road, Bengaluru"}, {"formatted_address": "x"}],
        })

    async with _http(handler) as http:
        geocoder = GoogleGeocodingClient("test-key", http_client=http)
        assert await geocoder.reverse_geocode(12.5, 77.25) == "MG Road, Bengaluru"


async def test_non_ok_status_returns_none():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})

    async with _http(handler) as http:
        assert await GoogleGeocodingClient("k", http_client=http).reverse_geocode(0, 0) is None


async def test_http_failure_returns_none():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    async with _http(handler) as http:
        assert await GoogleGeocodingClient("k", http_client=http).reverse_geocode(0, 0) is None


async def test_missing_key_skips_network():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    async with _http(handler) as http:
        assert await GoogleGeocodingClient("", http_client=http).reverse_geocode(0, 0) is None
    assert calls == []
