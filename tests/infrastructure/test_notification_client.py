"""Rejection email client — SendGrid payload and failure mapping."""

import json

import httpx
import pytest

from uemp.core.errors import ExternalServiceError
from uemp.infrastructure.notification_client import (
    SendGridNotificationClient, build_rejection_message,
)


def _http(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_message_mentions_product_and_reason():
    subject, body = build_rejection_message("Kettle", "Not accepted here")
    assert "Kettle" in subject
    assert "Not accepted here" in body


async def test_sends_authorized_payload():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(202)

    async with _http(handler) as http:
        client = SendGridNotificationClient("sg-key", "noreply@test", http_client=http)
        await client.send_rejection_email("user@test", "Kettle", "Too damaged")

    assert captured["auth"] == "Bearer sg-key"
    assert captured["body"]["personalizations"][0]["to"][0]["email"] == "user@test"
    assert captured["body"]["from"]["email"] == "noreply@test"


async def test_provider_error_raises_external_service_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"errors": []})

    async with _http(handler) as http:
        client = SendGridNotificationClient("bad", "noreply@test", http_client=http)
        with pytest.raises(ExternalServiceError):
            await client.send_rejection_email("user@test", "Kettle", "reason")


async def test_missing_key_raises_without_network():
    client = SendGridNotificationClient("", "noreply@test")
    with pytest.raises(ExternalServiceError) as exc:
        await client.send_rejection_email("user@test", "Kettle", "reason")
    assert exc.value.retryable
