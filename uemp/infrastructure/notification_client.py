"""Rejection Email Client — SendGrid v3 mail-send for rejected recycling requests.

Invariants:
    - send_rejection_email raises ExternalServiceError on any transport or API failure;
      callers decide whether that is fatal (it never is for request rejection)
    - No API key configured → ExternalServiceError without a network call
"""

import logging

import httpx

from uemp.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)


def build_rejection_message(product_name: str, reason: str) -> tuple[str, str]:
    """(subject, plain-text body) for a rejection notice."""
    subject = f"Your recycling request for {product_name} was declined"
    body = (
        "Hello,\n\n"
        f"Your recycling request for {product_name} was declined by the recycler.\n\n"
        f"Reason: {reason}\n\n"
        "You can send a request to another nearby recycler from your dashboard.\n\n"
        "Best regards,\nUEMP Team\n"
    )
    return subject, body


class SendGridNotificationClient:
    """Sends transactional email through the SendGrid REST API."""

    def __init__(
        self,
        api_key: str,
        sender: str,
        base_url: str = "https://api.sendgrid.com/v3/mail/send",
        timeout_seconds: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.sender = sender
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self._http_client = http_client

    async def send_rejection_email(
        self, recipient: str, product_name: str, reason: str,
    ) -> None:
        if not self.api_key:
            raise ExternalServiceError("notification", "SendGrid API key is not configured")
        subject, body = build_rejection_message(product_name, reason)
        payload = {
            "personalizations": [{"to": [{"email": recipient}]}],
            "from": {"email": self.sender},
            "subject": subject,
            "content": [{"type": "text/plain", "value": body}],
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    self.base_url, json=payload, headers=headers,
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.post(self.base_url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ExternalServiceError("notification", str(e))
        logger.info(f"Rejection email sent for {product_name}")
