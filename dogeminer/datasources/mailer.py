"""Transactional email through the Resend API."""

import logging
from typing import Optional

import httpx

from dogeminer.errors import PaymentProcessorError

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com"
DEFAULT_SENDER = "DogeMiner <onboarding@resend.dev>"


class ResendMailer:
    """Sends HTML email via ``POST /emails``."""

    def __init__(
        self,
        api_key: Optional[str],
        sender: str = DEFAULT_SENDER,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.sender = sender
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=RESEND_API_URL,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=10.0,
                transport=self._transport,
            )
        return self._client

    async def send(self, to: list[str], subject: str, html: str) -> dict:
        """
        Send one email.

        Raises:
            PaymentProcessorError: if the key is missing or Resend rejects the message
        """
        if not self.api_key:
            raise PaymentProcessorError("Resend API key not configured")

        client = await self._get_client()
        try:
            response = await client.post(
                "/emails",
                json={"from": self.sender, "to": to, "subject": subject, "html": html},
            )
        except httpx.HTTPError as e:
            raise PaymentProcessorError(f"Resend unreachable: {e}") from e

        if response.is_error:
            raise PaymentProcessorError(f"Resend returned {response.status_code}: {response.text}")
        return response.json()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
