"""FaucetPay payment processor client."""

import logging
import math
from typing import Optional
from urllib.parse import urlencode

import httpx

from dogeminer.errors import PaymentProcessorError
from dogeminer.models import SATOSHI_PER_DOGE

logger = logging.getLogger(__name__)

FAUCETPAY_API_URL = "https://faucetpay.io/api/v1"
SEND_PAYMENT_URL = "https://faucetpay.io/page/send-payment"
REQUEST_TIMEOUT = 15.0


def build_payment_url(recipient: str, amount: float, reference: str, currency: str = "DOGE") -> str:
    """
    Build a FaucetPay send-payment link.

    The amount is encoded in satoshi. ``reference`` goes into both ``custom``
    (echoed back by the IPN) and ``ref``.
    """
    params = {
        "to": recipient,
        "amount": str(math.floor(amount * SATOSHI_PER_DOGE)),
        "currency": currency,
        "custom": reference,
        "ref": reference,
    }
    return f"{SEND_PAYMENT_URL}?{urlencode(params)}"


class FaucetPayClient:
    """Minimal client for the FaucetPay merchant API (form-encoded POSTs)."""

    def __init__(
        self,
        api_key: Optional[str],
        api_url: str = FAUCETPAY_API_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.api_url,
                timeout=REQUEST_TIMEOUT,
                transport=self._transport,
            )
        return self._client

    async def _post(self, endpoint: str, data: dict[str, str]) -> dict:
        if not self.api_key:
            raise PaymentProcessorError("FaucetPay API not configured")

        client = await self._get_client()
        try:
            response = await client.post(endpoint, data={"api_key": self.api_key, **data})
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"FaucetPay request to {endpoint} failed: {e}")
            raise PaymentProcessorError(f"FaucetPay unreachable: {e}") from e

    async def get_deposit_address(self, currency: str = "DOGE") -> dict:
        """
        Ask FaucetPay for a deposit address.

        Returns:
            The raw response; ``status == 200`` carries ``address``
        """
        data = await self._post("/getdepositaddress", {"currency": currency.lower()})
        logger.info(f"FaucetPay getdepositaddress response status: {data.get('status')}")
        return data

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
