"""BlockCypher block explorer implementation."""

import asyncio
import logging
from typing import Optional

import httpx

from dogeminer.errors import ExplorerError
from dogeminer.models import ChainOutput, ChainTransaction
from .base import BlockExplorer

logger = logging.getLogger(__name__)

# API constants
DOGE_MAINNET_URL = "https://api.blockcypher.com/v1/doge/main"
REQUEST_TIMEOUT = 20.0
MAX_RETRIES = 3
RETRY_DELAY = 2.0


class BlockCypherExplorer(BlockExplorer):
    """
    Explorer backed by the BlockCypher public REST API.

    Limitations:
    - Unauthenticated requests are rate limited (HTTP 429), retried here
    - Outputs without a standard address report an empty address list
    """

    def __init__(
        self,
        api_url: str = DOGE_MAINNET_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_delay: float = RETRY_DELAY,
    ):
        """
        Initialize the explorer.

        Args:
            api_url: Base URL for the chain (e.g. .../v1/doge/main)
            transport: Optional httpx transport, used to stub the network in tests
            retry_delay: Seconds to wait between retries
        """
        self.api_url = api_url
        self.retry_delay = retry_delay
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

    async def _make_request(self, endpoint: str, retry_count: int = 0) -> Optional[dict]:
        """
        GET an endpoint with timeout and rate-limit retries.

        Returns:
            Response JSON data, or None on 404
        """
        client = await self._get_client()

        try:
            response = await client.get(endpoint)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()

        except httpx.TimeoutException as e:
            if retry_count < MAX_RETRIES:
                logger.warning(
                    f"Request to {endpoint} timed out (attempt {retry_count + 1}/{MAX_RETRIES}). "
                    f"Retrying in {self.retry_delay}s..."
                )
                await asyncio.sleep(self.retry_delay)
                return await self._make_request(endpoint, retry_count + 1)
            logger.error(f"Request to {endpoint} failed after {MAX_RETRIES} retries: {e}")
            raise ExplorerError(f"Block explorer timed out: {e}") from e

        except httpx.HTTPStatusError as e:
            if e.response.status_code == 429 and retry_count < MAX_RETRIES:
                logger.warning(
                    f"Rate limited (429) on {endpoint} (attempt {retry_count + 1}/{MAX_RETRIES}). "
                    f"Retrying in {self.retry_delay}s..."
                )
                await asyncio.sleep(self.retry_delay)
                return await self._make_request(endpoint, retry_count + 1)

            logger.error(f"HTTP error {e.response.status_code} for {endpoint}: {e}")
            raise ExplorerError(f"Block explorer error {e.response.status_code}") from e

        except httpx.HTTPError as e:
            logger.error(f"Unexpected error for {endpoint}: {e}")
            raise ExplorerError(f"Block explorer unreachable: {e}") from e

    async def get_transaction(self, tx_hash: str) -> Optional[ChainTransaction]:
        """Fetch a transaction via ``GET /txs/{hash}``."""
        data = await self._make_request(f"/txs/{tx_hash}")
        if data is None:
            return None

        outputs = [
            ChainOutput(value=int(o.get("value", 0)), addresses=o.get("addresses") or [])
            for o in data.get("outputs", [])
        ]
        return ChainTransaction(
            hash=data.get("hash", tx_hash),
            confirmations=int(data.get("confirmations", 0)),
            outputs=outputs,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
