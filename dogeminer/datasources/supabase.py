"""Supabase store implementation over the PostgREST and GoTrue HTTP APIs."""

import logging
from datetime import datetime
from typing import Any, Optional

import httpx

from dogeminer.errors import StoreError
from dogeminer.models import (
    AuthUser,
    Deposit,
    DepositStatus,
    DeviceFingerprint,
    Notification,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from .base import Store

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15.0
RETURN_REPRESENTATION = {"Prefer": "return=representation"}


class SupabaseStore(Store):
    """
    Store backed by a Supabase project.

    All requests use the service role key, except :meth:`get_user` and
    user-scoped :meth:`rpc` calls which forward the caller's own token so
    that row-level security applies.
    """

    def __init__(
        self,
        url: str,
        service_role_key: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Supabase store.

        Args:
            url: Project URL (e.g. https://xyz.supabase.co)
            service_role_key: Service role API key
            transport: Optional httpx transport, used to stub the network in tests
        """
        self.url = url.rstrip("/")
        self.service_role_key = service_role_key
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.url,
                headers={
                    "apikey": self.service_role_key,
                    "Authorization": f"Bearer {self.service_role_key}",
                    "Content-Type": "application/json",
                },
                timeout=REQUEST_TIMEOUT,
                transport=self._transport,
            )
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, str]] = None,
        json: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        """Send a request and raise StoreError for transport failures."""
        client = await self._get_client()
        try:
            return await client.request(method, path, params=params, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Store request {method} {path} failed: {e}")
            raise StoreError(f"Store unreachable: {e}") from e

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        """Decode a successful response or raise StoreError."""
        if response.is_error:
            logger.error(
                f"Store returned {response.status_code} for "
                f"{response.request.method} {response.request.url.path}: {response.text}"
            )
            raise StoreError(f"Store error {response.status_code}")
        if not response.content:
            return None
        return response.json()

    async def _select(self, table: str, params: dict[str, str]) -> list[dict]:
        params = {"select": "*", **params}
        return self._decode(await self._request("GET", f"/rest/v1/{table}", params=params)) or []

    async def _insert(self, table: str, rows: Any) -> list[dict]:
        response = await self._request(
            "POST", f"/rest/v1/{table}", json=rows, headers=RETURN_REPRESENTATION
        )
        return self._decode(response) or []

    async def _update(self, table: str, params: dict[str, str], values: dict[str, Any]) -> list[dict]:
        response = await self._request(
            "PATCH", f"/rest/v1/{table}", params=params, json=values, headers=RETURN_REPRESENTATION
        )
        return self._decode(response) or []

    async def get_user(self, token: str) -> Optional[AuthUser]:
        """Resolve a token through the GoTrue ``/user`` endpoint."""
        response = await self._request(
            "GET", "/auth/v1/user", headers={"Authorization": f"Bearer {token}"}
        )
        if response.status_code in (401, 403, 404):
            return None
        data = self._decode(response)
        return AuthUser.model_validate(data) if data else None

    async def list_admin_ids(self) -> list[str]:
        rows = await self._select("user_roles", {"select": "user_id", "role": "eq.admin"})
        return [row["user_id"] for row in rows]

    async def rpc(self, fn: str, params: dict[str, Any], token: Optional[str] = None) -> Any:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        response = await self._request("POST", f"/rest/v1/rpc/{fn}", json=params, headers=headers)
        return self._decode(response)

    async def find_active_deposit(self, user_id: str, now: datetime) -> Optional[Deposit]:
        rows = await self._select(
            "deposits",
            {
                "user_id": f"eq.{user_id}",
                "status": f"eq.{DepositStatus.PENDING.value}",
                "expires_at": f"gt.{now.isoformat()}",
                "order": "created_at.desc",
                "limit": "1",
            },
        )
        return Deposit.model_validate(rows[0]) if rows else None

    async def insert_deposit(self, values: dict[str, Any]) -> Deposit:
        rows = await self._insert("deposits", values)
        if not rows:
            raise StoreError("Failed to create deposit request")
        return Deposit.model_validate(rows[0])

    async def find_expired_deposits(self, now: datetime) -> list[Deposit]:
        rows = await self._select(
            "deposits",
            {
                "select": "id,user_id,amount,verification_code,status,expires_at",
                "status": f"eq.{DepositStatus.PENDING.value}",
                "expires_at": f"lt.{now.isoformat()}",
            },
        )
        return [Deposit.model_validate(row) for row in rows]

    async def mark_deposits_expired(self, deposit_ids: list[str]) -> list[str]:
        if not deposit_ids:
            return []
        rows = await self._update(
            "deposits",
            {
                "id": f"in.({','.join(deposit_ids)})",
                "status": f"eq.{DepositStatus.PENDING.value}",
            },
            {"status": DepositStatus.EXPIRED.value},
        )
        return [row["id"] for row in rows]

    async def find_pending_deposit_by_code(self, verification_code: str) -> Optional[Deposit]:
        rows = await self._select(
            "deposits",
            {
                "verification_code": f"eq.{verification_code}",
                "status": f"eq.{DepositStatus.PENDING.value}",
                "limit": "1",
            },
        )
        return Deposit.model_validate(rows[0]) if rows else None

    async def complete_deposit(self, verification_code: str, verified_at: datetime) -> None:
        await self._update(
            "deposits",
            {
                "verification_code": f"eq.{verification_code}",
                "status": f"eq.{DepositStatus.PENDING.value}",
            },
            {"status": DepositStatus.COMPLETED.value, "verified_at": verified_at.isoformat()},
        )

    async def find_transaction(
        self,
        tx_hash: str,
        status: Optional[str] = None,
    ) -> Optional[Transaction]:
        params = {"tx_hash": f"eq.{tx_hash}", "limit": "1"}
        if status is not None:
            params["status"] = f"eq.{status}"
        rows = await self._select("transactions", params)
        return Transaction.model_validate(rows[0]) if rows else None

    async def complete_transaction(
        self,
        user_id: str,
        tx_hash: str,
        amount: float,
        notes: Optional[str] = None,
    ) -> bool:
        values: dict[str, Any] = {"status": TransactionStatus.COMPLETED.value, "amount": amount}
        if notes:
            values["notes"] = notes

        updated = await self._update(
            "transactions",
            {
                "tx_hash": f"eq.{tx_hash}",
                "user_id": f"eq.{user_id}",
                "status": f"eq.{TransactionStatus.PENDING.value}",
            },
            values,
        )
        if updated:
            return True

        response = await self._request(
            "POST",
            "/rest/v1/transactions",
            json={
                "user_id": user_id,
                "tx_hash": tx_hash,
                "type": TransactionType.DEPOSIT.value,
                **values,
            },
            headers=RETURN_REPRESENTATION,
        )
        # 409: unique violation on tx_hash, someone else got there first
        if response.status_code == 409:
            logger.warning(f"Transaction {tx_hash} was completed concurrently")
            return False
        self._decode(response)
        return True

    async def insert_notifications(self, notifications: list[Notification]) -> None:
        if not notifications:
            return
        await self._insert("notifications", [n.model_dump() for n in notifications])

    async def users_for_fingerprint(self, fingerprint: str) -> set[str]:
        rows = await self._select(
            "device_fingerprints", {"select": "user_id", "fingerprint": f"eq.{fingerprint}"}
        )
        return {row["user_id"] for row in rows}

    async def users_for_ip(self, ip_address: str) -> set[str]:
        rows = await self._select(
            "device_fingerprints", {"select": "user_id", "ip_address": f"eq.{ip_address}"}
        )
        return {row["user_id"] for row in rows}

    async def find_fingerprint(self, user_id: str, fingerprint: str) -> Optional[DeviceFingerprint]:
        rows = await self._select(
            "device_fingerprints",
            {"user_id": f"eq.{user_id}", "fingerprint": f"eq.{fingerprint}", "limit": "1"},
        )
        return DeviceFingerprint.model_validate(rows[0]) if rows else None

    async def update_fingerprint(
        self,
        fingerprint_id: str,
        ip_address: str,
        user_agent: Optional[str],
    ) -> None:
        await self._update(
            "device_fingerprints",
            {"id": f"eq.{fingerprint_id}"},
            {"ip_address": ip_address, "user_agent": user_agent},
        )

    async def insert_fingerprint(self, fingerprint: DeviceFingerprint) -> None:
        await self._insert("device_fingerprints", fingerprint.model_dump(exclude={"id"}))

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
