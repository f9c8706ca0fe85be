"""Abstract base classes for the store and the block explorer."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

from dogeminer.models import (
    AuthUser,
    ChainTransaction,
    Deposit,
    DeviceFingerprint,
    Notification,
    Transaction,
)


class Store(ABC):
    """
    Abstract interface for the managed relational store.

    Balances are only ever changed through :meth:`rpc`, which runs a
    store-side procedure atomically. Row methods cover deposits,
    transactions, notifications and device fingerprints.
    """

    @abstractmethod
    async def get_user(self, token: str) -> Optional[AuthUser]:
        """
        Resolve a bearer token to the user it was issued to.

        Returns:
            The user, or None if the token is invalid or expired
        """
        pass

    @abstractmethod
    async def list_admin_ids(self) -> list[str]:
        """Return the ids of every user holding the admin role."""
        pass

    @abstractmethod
    async def rpc(self, fn: str, params: dict[str, Any], token: Optional[str] = None) -> Any:
        """
        Call a store-side procedure.

        Args:
            fn: Procedure name (e.g. ``internal_add_balance``)
            params: Named arguments
            token: Run as this user instead of the service role

        Returns:
            The procedure's decoded JSON result
        """
        pass

    # Deposits

    @abstractmethod
    async def find_active_deposit(self, user_id: str, now: datetime) -> Optional[Deposit]:
        """Return the user's pending deposit expiring after ``now``, if any."""
        pass

    @abstractmethod
    async def insert_deposit(self, values: dict[str, Any]) -> Deposit:
        """Insert a deposit row and return it as stored."""
        pass

    @abstractmethod
    async def find_expired_deposits(self, now: datetime) -> list[Deposit]:
        """Return pending deposits whose ``expires_at`` is before ``now``."""
        pass

    @abstractmethod
    async def mark_deposits_expired(self, deposit_ids: list[str]) -> list[str]:
        """
        Move the given deposits from pending to expired.

        Only rows still pending are touched.

        Returns:
            Ids of the rows that changed
        """
        pass

    @abstractmethod
    async def find_pending_deposit_by_code(self, verification_code: str) -> Optional[Deposit]:
        """Return the pending deposit carrying ``verification_code``, if any."""
        pass

    @abstractmethod
    async def complete_deposit(self, verification_code: str, verified_at: datetime) -> None:
        """Mark the pending deposit with ``verification_code`` as completed."""
        pass

    # Transactions

    @abstractmethod
    async def find_transaction(
        self,
        tx_hash: str,
        status: Optional[str] = None,
    ) -> Optional[Transaction]:
        """Return a transaction with ``tx_hash`` (optionally with ``status``)."""
        pass

    @abstractmethod
    async def complete_transaction(
        self,
        user_id: str,
        tx_hash: str,
        amount: float,
        notes: Optional[str] = None,
    ) -> bool:
        """
        Mark ``tx_hash`` completed for ``user_id`` in a single conditional write.

        A pending row for the hash is flipped to completed. When no pending
        row exists a completed row is inserted; the store's uniqueness on
        ``tx_hash`` rejects a second insert.

        Returns:
            False if another request already completed the hash
        """
        pass

    # Notifications

    @abstractmethod
    async def insert_notifications(self, notifications: list[Notification]) -> None:
        """Insert notification rows."""
        pass

    # Device fingerprints

    @abstractmethod
    async def users_for_fingerprint(self, fingerprint: str) -> set[str]:
        """Distinct user ids registered with ``fingerprint``."""
        pass

    @abstractmethod
    async def users_for_ip(self, ip_address: str) -> set[str]:
        """Distinct user ids registered from ``ip_address``."""
        pass

    @abstractmethod
    async def find_fingerprint(self, user_id: str, fingerprint: str) -> Optional[DeviceFingerprint]:
        pass

    @abstractmethod
    async def update_fingerprint(
        self,
        fingerprint_id: str,
        ip_address: str,
        user_agent: Optional[str],
    ) -> None:
        pass

    @abstractmethod
    async def insert_fingerprint(self, fingerprint: DeviceFingerprint) -> None:
        pass

    async def close(self) -> None:
        """
        Clean up resources (e.g., close HTTP sessions).

        Override this if the store holds resources that need cleanup.
        """
        pass


class BlockExplorer(ABC):
    """Abstract interface for a public blockchain explorer."""

    @abstractmethod
    async def get_transaction(self, tx_hash: str) -> Optional[ChainTransaction]:
        """
        Look up a transaction by hash.

        Returns:
            The transaction, or None if the explorer does not know it
        """
        pass

    async def close(self) -> None:
        pass
