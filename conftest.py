"""Shared test fixtures: in-memory store and explorer fakes."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import pytest

from dogeminer.config import Config
from dogeminer.datasources import BlockExplorer, Store
from dogeminer.errors import StoreError
from dogeminer.models import (
    AuthUser,
    ChainOutput,
    ChainTransaction,
    Deposit,
    DepositStatus,
    DeviceFingerprint,
    Notification,
    Transaction,
    TransactionStatus,
)

DEPOSIT_ADDRESS = "DTestDepositAddress111111111111111"
NOW = datetime(2025, 12, 20, 12, 0, 0, tzinfo=timezone.utc)
AFTER_PROMO = datetime(2026, 2, 1, 12, 0, 0, tzinfo=timezone.utc)

# Columns of the deposits table in the managed store
DEPOSIT_COLUMNS = {
    "id",
    "user_id",
    "amount",
    "verification_code",
    "status",
    "expires_at",
    "faucetpay_email",
    "created_at",
    "verified_at",
}


class FakeStore(Store):
    """In-memory Store with the balance procedures the app relies on."""

    def __init__(self):
        self.tokens: dict[str, AuthUser] = {}
        self.admins: list[str] = []
        self.deposits: dict[str, Deposit] = {}
        self.deposit_inserts: list[dict[str, Any]] = []
        self.transactions: list[Transaction] = []
        self.notifications: list[Notification] = []
        self.fingerprints: list[DeviceFingerprint] = []
        self.banned_fingerprints: set[str] = set()
        self.balances: dict[str, float] = {}
        self.total_earned: dict[str, float] = {}
        self.referral_codes: dict[str, str] = {}
        self.rpc_calls: list[tuple[str, dict, Optional[str]]] = []
        self.fail_rpc = False
        self.fail_reads = False

    def add_user(self, token: str, user_id: str, email: Optional[str] = None, balance: float = 0.0) -> AuthUser:
        user = AuthUser(id=user_id, email=email)
        self.tokens[token] = user
        self.balances[user_id] = balance
        return user

    def _check_reads(self):
        if self.fail_reads:
            raise StoreError("Store unreachable")

    async def get_user(self, token: str) -> Optional[AuthUser]:
        return self.tokens.get(token)

    async def list_admin_ids(self) -> list[str]:
        return list(self.admins)

    async def rpc(self, fn: str, params: dict[str, Any], token: Optional[str] = None) -> Any:
        self.rpc_calls.append((fn, params, token))
        if self.fail_rpc:
            raise StoreError("Store unreachable")

        user = self.tokens.get(token) if token else None
        if fn == "check_fingerprint_banned":
            return params["fp"] in self.banned_fingerprints
        if fn == "internal_add_balance":
            uid = params["p_user_id"]
            self.balances[uid] = self.balances.get(uid, 0.0) + params["p_amount"]
            self.total_earned[uid] = self.total_earned.get(uid, 0.0) + params["p_amount"]
            return {"success": True, "new_balance": self.balances[uid]}
        if user is None:
            return {"success": False, "error": "Not authenticated"}
        if fn == "get_balance":
            return {
                "success": True,
                "balance": self.balances.get(user.id, 0.0),
                "total_earned": self.total_earned.get(user.id, 0.0),
                "referral_code": self.referral_codes.get(user.id, ""),
            }
        if fn in ("add_balance", "claim_mining_reward"):
            self.balances[user.id] = self.balances.get(user.id, 0.0) + params["p_amount"]
            return {"success": True, "new_balance": self.balances[user.id]}
        if fn == "subtract_balance":
            if self.balances.get(user.id, 0.0) < params["p_amount"]:
                return {"success": False, "error": "Insufficient balance"}
            self.balances[user.id] -= params["p_amount"]
            return {"success": True, "new_balance": self.balances[user.id]}
        if fn == "apply_referral_code":
            if params["p_code"] != "GOODCODE":
                return {"success": False, "error": "Invalid referral code"}
            self.balances[user.id] = self.balances.get(user.id, 0.0) + 1.0
            return {"success": True, "new_balance": self.balances[user.id], "bonus": 1.0}
        raise StoreError(f"Unknown procedure {fn}")

    async def find_active_deposit(self, user_id: str, now: datetime) -> Optional[Deposit]:
        self._check_reads()
        for deposit in self.deposits.values():
            if deposit.user_id == user_id and deposit.is_active(now):
                return deposit
        return None

    async def insert_deposit(self, values: dict[str, Any]) -> Deposit:
        unknown = set(values) - DEPOSIT_COLUMNS
        if unknown:
            raise StoreError(f"Unknown deposits columns: {sorted(unknown)}")
        self.deposit_inserts.append(dict(values))
        deposit = Deposit.model_validate({"id": str(uuid.uuid4()), **values})
        self.deposits[deposit.id] = deposit
        return deposit

    async def find_expired_deposits(self, now: datetime) -> list[Deposit]:
        self._check_reads()
        return [
            d for d in self.deposits.values()
            if d.status == DepositStatus.PENDING and d.expires_at < now
        ]

    async def mark_deposits_expired(self, deposit_ids: list[str]) -> list[str]:
        changed = []
        for deposit_id in deposit_ids:
            deposit = self.deposits.get(deposit_id)
            if deposit is not None and deposit.status == DepositStatus.PENDING:
                deposit.status = DepositStatus.EXPIRED
                changed.append(deposit_id)
        return changed

    async def find_pending_deposit_by_code(self, verification_code: str) -> Optional[Deposit]:
        for deposit in self.deposits.values():
            if deposit.verification_code == verification_code and deposit.status == DepositStatus.PENDING:
                return deposit
        return None

    async def complete_deposit(self, verification_code: str, verified_at: datetime) -> None:
        deposit = await self.find_pending_deposit_by_code(verification_code)
        if deposit is not None:
            deposit.status = DepositStatus.COMPLETED
            deposit.verified_at = verified_at

    async def find_transaction(self, tx_hash: str, status: Optional[str] = None) -> Optional[Transaction]:
        self._check_reads()
        for tx in self.transactions:
            if tx.tx_hash == tx_hash and (status is None or tx.status.value == status):
                return tx
        return None

    async def complete_transaction(
        self,
        user_id: str,
        tx_hash: str,
        amount: float,
        notes: Optional[str] = None,
    ) -> bool:
        for tx in self.transactions:
            if tx.tx_hash == tx_hash and tx.user_id == user_id and tx.status == TransactionStatus.PENDING:
                tx.status = TransactionStatus.COMPLETED
                tx.amount = amount
                return True
        if any(tx.tx_hash == tx_hash for tx in self.transactions):
            return False
        self.transactions.append(Transaction(
            id=str(uuid.uuid4()),
            user_id=user_id,
            tx_hash=tx_hash,
            amount=amount,
            status=TransactionStatus.COMPLETED,
            notes=notes,
        ))
        return True

    async def insert_notifications(self, notifications: list[Notification]) -> None:
        self.notifications.extend(notifications)

    async def users_for_fingerprint(self, fingerprint: str) -> set[str]:
        self._check_reads()
        return {f.user_id for f in self.fingerprints if f.fingerprint == fingerprint}

    async def users_for_ip(self, ip_address: str) -> set[str]:
        self._check_reads()
        return {f.user_id for f in self.fingerprints if f.ip_address == ip_address}

    async def find_fingerprint(self, user_id: str, fingerprint: str) -> Optional[DeviceFingerprint]:
        for f in self.fingerprints:
            if f.user_id == user_id and f.fingerprint == fingerprint:
                return f
        return None

    async def update_fingerprint(self, fingerprint_id: str, ip_address: str, user_agent: Optional[str]) -> None:
        for f in self.fingerprints:
            if f.id == fingerprint_id:
                f.ip_address = ip_address
                f.user_agent = user_agent

    async def insert_fingerprint(self, fingerprint: DeviceFingerprint) -> None:
        self.fingerprints.append(fingerprint.model_copy(update={"id": str(uuid.uuid4())}))


class FakeExplorer(BlockExplorer):
    """Explorer serving canned transactions."""

    def __init__(self):
        self.transactions: dict[str, ChainTransaction] = {}
        self.lookups: list[str] = []

    def add(self, tx_hash: str, confirmations: int, outputs: list[tuple[str, float]]) -> ChainTransaction:
        tx = ChainTransaction(
            hash=tx_hash,
            confirmations=confirmations,
            outputs=[ChainOutput(value=round(amount * 100_000_000), addresses=[address]) for address, amount in outputs],
        )
        self.transactions[tx_hash] = tx
        return tx

    async def get_transaction(self, tx_hash: str) -> Optional[ChainTransaction]:
        self.lookups.append(tx_hash)
        return self.transactions.get(tx_hash)


def fixed_clock(when: datetime):
    return lambda: when


@pytest.fixture
def config() -> Config:
    return Config(
        supabase_url="http://store.test",
        supabase_service_role_key="service-key",
        deposit_address=DEPOSIT_ADDRESS,
        faucetpay_deposit_email="deposits@dogeminer.test",
        promo_end=datetime(2026, 1, 7, tzinfo=timezone.utc),
    )


@pytest.fixture
def store() -> FakeStore:
    fake = FakeStore()
    fake.add_user("token-alice", "a1b2c3d4-0000-0000-0000-000000000001", "alice@example.com")
    fake.add_user("token-bob", "b0b0b0b0-0000-0000-0000-000000000002", "bob@example.com")
    fake.add_user("token-admin", "adm10000-0000-0000-0000-000000000003", "admin@example.com")
    fake.admins.append("adm10000-0000-0000-0000-000000000003")
    return fake


@pytest.fixture
def explorer() -> FakeExplorer:
    return FakeExplorer()


@pytest.fixture
def alice(store: FakeStore) -> AuthUser:
    return store.tokens["token-alice"]


def make_deposit(store: FakeStore, user_id: str, expires_at: datetime, **values) -> Deposit:
    deposit = Deposit(
        id=str(uuid.uuid4()),
        user_id=user_id,
        amount=values.pop("amount", 10.0),
        verification_code=values.pop("verification_code", f"DM{uuid.uuid4().hex[:8].upper()}"),
        expires_at=expires_at,
        created_at=expires_at - timedelta(hours=1),
        **values,
    )
    store.deposits[deposit.id] = deposit
    return deposit
