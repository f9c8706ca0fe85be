"""FaucetPay instant payment notification (IPN) processing."""

import logging
from typing import Mapping

from dogeminer.clock import Clock, to_millis, utc_now
from dogeminer.config import Config
from dogeminer.datasources import Store
from dogeminer.errors import ValidationError
from dogeminer.models import SATOSHI_PER_DOGE, Deposit
from .deposit_service import promo_bonus
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

ACK_OK = "OK"
ACK_IGNORED = "OK - Ignored currency"
ACK_USER_NOT_FOUND = "OK - User not found"
ACK_ALREADY_PROCESSED = "OK - Already processed"


class IpnService:
    """
    Credits deposits pushed by FaucetPay.

    FaucetPay retries anything that is not acknowledged, so outcomes that
    should not be retried (unknown user, duplicate) are still acknowledged.
    """

    def __init__(
        self,
        store: Store,
        notifications: NotificationService,
        config: Config,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.notifications = notifications
        self.config = config
        self.clock = clock

    def _bonus(self, received: float, deposit: Deposit) -> float:
        """
        Promo bonus for ``received`` DOGE paid against ``deposit``.

        Computed on the smaller of the paid and requested amounts, and only
        when the payment reaches the requested amount within tolerance.
        """
        if received < deposit.amount * self.config.amount_tolerance:
            logger.warning(
                f"Underpaid deposit {deposit.verification_code}: "
                f"received {received} DOGE, requested {deposit.amount} DOGE, no bonus"
            )
            return 0.0
        issued_at = deposit.created_at or self.clock()
        return promo_bonus(self.config, min(received, deposit.amount), issued_at)

    async def process(self, payload: Mapping[str, str]) -> str:
        """
        Process one IPN payload.

        Args:
            payload: Flat IPN fields; ``amount`` is in satoshi and ``custom``
                carries the deposit verification code

        Returns:
            Acknowledgement text for FaucetPay
        """
        payout_user_hash = payload.get("payout_user_hash")
        amount_raw = payload.get("amount")
        currency = payload.get("currency")

        if not payout_user_hash or not amount_raw or not currency:
            raise ValidationError("Missing required fields")

        if currency.upper() != "DOGE":
            logger.info(f"Ignoring non-DOGE currency: {currency}")
            return ACK_IGNORED

        try:
            satoshi = int(float(amount_raw))
        except (ValueError, OverflowError) as e:
            raise ValidationError(f"Invalid amount: {amount_raw}") from e
        if satoshi <= 0:
            raise ValidationError(f"Invalid amount: {amount_raw}")
        amount = satoshi / SATOSHI_PER_DOGE

        custom = payload.get("custom")
        deposit = await self.store.find_pending_deposit_by_code(custom) if custom else None
        if deposit is None:
            logger.error(f"Could not identify user for payout_user_hash: {payout_user_hash}")
            return ACK_USER_NOT_FOUND

        now = self.clock()
        tx_hash = payload.get("transaction_id") or payload.get("payout_id") or f"ipn_{to_millis(now)}"

        if await self.store.find_transaction(tx_hash) is not None:
            logger.info(f"Transaction already processed: {tx_hash}")
            return ACK_ALREADY_PROCESSED

        credited = amount + self._bonus(amount, deposit)
        claimed = await self.store.complete_transaction(
            deposit.user_id, tx_hash, credited, notes="Auto-deposit via FaucetPay IPN"
        )
        if not claimed:
            return ACK_ALREADY_PROCESSED

        await self.store.rpc(
            "internal_add_balance", {"p_user_id": deposit.user_id, "p_amount": credited}
        )
        await self.store.complete_deposit(deposit.verification_code, now)
        await self.notifications.deposit_credited(deposit.user_id, credited, tx_hash)

        logger.info(f"Processed IPN deposit of {credited} DOGE for user {deposit.user_id}")
        return ACK_OK
