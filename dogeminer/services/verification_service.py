"""On-chain deposit verification and crediting."""

import logging
import math

from dogeminer.config import Config
from dogeminer.datasources import BlockExplorer, Store
from dogeminer.errors import ValidationError
from dogeminer.models import TransactionStatus, VerifyResult
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

ALREADY_PROCESSED = "Transaction already processed"
NOT_FOUND = "Transaction not found on chain"
NOT_CONFIRMED = "Transaction not confirmed"
NO_MATCHING_OUTPUT = "No output to deposit address"
AMOUNT_MISMATCH = "Amount mismatch"

MIN_CONFIRMATIONS = 1


class VerificationService:
    """Verifies a DOGE transaction against the deposit address and credits it once."""

    def __init__(
        self,
        store: Store,
        explorer: BlockExplorer,
        config: Config,
        notifications: NotificationService,
    ):
        self.store = store
        self.explorer = explorer
        self.config = config
        self.notifications = notifications

    async def verify(self, tx_hash: str, expected_amount: float, user_id: str) -> VerifyResult:
        """
        Verify ``tx_hash`` and credit ``user_id`` with what it paid.

        Checks run in order and the first failure is returned:
        already completed, unknown to the explorer, unconfirmed, no output
        to the deposit address, received total below the tolerance band.

        Args:
            tx_hash: Transaction hash reported by the user
            expected_amount: Amount the user claims to have sent (DOGE)
            user_id: User to credit

        Returns:
            VerifyResult; ``success=False`` carries the failing check in ``error``
        """
        tx_hash = tx_hash.strip()
        if not tx_hash:
            raise ValidationError("tx_hash is required")
        if math.isnan(expected_amount) or expected_amount <= 0:
            raise ValidationError("expected_amount must be positive")

        if await self.store.find_transaction(tx_hash, TransactionStatus.COMPLETED.value):
            logger.info(f"Transaction {tx_hash} already processed")
            return VerifyResult(success=False, error=ALREADY_PROCESSED)

        tx = await self.explorer.get_transaction(tx_hash)
        if tx is None:
            return VerifyResult(success=False, error=NOT_FOUND)

        if tx.confirmations < MIN_CONFIRMATIONS:
            return VerifyResult(success=False, error=NOT_CONFIRMED, confirmations=tx.confirmations)

        address = self.config.deposit_address
        if not tx.outputs_to(address):
            return VerifyResult(success=False, error=NO_MATCHING_OUTPUT, confirmations=tx.confirmations)

        received = tx.amount_to(address)
        if received < expected_amount * self.config.amount_tolerance:
            logger.warning(
                f"Amount mismatch for {tx_hash}: received {received}, expected {expected_amount}"
            )
            return VerifyResult(
                success=False,
                error=f"{AMOUNT_MISMATCH}: received {received} DOGE, expected {expected_amount} DOGE",
                confirmations=tx.confirmations,
            )

        claimed = await self.store.complete_transaction(
            user_id, tx_hash, received, notes="Verified on chain"
        )
        if not claimed:
            return VerifyResult(success=False, error=ALREADY_PROCESSED)

        await self.store.rpc("internal_add_balance", {"p_user_id": user_id, "p_amount": received})
        await self.notifications.deposit_credited(user_id, received, tx_hash)

        logger.info(f"Credited {received} DOGE to user {user_id} for {tx_hash}")
        return VerifyResult(
            success=True,
            credited_amount=received,
            confirmations=tx.confirmations,
            message=f"Deposit verified: {received} DOGE credited",
        )
