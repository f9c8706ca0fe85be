"""Deposit service for issuing FaucetPay deposit requests."""

import logging
import math
from datetime import datetime, timedelta
from typing import Optional, Union

from dogeminer.clock import Clock, to_millis, utc_now
from dogeminer.config import Config
from dogeminer.datasources import Store, build_payment_url
from dogeminer.errors import ValidationError
from dogeminer.models import AuthUser, Deposit, DepositResponse, DepositStatus
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

MIN_DEPOSIT = 0.1
MAX_DEPOSIT = 100.0
DEPOSIT_TTL = timedelta(hours=1)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(value: int) -> str:
    """Render a non-negative integer in lowercase base 36."""
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_verification_code(user_id: str, now: datetime) -> str:
    """
    Build a deposit verification code.

    ``DM`` + first four characters of the user id + last four base-36
    digits of the current millisecond timestamp, all upper case.
    """
    suffix = to_base36(to_millis(now)).upper()[-4:]
    return f"DM{user_id[:4].upper()}{suffix}"


def is_promo_active(config: Config, at: datetime) -> bool:
    """Whether ``at`` falls inside the configured promo window."""
    if config.promo_start and at < config.promo_start:
        return False
    if config.promo_end and at >= config.promo_end:
        return False
    return True


def promo_bonus(config: Config, amount: float, at: datetime) -> float:
    """
    Promo bonus owed on ``amount`` for a deposit issued at ``at``.

    Deposits do not store their bonus; it is derived from the amount and
    the time the deposit was issued.
    """
    if is_promo_active(config, at) and amount >= config.promo_min_deposit:
        return amount * config.promo_bonus_percent / 100
    return 0.0


class DepositService:
    """Service for issuing deposit requests."""

    def __init__(
        self,
        store: Store,
        config: Config,
        notifications: Optional[NotificationService] = None,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.config = config
        self.notifications = notifications
        self.clock = clock

    def is_promo_active(self, now: datetime) -> bool:
        return is_promo_active(self.config, now)

    def compute_bonus(self, amount: float, now: datetime) -> float:
        return promo_bonus(self.config, amount, now)

    @staticmethod
    def validate_amount(amount: Union[float, str, None]) -> float:
        """Parse ``amount`` and reject NaN or anything outside [0.1, 100]."""
        try:
            value = float(amount)
        except (TypeError, ValueError):
            value = math.nan
        if math.isnan(value) or value < MIN_DEPOSIT or value > MAX_DEPOSIT:
            raise ValidationError("Amount must be between 0.1 and 100 DOGE")
        return value

    def _response(self, deposit: Deposit, now: datetime) -> DepositResponse:
        bonus = self.compute_bonus(deposit.amount, deposit.created_at or now)
        return DepositResponse(
            deposit_id=deposit.id,
            verification_code=deposit.verification_code,
            amount=deposit.amount,
            bonus=bonus,
            total_credited=deposit.amount + bonus,
            promo_active=self.is_promo_active(now),
            payment_url=build_payment_url(
                self.config.faucetpay_deposit_email,
                deposit.amount,
                deposit.verification_code,
            ),
            expires_at=deposit.expires_at,
            recipient=self.config.faucetpay_deposit_email,
        )

    async def issue_deposit(self, user: AuthUser, amount: Union[float, str, None]) -> DepositResponse:
        """
        Issue a deposit request for ``user``.

        A user holding an unexpired pending deposit gets that deposit back
        unchanged instead of a new one.

        Args:
            user: Authenticated user
            amount: Requested amount in DOGE

        Returns:
            DepositResponse with the payment URL and verification code
        """
        amount = self.validate_amount(amount)
        now = self.clock()

        existing = await self.store.find_active_deposit(user.id, now)
        if existing is not None:
            logger.info(f"Reusing pending deposit {existing.id} for user {user.id}")
            return self._response(existing, now)

        verification_code = generate_verification_code(user.id, now)
        bonus = self.compute_bonus(amount, now)

        deposit = await self.store.insert_deposit({
            "user_id": user.id,
            "amount": amount,
            "verification_code": verification_code,
            "faucetpay_email": user.email or "user",
            "status": DepositStatus.PENDING.value,
            "created_at": now.isoformat(),
            "expires_at": (now + DEPOSIT_TTL).isoformat(),
        })

        logger.info(
            f"Created deposit {deposit.id} for {amount} DOGE (bonus {bonus}), code: {verification_code}"
        )

        if self.notifications is not None:
            await self.notifications.email_admin_new_deposit(deposit, user.email, now)

        return self._response(deposit, now)
