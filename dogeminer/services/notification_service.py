"""Notification fan-out to users, administrators and the admin mailbox."""

import logging
from datetime import datetime
from typing import Any, Optional

from dogeminer.config import Config
from dogeminer.datasources import ResendMailer, Store
from dogeminer.errors import DogeMinerError
from dogeminer.models import Deposit, Notification

logger = logging.getLogger(__name__)

ADMIN_EMAIL_TEMPLATE = """\
<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif;">
  <h1>New pending deposit</h1>
  <p style="font-size: 28px; color: #f7931a;"><strong>{amount} DOGE</strong></p>
  <table>
    <tr><td>User email</td><td>{user_email}</td></tr>
    <tr><td>User ID</td><td>{user_id}</td></tr>
    <tr><td>Verification code</td><td>{verification_code}</td></tr>
    <tr><td>Created</td><td>{created_at}</td></tr>
    <tr><td>Deposit ID</td><td>{deposit_id}</td></tr>
  </table>
  <p>Review the deposit in the admin panel.</p>
</body>
</html>
"""


class NotificationService:
    """Inserts notification rows and sends the admin deposit email."""

    def __init__(self, store: Store, config: Config, mailer: Optional[ResendMailer] = None):
        self.store = store
        self.config = config
        self.mailer = mailer

    async def notify_user(
        self,
        user_id: str,
        type: str,
        title: str,
        message: str,
        data: Optional[dict[str, Any]] = None,
    ) -> Notification:
        """Insert a single notification for ``user_id``."""
        notification = Notification(
            user_id=user_id, type=type, title=title, message=message, data=data or {}
        )
        await self.store.insert_notifications([notification])
        return notification

    async def notify_admins(
        self,
        type: str,
        title: str,
        message: str,
        data: Optional[dict[str, Any]] = None,
    ) -> int:
        """
        Insert one notification per administrator.

        Returns:
            Number of administrators notified
        """
        admin_ids = await self.store.list_admin_ids()
        if not admin_ids:
            logger.info("No admins found to notify")
            return 0

        await self.store.insert_notifications([
            Notification(user_id=admin_id, type=type, title=title, message=message, data=data or {})
            for admin_id in admin_ids
        ])
        logger.info(f"Created {len(admin_ids)} admin notifications")
        return len(admin_ids)

    async def deposit_credited(self, user_id: str, amount: float, tx_hash: Optional[str] = None) -> Notification:
        data: dict[str, Any] = {"amount": amount}
        if tx_hash:
            data["tx_hash"] = tx_hash
        return await self.notify_user(
            user_id,
            "deposit",
            "Deposit Received!",
            f"Your deposit of {amount:.4f} DOGE has been credited to your account.",
            data,
        )

    async def deposit_reviewed(self, user_id: str, amount: float, approved: bool) -> Notification:
        """Tell a user an admin approved or rejected their deposit."""
        if approved:
            title = "Deposit approved"
            message = f"Your deposit of {amount} DOGE has been credited to your account."
        else:
            title = "Deposit rejected"
            message = (
                f"Your deposit of {amount} DOGE was rejected. "
                "Contact support if you think this is a mistake."
            )
        return await self.notify_user(
            user_id,
            "deposit",
            title,
            message,
            {"amount": amount, "status": "approved" if approved else "rejected"},
        )

    async def deposit_reported(
        self,
        user_id: str,
        amount: float,
        tx_hash: Optional[str],
        user_email: Optional[str],
    ) -> int:
        """Tell every admin a user reported a deposit awaiting review."""
        tx_label = f"{tx_hash[:20]}..." if tx_hash else "N/A"
        return await self.notify_admins(
            "admin_deposit",
            "New pending deposit",
            f"User {user_email or user_id} reported a deposit of {amount} DOGE. TX: {tx_label}",
            {
                "deposit_amount": amount,
                "tx_hash": tx_hash,
                "reporter_id": user_id,
                "reporter_email": user_email,
            },
        )

    async def email_admin_new_deposit(
        self,
        deposit: Deposit,
        user_email: Optional[str],
        created_at: datetime,
    ) -> bool:
        """
        Email the admin mailbox about a new deposit request.

        Best effort: failures are logged and reported as False, never raised.
        """
        if self.mailer is None:
            return False

        html = ADMIN_EMAIL_TEMPLATE.format(
            amount=deposit.amount,
            user_email=user_email or "not available",
            user_id=deposit.user_id,
            verification_code=deposit.verification_code,
            created_at=created_at.strftime("%Y-%m-%d %H:%M UTC"),
            deposit_id=deposit.id,
        )
        try:
            await self.mailer.send(
                [self.config.admin_email],
                f"New pending deposit - {deposit.amount} DOGE",
                html,
            )
        except DogeMinerError as e:
            logger.warning(f"Admin email for deposit {deposit.id} failed: {e}")
            return False
        return True
