"""Periodic sweep that expires stale deposit requests."""

import logging

from dogeminer.clock import Clock, utc_now
from dogeminer.datasources import Store
from dogeminer.models import ExpireResult

logger = logging.getLogger(__name__)


class ExpiryService:
    """Moves pending deposits past their ``expires_at`` to expired."""

    def __init__(self, store: Store, clock: Clock = utc_now):
        self.store = store
        self.clock = clock

    async def expire_deposits(self) -> ExpireResult:
        """
        Run one sweep.

        Expiry never credits anything. Running the sweep again right away
        finds nothing and returns ``expired_count=0``.
        """
        logger.info("Starting deposit expiration check...")
        expired = await self.store.find_expired_deposits(self.clock())
        logger.info(f"Found {len(expired)} expired deposits")

        if not expired:
            return ExpireResult(message="No expired deposits found", expired_count=0)

        expired_ids = await self.store.mark_deposits_expired([d.id for d in expired])
        logger.info(f"Successfully marked {len(expired_ids)} deposits as expired")

        return ExpireResult(
            message=f"Marked {len(expired_ids)} deposits as expired",
            expired_count=len(expired_ids),
            expired_ids=expired_ids,
        )
