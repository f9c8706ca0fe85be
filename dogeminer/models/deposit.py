"""Deposit models for storage records and API responses."""

from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class DepositStatus(str, Enum):
    """Lifecycle of a deposit request."""
    PENDING = "pending"
    COMPLETED = "completed"
    EXPIRED = "expired"


class Deposit(BaseModel):
    """
    A deposit request row from the ``deposits`` table.

    Created pending with a one hour TTL, then either completed by a matching
    payment or swept to expired.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str
    amount: float = Field(description="Requested amount in DOGE")
    verification_code: str
    status: DepositStatus = DepositStatus.PENDING
    expires_at: datetime
    faucetpay_email: Optional[str] = None
    created_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None

    def is_active(self, now: datetime) -> bool:
        """Pending and not yet past its expiry."""
        return self.status == DepositStatus.PENDING and self.expires_at > now


class DepositRequest(BaseModel):
    """
    Body of a deposit issuance request.

    ``amount`` may arrive as a number or a numeric string; range checks
    happen in the service so every bad value gets the same 400 message.
    """
    amount: Optional[Union[float, str]] = Field(default=None, description="Amount in DOGE, 0.1 to 100 inclusive")


class DepositResponse(BaseModel):
    """Deposit issuance result with the FaucetPay payment link."""
    success: bool = True
    deposit_id: str
    verification_code: str
    amount: float
    bonus: float
    total_credited: float
    promo_active: bool
    payment_url: str
    expires_at: datetime
    recipient: str


class ExpireResult(BaseModel):
    """Outcome of one expiry sweep."""
    success: bool = True
    message: str
    expired_count: int
    expired_ids: list[str] = Field(default_factory=list)


class DepositAddressRequest(BaseModel):
    """Body of a FaucetPay deposit address lookup."""
    currency: str = "DOGE"
