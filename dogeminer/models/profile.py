"""User identity and balance models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class AuthUser(BaseModel):
    """The authenticated user behind a bearer token."""
    model_config = ConfigDict(extra="ignore")

    id: str
    email: Optional[str] = None


class Balance(BaseModel):
    """Spendable balance fields from the user's profile row."""
    balance: float = 0.0
    total_earned: float = 0.0
    referral_code: str = ""


class BalanceMutation(BaseModel):
    """
    Result of a balance RPC such as ``add_balance`` or ``subtract_balance``.

    The store returns ``{success, new_balance}`` on success and
    ``{success: false, error}`` on a business-rule failure.
    """
    model_config = ConfigDict(extra="allow")

    success: bool
    new_balance: Optional[float] = None
    bonus: Optional[float] = None
    error: Optional[str] = None
