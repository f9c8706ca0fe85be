"""Ledger transaction models and the deposit verification contract."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class Transaction(BaseModel):
    """A row from the ``transactions`` table."""
    id: str
    user_id: str
    tx_hash: Optional[str] = None
    amount: float
    type: TransactionType = TransactionType.DEPOSIT
    status: TransactionStatus = TransactionStatus.PENDING
    notes: Optional[str] = None


class VerifyRequest(BaseModel):
    """Body of an on-chain deposit verification request."""
    tx_hash: str = Field(description="DOGE transaction hash")
    expected_amount: float = Field(description="Amount the user says was sent, in DOGE")
    user_id: str


class VerifyResult(BaseModel):
    """
    Verification outcome.

    Business-rule failures come back with ``success=False`` and an ``error``
    describing which check rejected the transaction.
    """
    success: bool
    credited_amount: Optional[float] = None
    confirmations: Optional[int] = None
    message: Optional[str] = None
    error: Optional[str] = None
