from .deposit import (
    Deposit,
    DepositStatus,
    DepositRequest,
    DepositResponse,
    DepositAddressRequest,
    ExpireResult,
)
from .transaction import (
    Transaction,
    TransactionType,
    TransactionStatus,
    VerifyRequest,
    VerifyResult,
)
from .chain import ChainOutput, ChainTransaction, SATOSHI_PER_DOGE
from .profile import AuthUser, Balance, BalanceMutation
from .notification import Notification, NotifyAdminRequest
from .fingerprint import DeviceFingerprint, FingerprintRequest, FingerprintResult

__all__ = [
    "Deposit",
    "DepositStatus",
    "DepositRequest",
    "DepositResponse",
    "DepositAddressRequest",
    "ExpireResult",
    "Transaction",
    "TransactionType",
    "TransactionStatus",
    "VerifyRequest",
    "VerifyResult",
    "ChainOutput",
    "ChainTransaction",
    "SATOSHI_PER_DOGE",
    "AuthUser",
    "Balance",
    "BalanceMutation",
    "Notification",
    "NotifyAdminRequest",
    "DeviceFingerprint",
    "FingerprintRequest",
    "FingerprintResult",
]
