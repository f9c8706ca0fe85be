from .notification_service import NotificationService
from .deposit_service import DepositService
from .expiry_service import ExpiryService
from .verification_service import VerificationService
from .fingerprint_service import FingerprintService
from .ipn_service import IpnService
from .balance_context import BalanceContext, BalanceState

__all__ = [
    "NotificationService",
    "DepositService",
    "ExpiryService",
    "VerificationService",
    "FingerprintService",
    "IpnService",
    "BalanceContext",
    "BalanceState",
]
