from .base import Store, BlockExplorer
from .supabase import SupabaseStore
from .explorer import BlockCypherExplorer
from .faucetpay import FaucetPayClient, build_payment_url
from .mailer import ResendMailer

__all__ = [
    "Store",
    "BlockExplorer",
    "SupabaseStore",
    "BlockCypherExplorer",
    "FaucetPayClient",
    "build_payment_url",
    "ResendMailer",
]
