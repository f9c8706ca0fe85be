"""Application configuration."""

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp (``Z`` suffix allowed)."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass
class Config:
    """Application configuration loaded from environment variables."""

    # API settings
    host: str = "0.0.0.0"
    port: int = 8000

    # Supabase project (PostgREST + GoTrue)
    supabase_url: str = "http://localhost:54321"
    supabase_service_role_key: str = ""

    # Public DOGE block explorer
    explorer_api_url: str = "https://api.blockcypher.com/v1/doge/main"
    deposit_address: str = "DH5yaieqoZN36fDVciNyRueRGvGLR3mr7L"

    # FaucetPay
    faucetpay_deposit_email: str = "dogeminer@proton.me"
    faucetpay_api_key: Optional[str] = None

    # Admin email (Resend)
    resend_api_key: Optional[str] = None
    admin_email: str = "admin@dogeminer.app"

    # Deposit promo window: active while start <= now < end
    promo_start: Optional[datetime] = None
    promo_end: Optional[datetime] = _parse_time("2026-01-07T00:00:00Z")
    promo_min_deposit: float = 3.0
    promo_bonus_percent: float = 25.0

    # Policy knobs
    amount_tolerance: float = 0.95
    max_accounts_per_fingerprint: int = 2
    max_accounts_per_ip: int = 3

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        defaults = cls()
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            supabase_url=os.getenv("SUPABASE_URL", defaults.supabase_url),
            supabase_service_role_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY", ""),
            explorer_api_url=os.getenv("EXPLORER_API_URL", defaults.explorer_api_url),
            deposit_address=os.getenv("DEPOSIT_ADDRESS", defaults.deposit_address),
            faucetpay_deposit_email=os.getenv(
                "FAUCETPAY_DEPOSIT_EMAIL",
                defaults.faucetpay_deposit_email,
            ),
            faucetpay_api_key=os.getenv("FAUCETPAY_API_KEY"),
            resend_api_key=os.getenv("RESEND_API_KEY"),
            admin_email=os.getenv("ADMIN_EMAIL", defaults.admin_email),
            promo_start=_parse_time(os.getenv("PROMO_START")),
            promo_end=_parse_time(os.getenv("PROMO_END", "2026-01-07T00:00:00Z")),
            promo_min_deposit=float(os.getenv("PROMO_MIN_DEPOSIT", "3")),
            promo_bonus_percent=float(os.getenv("PROMO_BONUS_PERCENT", "25")),
            amount_tolerance=float(os.getenv("AMOUNT_TOLERANCE", "0.95")),
            max_accounts_per_fingerprint=int(os.getenv("MAX_ACCOUNTS_PER_FINGERPRINT", "2")),
            max_accounts_per_ip=int(os.getenv("MAX_ACCOUNTS_PER_IP", "3")),
        )
