"""FastAPI dependencies for dependency injection."""

from typing import Optional

from fastapi import Depends, Header, Request

from dogeminer.config import Config
from dogeminer.datasources import BlockExplorer, FaucetPayClient, ResendMailer, Store
from dogeminer.errors import AuthenticationError
from dogeminer.models import AuthUser
from dogeminer.services.fingerprint_service import client_ip

# Global instances - initialized at app startup
_config: Optional[Config] = None
_store: Optional[Store] = None
_explorer: Optional[BlockExplorer] = None
_faucetpay: Optional[FaucetPayClient] = None
_mailer: Optional[ResendMailer] = None


def set_dependencies(
    config: Config,
    store: Store,
    explorer: BlockExplorer,
    faucetpay: FaucetPayClient,
    mailer: Optional[ResendMailer],
) -> None:
    """Set the global instances."""
    global _config, _store, _explorer, _faucetpay, _mailer
    _config = config
    _store = store
    _explorer = explorer
    _faucetpay = faucetpay
    _mailer = mailer


def _require(value, name: str):
    if value is None:
        raise RuntimeError(f"{name} not initialized. Call set_dependencies() first.")
    return value


def get_config() -> Config:
    return _require(_config, "Config")


def get_store() -> Store:
    return _require(_store, "Store")


def get_explorer() -> BlockExplorer:
    return _require(_explorer, "BlockExplorer")


def get_faucetpay() -> FaucetPayClient:
    return _require(_faucetpay, "FaucetPayClient")


def get_mailer() -> Optional[ResendMailer]:
    return _mailer


def get_client_ip(request: Request) -> str:
    """Caller IP from proxy headers."""
    return client_ip(request.headers)


def get_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    """Extract the token from an ``Authorization: Bearer ...`` header."""
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Authentication required")
    return authorization[len("Bearer "):]


async def get_current_user(
    token: str = Depends(get_bearer_token),
    store: Store = Depends(get_store),
) -> AuthUser:
    """Resolve the bearer token to a user or fail with 401."""
    user = await store.get_user(token)
    if user is None:
        raise AuthenticationError("Invalid token")
    return user
