"""Device fingerprint models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DeviceFingerprint(BaseModel):
    """A row from the ``device_fingerprints`` table."""
    id: Optional[str] = None
    user_id: str
    fingerprint: str
    ip_address: str
    user_agent: Optional[str] = None


class FingerprintRequest(BaseModel):
    """Body sent by the browser with its computed fingerprint."""
    model_config = ConfigDict(populate_by_name=True)

    action: Optional[str] = None
    fingerprint: Optional[str] = None
    user_agent: Optional[str] = Field(default=None, alias="userAgent")


class FingerprintResult(BaseModel):
    """Allow/deny decision of the multi-account heuristic."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    banned: Optional[bool] = None
    too_many_accounts: Optional[bool] = Field(default=None, alias="tooManyAccounts")
    action: Optional[str] = None
    error: Optional[str] = None

    @property
    def denied(self) -> bool:
        return bool(self.banned or self.too_many_accounts)
