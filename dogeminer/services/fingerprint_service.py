"""Device fingerprint hashing and the multi-account gate."""

import logging
from typing import Any, Mapping, Optional

from dogeminer.config import Config
from dogeminer.datasources import Store
from dogeminer.errors import DogeMinerError, ValidationError
from dogeminer.models import DeviceFingerprint, FingerprintResult

logger = logging.getLogger(__name__)

UNKNOWN_IP = "unknown"

# Component order is part of the hash; keep in sync with the browser
FINGERPRINT_COMPONENTS = (
    "userAgent",
    "language",
    "colorDepth",
    "screenResolution",
    "timezone",
    "platform",
    "canvas",
    "webgl",
)


def simple_hash(value: str) -> str:
    """
    32-bit shift-and-subtract string hash, as 8+ lowercase hex digits.

    ``h = h * 31 + code_unit`` wrapped to a signed 32-bit int, then the
    absolute value. Matches the hash the browser computes.
    """
    h = 0
    data = value.encode("utf-16-le")
    for i in range(0, len(data), 2):
        code = data[i] | (data[i + 1] << 8)
        h = ((h << 5) - h + code) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return format(abs(h), "x").zfill(8)


def generate_fingerprint(components: Mapping[str, Any]) -> str:
    """Hash the ``|``-joined fingerprint components."""
    parts = []
    for key in FINGERPRINT_COMPONENTS:
        value = components.get(key, "")
        parts.append("" if value is None else str(value))
    return simple_hash("|".join(parts))


def client_ip(headers: Mapping[str, str]) -> str:
    """First ``x-forwarded-for`` hop, else ``x-real-ip``, else ``unknown``."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return UNKNOWN_IP


class FingerprintService:
    """
    Caps how many accounts one device or one IP may hold.

    This is a heuristic. Collisions and spoofed fingerprints are expected.
    """

    def __init__(self, store: Store, config: Config):
        self.store = store
        self.config = config

    async def _evaluate(self, fingerprint: str, ip_address: str, user_id: Optional[str]) -> FingerprintResult:
        if await self.store.rpc("check_fingerprint_banned", {"fp": fingerprint}):
            logger.warning(f"Banned fingerprint detected: {fingerprint} (user {user_id})")
            return FingerprintResult(
                success=False,
                banned=True,
                error="This device is associated with a banned account",
            )

        fp_users = await self.store.users_for_fingerprint(fingerprint)
        if len(fp_users) >= self.config.max_accounts_per_fingerprint and user_id not in fp_users:
            logger.warning(f"Too many accounts from fingerprint: {fingerprint} ({len(fp_users)})")
            return FingerprintResult(
                success=False,
                too_many_accounts=True,
                error="Too many accounts from this device",
            )

        ip_users = await self.store.users_for_ip(ip_address)
        if len(ip_users) >= self.config.max_accounts_per_ip and user_id not in ip_users:
            logger.warning(f"Too many accounts from IP: {ip_address} ({len(ip_users)})")
            return FingerprintResult(
                success=False,
                too_many_accounts=True,
                error="Too many accounts from this IP",
            )

        return FingerprintResult(success=True, banned=False)

    async def check_public(self, fingerprint: Optional[str], ip_address: str) -> FingerprintResult:
        """
        Pre-registration check with no authenticated user.

        Store failures let the visitor through.
        """
        if not fingerprint:
            raise ValidationError("Fingerprint required")

        logger.info(f"Public fingerprint check: IP {ip_address}, fingerprint {fingerprint}")
        try:
            return await self._evaluate(fingerprint, ip_address, user_id=None)
        except DogeMinerError as e:
            logger.error(f"Fingerprint check failed, allowing: {e}")
            return FingerprintResult(success=True)

    async def check(self, user_id: str, fingerprint: Optional[str], ip_address: str) -> FingerprintResult:
        """Session-time check; the caller's own accounts do not count against the caps."""
        if not fingerprint:
            raise ValidationError("Fingerprint required")
        return await self._evaluate(fingerprint, ip_address, user_id=user_id)

    async def register(
        self,
        user_id: str,
        fingerprint: Optional[str],
        ip_address: str,
        user_agent: Optional[str],
    ) -> FingerprintResult:
        """Record the device for ``user_id``, refreshing IP and user agent if already known."""
        if not fingerprint:
            raise ValidationError("Fingerprint required")

        existing = await self.store.find_fingerprint(user_id, fingerprint)
        if existing is not None and existing.id is not None:
            await self.store.update_fingerprint(existing.id, ip_address, user_agent)
            logger.info(f"Updated existing fingerprint for user {user_id}")
            return FingerprintResult(success=True, action="updated")

        await self.store.insert_fingerprint(DeviceFingerprint(
            user_id=user_id,
            fingerprint=fingerprint,
            ip_address=ip_address,
            user_agent=user_agent,
        ))
        logger.info(f"Registered new fingerprint for user {user_id}")
        return FingerprintResult(success=True, action="registered")
