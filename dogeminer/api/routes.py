"""API routes for the deposit functions."""

import json
import logging
from typing import Optional
from urllib.parse import parse_qsl

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from dogeminer.config import Config
from dogeminer.datasources import BlockExplorer, FaucetPayClient, ResendMailer, Store
from dogeminer.errors import AuthenticationError, ValidationError
from dogeminer.models import (
    AuthUser,
    DepositAddressRequest,
    DepositRequest,
    DepositResponse,
    ExpireResult,
    FingerprintRequest,
    FingerprintResult,
    NotifyAdminRequest,
    VerifyRequest,
    VerifyResult,
)
from dogeminer.services import (
    DepositService,
    ExpiryService,
    FingerprintService,
    IpnService,
    NotificationService,
    VerificationService,
)
from .dependencies import (
    get_client_ip,
    get_config,
    get_current_user,
    get_explorer,
    get_faucetpay,
    get_mailer,
    get_store,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions")


def _fingerprint_response(result: FingerprintResult) -> JSONResponse:
    """Denials go out as 403, everything else as 200."""
    return JSONResponse(
        status_code=403 if result.denied else 200,
        content=result.model_dump(by_alias=True, exclude_none=True),
    )


@router.post("/create-faucetpay-deposit", response_model=DepositResponse)
async def create_faucetpay_deposit(
    body: DepositRequest,
    user: AuthUser = Depends(get_current_user),
    store: Store = Depends(get_store),
    config: Config = Depends(get_config),
    mailer: Optional[ResendMailer] = Depends(get_mailer),
) -> DepositResponse:
    """
    Issue a deposit request and return its FaucetPay payment link.

    Returns the user's open deposit unchanged if one has not expired yet.
    """
    notifications = NotificationService(store, config, mailer)
    service = DepositService(store, config, notifications)
    return await service.issue_deposit(user, body.amount)


@router.post("/expire-deposits", response_model=ExpireResult)
async def expire_deposits(store: Store = Depends(get_store)) -> ExpireResult:
    """Expire pending deposits past their deadline. Called by a scheduler."""
    service = ExpiryService(store)
    return await service.expire_deposits()


@router.post("/verify-deposit", response_model=VerifyResult, response_model_exclude_none=True)
async def verify_deposit(
    body: VerifyRequest,
    user: AuthUser = Depends(get_current_user),
    store: Store = Depends(get_store),
    explorer: BlockExplorer = Depends(get_explorer),
    config: Config = Depends(get_config),
) -> VerifyResult:
    """
    Verify an on-chain DOGE payment to the deposit address and credit it.

    Returns: success, credited_amount, confirmations, message (or error)
    """
    if body.user_id != user.id and user.id not in await store.list_admin_ids():
        raise AuthenticationError("Cannot verify deposits for another user")

    notifications = NotificationService(store, config)
    service = VerificationService(store, explorer, config, notifications)
    return await service.verify(body.tx_hash, body.expected_amount, body.user_id)


@router.post("/validate-fingerprint-public")
async def validate_fingerprint_public(
    body: FingerprintRequest,
    ip_address: str = Depends(get_client_ip),
    store: Store = Depends(get_store),
    config: Config = Depends(get_config),
) -> JSONResponse:
    """Multi-account pre-check before sign-up. No authentication."""
    service = FingerprintService(store, config)
    return _fingerprint_response(await service.check_public(body.fingerprint, ip_address))


@router.post("/validate-fingerprint")
async def validate_fingerprint(
    body: FingerprintRequest,
    user: AuthUser = Depends(get_current_user),
    ip_address: str = Depends(get_client_ip),
    store: Store = Depends(get_store),
    config: Config = Depends(get_config),
) -> JSONResponse:
    """Session-time fingerprint ``check`` or ``register`` for the signed-in user."""
    logger.info(f"Fingerprint action: {body.action}, user: {user.id}, IP: {ip_address}")
    service = FingerprintService(store, config)

    if body.action == "check":
        result = await service.check(user.id, body.fingerprint, ip_address)
    elif body.action == "register":
        result = await service.register(user.id, body.fingerprint, ip_address, body.user_agent)
    else:
        raise ValidationError("Invalid action")
    return _fingerprint_response(result)


@router.post("/notify-admin-deposit")
async def notify_admin_deposit(
    body: NotifyAdminRequest,
    user: AuthUser = Depends(get_current_user),
    store: Store = Depends(get_store),
    config: Config = Depends(get_config),
) -> dict:
    """Notify admins of a reported deposit, or (admins only) notify a user of a review."""
    service = NotificationService(store, config)

    if body.action == "notify_user":
        if user.id not in await store.list_admin_ids():
            raise AuthenticationError("Admin role required")
        await service.deposit_reviewed(body.user_id, body.amount, approved=body.status == "approved")
        return {"success": True}

    notified = await service.deposit_reported(body.user_id, body.amount, body.tx_hash, body.user_email)
    if notified == 0:
        return {"success": True, "message": "No admins to notify"}
    return {"success": True, "notified_admins": notified}


@router.post("/faucetpay-ipn", response_class=PlainTextResponse)
async def faucetpay_ipn(
    request: Request,
    store: Store = Depends(get_store),
    config: Config = Depends(get_config),
) -> str:
    """
    Receive a FaucetPay IPN.

    Accepts JSON or form-encoded bodies and answers in plain text.
    """
    raw = (await request.body()).decode("utf-8", errors="replace")
    if "application/json" in request.headers.get("content-type", ""):
        try:
            payload = {k: str(v) for k, v in json.loads(raw or "{}").items()}
        except (ValueError, AttributeError) as e:
            raise ValidationError("Malformed IPN body") from e
    else:
        payload = dict(parse_qsl(raw))

    logger.info(f"Received IPN fields: {sorted(payload)}")
    service = IpnService(store, NotificationService(store, config), config)
    return await service.process(payload)


@router.post("/get-deposit-address")
async def get_deposit_address(
    body: DepositAddressRequest,
    user: AuthUser = Depends(get_current_user),
    faucetpay: FaucetPayClient = Depends(get_faucetpay),
) -> JSONResponse:
    """Fetch a FaucetPay deposit address for the requested currency."""
    logger.info(f"Getting deposit address for user {user.id}, currency: {body.currency}")
    data = await faucetpay.get_deposit_address(body.currency)

    if data.get("status") == 200:
        return JSONResponse({
            "success": True,
            "address": data.get("address"),
            "currency": body.currency.upper(),
        })
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": data.get("message") or "Failed to get deposit address"},
    )
