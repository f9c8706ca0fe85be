"""Tests for on-chain deposit verification."""

import asyncio
import uuid

import pytest

from conftest import DEPOSIT_ADDRESS
from dogeminer.errors import ValidationError
from dogeminer.models import Transaction, TransactionStatus
from dogeminer.services import NotificationService, VerificationService
from dogeminer.services.verification_service import (
    ALREADY_PROCESSED,
    AMOUNT_MISMATCH,
    NO_MATCHING_OUTPUT,
    NOT_CONFIRMED,
    NOT_FOUND,
)

TX = "9f2c" + "0" * 60


def _service(store, explorer, config):
    return VerificationService(store, explorer, config, NotificationService(store, config))


def _credits(store):
    return [call for call in store.rpc_calls if call[0] == "internal_add_balance"]


def test_credits_exact_amount_with_two_confirmations(store, explorer, config, alice):
    explorer.add(TX, confirmations=2, outputs=[(DEPOSIT_ADDRESS, 25.0)])

    result = asyncio.run(_service(store, explorer, config).verify(TX, 25.0, alice.id))

    assert result.success
    assert result.credited_amount == 25.0
    assert result.confirmations == 2
    assert store.balances[alice.id] == 25.0
    assert _credits(store) == [("internal_add_balance", {"p_user_id": alice.id, "p_amount": 25.0}, None)]

    [notification] = store.notifications
    assert notification.user_id == alice.id
    assert notification.type == "deposit"
    assert notification.data["tx_hash"] == TX

    [tx] = store.transactions
    assert tx.status == TransactionStatus.COMPLETED
    assert tx.amount == 25.0


def test_completes_existing_pending_row(store, explorer, config, alice):
    store.transactions.append(Transaction(id=str(uuid.uuid4()), user_id=alice.id, tx_hash=TX, amount=0))
    explorer.add(TX, confirmations=3, outputs=[(DEPOSIT_ADDRESS, 10.0)])

    result = asyncio.run(_service(store, explorer, config).verify(TX, 10.0, alice.id))

    assert result.success
    assert len(store.transactions) == 1
    assert store.transactions[0].status == TransactionStatus.COMPLETED
    assert store.transactions[0].amount == 10.0


def test_already_processed_hash_is_rejected_without_credit(store, explorer, config, alice):
    explorer.add(TX, confirmations=2, outputs=[(DEPOSIT_ADDRESS, 25.0)])
    service = _service(store, explorer, config)
    asyncio.run(service.verify(TX, 25.0, alice.id))

    again = asyncio.run(service.verify(TX, 25.0, alice.id))

    assert again.success is False
    assert again.error == ALREADY_PROCESSED
    assert len(_credits(store)) == 1
    assert store.balances[alice.id] == 25.0
    assert explorer.lookups == [TX]


def test_unknown_transaction(store, explorer, config, alice):
    result = asyncio.run(_service(store, explorer, config).verify(TX, 5.0, alice.id))
    assert result.success is False
    assert result.error == NOT_FOUND
    assert _credits(store) == []


def test_unconfirmed_transaction(store, explorer, config, alice):
    explorer.add(TX, confirmations=0, outputs=[(DEPOSIT_ADDRESS, 5.0)])
    result = asyncio.run(_service(store, explorer, config).verify(TX, 5.0, alice.id))
    assert result.error == NOT_CONFIRMED
    assert result.confirmations == 0
    assert _credits(store) == []


def test_no_output_to_deposit_address(store, explorer, config, alice):
    explorer.add(TX, confirmations=6, outputs=[("DSomebodyElse", 5.0)])
    result = asyncio.run(_service(store, explorer, config).verify(TX, 5.0, alice.id))
    assert result.error == NO_MATCHING_OUTPUT
    assert _credits(store) == []


def test_sums_split_outputs(store, explorer, config, alice):
    explorer.add(
        TX,
        confirmations=1,
        outputs=[(DEPOSIT_ADDRESS, 4.0), ("DChange", 100.0), (DEPOSIT_ADDRESS, 6.0)],
    )
    result = asyncio.run(_service(store, explorer, config).verify(TX, 10.0, alice.id))
    assert result.success
    assert result.credited_amount == 10.0


@pytest.mark.parametrize("received, ok", [(9.5, True), (9.49, False), (5.0, False), (12.0, True)])
def test_tolerance_band(store, explorer, config, alice, received, ok):
    explorer.add(TX, confirmations=1, outputs=[(DEPOSIT_ADDRESS, received)])
    result = asyncio.run(_service(store, explorer, config).verify(TX, 10.0, alice.id))

    assert result.success is ok
    if ok:
        assert result.credited_amount == received
    else:
        assert result.error.startswith(AMOUNT_MISMATCH)
        assert _credits(store) == []
        assert store.notifications == []


def test_tolerance_is_configurable(store, explorer, config, alice):
    config.amount_tolerance = 1.0
    explorer.add(TX, confirmations=1, outputs=[(DEPOSIT_ADDRESS, 9.9)])
    result = asyncio.run(_service(store, explorer, config).verify(TX, 10.0, alice.id))
    assert result.error.startswith(AMOUNT_MISMATCH)


def test_hash_claimed_concurrently_is_not_credited(store, explorer, config, alice):
    # A pending row for the hash owned by another user blocks our insert
    store.transactions.append(
        Transaction(id="other", user_id="someone-else", tx_hash=TX, amount=0, status=TransactionStatus.PENDING)
    )
    explorer.add(TX, confirmations=1, outputs=[(DEPOSIT_ADDRESS, 10.0)])

    result = asyncio.run(_service(store, explorer, config).verify(TX, 10.0, alice.id))

    assert result.error == ALREADY_PROCESSED
    assert _credits(store) == []


@pytest.mark.parametrize("tx_hash, amount", [("", 5.0), ("   ", 5.0), (TX, 0), (TX, -1), (TX, float("nan"))])
def test_rejects_bad_input(store, explorer, config, alice, tx_hash, amount):
    with pytest.raises(ValidationError):
        asyncio.run(_service(store, explorer, config).verify(tx_hash, amount, alice.id))
