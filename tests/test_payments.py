"""Tests for plan purchase: order creation, verification and webhook activation."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

import json
import uuid
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from services.memory_storage import MemoryStorage
from services.payments import (
    PaymentService, InvalidPlanError, OrderMismatchError, PurchaseNotAllowedError,
    SignatureError,
)
from services.razorpay_client import (
    RazorpayClient, GatewayConfigError, GatewayError, payment_signature, webhook_signature,
)
from services.subscription_utils import plan_amount

UTC = timezone.utc
NOW = datetime(2024, 1, 15, 12, 0, tzinfo=UTC)
KEY_SECRET = "key_secret_test"
WEBHOOK_SECRET = "whsec_test"


def _service(storage=None, gateway=None, **kwargs):
    storage = storage or MemoryStorage()
    if gateway is None:
        gateway = RazorpayClient("rzp_test_key", KEY_SECRET)
        gateway.orders = {}
        gateway.fetch_order = AsyncMock(side_effect=lambda order_id: gateway.orders[order_id])
    kwargs.setdefault("key_secret", KEY_SECRET)
    kwargs.setdefault("webhook_secret", WEBHOOK_SECRET)
    return PaymentService(storage, gateway, currency="INR", **kwargs)


def _place_order(service, order_id, user_id, plan_type, amount=None):
    """Register the order Razorpay would return for `order_id`."""
    service.gateway.orders[order_id] = {
        "id": order_id,
        "amount": plan_amount(plan_type) if amount is None else amount,
        "currency": "INR",
        "notes": {"userId": str(user_id), "planType": plan_type},
    }


def _captured_event(user_id, plan_type="pro-monthly", payment_id="pay_001", amount=19900):
    return {
        "event": "payment.captured",
        "payload": {
            "payment": {
                "entity": {
                    "id": payment_id,
                    "order_id": "order_001",
                    "amount": amount,
                    "notes": {"userId": str(user_id), "planType": plan_type},
                }
            }
        },
    }


def _signed(event):
    body = json.dumps(event).encode()
    return body, webhook_signature(WEBHOOK_SECRET, body)


async def _trial_user(storage):
    user_id = uuid.uuid4()
    await storage.create_subscription(user_id, NOW - timedelta(days=2))
    return user_id


# ── Order creation ─────────────────────────────────────────

@pytest.mark.asyncio
async def test_create_order_uses_price_table_and_notes():
    storage = MemoryStorage()
    gateway = RazorpayClient("rzp_test_key", KEY_SECRET)
    gateway.create_order = AsyncMock(
        return_value={"id": "order_abc", "amount": 19900, "currency": "INR"}
    )
    service = _service(storage, gateway)
    user_id = await _trial_user(storage)

    result = await service.create_order(user_id, "pro-monthly", NOW)

    assert result == {
        "order_id": "order_abc", "amount": 19900, "currency": "INR", "key_id": "rzp_test_key",
    }
    kwargs = gateway.create_order.call_args.kwargs
    assert kwargs["amount"] == 19900
    assert kwargs["notes"] == {"userId": str(user_id), "planType": "pro-monthly"}
    # No subscription change until payment is verified
    assert (await storage.get_subscription(user_id)).status == "trial"


@pytest.mark.asyncio
async def test_create_order_blocked_mid_cycle():
    storage = MemoryStorage()
    gateway = RazorpayClient("rzp_test_key", KEY_SECRET)
    gateway.create_order = AsyncMock()
    service = _service(storage, gateway)
    user_id = await _trial_user(storage)
    await storage.update_subscription(
        user_id, status="active", plan_type="basic-monthly", end_date=NOW + timedelta(days=10),
    )

    with pytest.raises(PurchaseNotAllowedError) as exc:
        await service.create_order(user_id, "pro-yearly", NOW)
    assert exc.value.status_code == 403
    gateway.create_order.assert_not_called()


@pytest.mark.asyncio
async def test_create_order_rejects_free_or_unknown_plan():
    service = _service()
    for plan in ("trial", "gold"):
        with pytest.raises(InvalidPlanError):
            await service.create_order(uuid.uuid4(), plan, NOW)


@pytest.mark.asyncio
async def test_create_order_without_keys_is_config_error():
    service = _service(gateway=RazorpayClient("", ""))
    with pytest.raises(GatewayConfigError) as exc:
        await service.create_order(uuid.uuid4(), "basic-monthly", NOW)
    assert exc.value.status_code == 503


@pytest.mark.asyncio
async def test_create_order_gateway_failure_writes_nothing():
    storage = MemoryStorage()
    gateway = RazorpayClient("rzp_test_key", KEY_SECRET)
    gateway.create_order = AsyncMock(side_effect=GatewayError("Payment gateway error", "bad amount"))
    service = _service(storage, gateway)
    user_id = await _trial_user(storage)

    with pytest.raises(GatewayError):
        await service.create_order(user_id, "basic-monthly", NOW)
    assert (await storage.get_subscription(user_id)).payment_id is None


# ── Client verification ────────────────────────────────────

@pytest.mark.asyncio
async def test_verify_payment_activates_plan():
    storage = MemoryStorage()
    service = _service(storage)
    user_id = await _trial_user(storage)
    _place_order(service, "order_1", user_id, "pro-yearly")
    sig = payment_signature(KEY_SECRET, "order_1", "pay_1")

    sub = await service.verify_payment(user_id, "order_1", "pay_1", sig, "pro-yearly", NOW)

    assert sub.status == "active"
    assert sub.plan_type == "pro-yearly"
    assert sub.start_date == NOW
    assert sub.end_date == datetime(2025, 1, 15, 12, 0, tzinfo=UTC)
    assert sub.amount == 100000
    assert sub.payment_id == "pay_1"
    assert sub.order_id == "order_1"


@pytest.mark.asyncio
async def test_tampered_signature_leaves_record_unchanged():
    storage = MemoryStorage()
    service = _service(storage)
    user_id = await _trial_user(storage)
    before = dict(vars(await storage.get_subscription(user_id)))
    sig = payment_signature(KEY_SECRET, "order_1", "pay_1")
    tampered = sig[:-1] + ("1" if sig[-1] == "0" else "0")

    with pytest.raises(SignatureError):
        await service.verify_payment(user_id, "order_1", "pay_2", sig, "pro-monthly", NOW)
    with pytest.raises(SignatureError):
        await service.verify_payment(user_id, "order_1", "pay_1", tampered, "pro-monthly", NOW)

    after = await storage.get_subscription(user_id)
    assert after.status == before["status"] == "trial"
    assert after.end_date == before["end_date"]
    assert after.payment_id is None


@pytest.mark.asyncio
async def test_verify_is_idempotent_per_payment():
    storage = MemoryStorage()
    service = _service(storage)
    user_id = await _trial_user(storage)
    _place_order(service, "order_1", user_id, "pro-monthly")
    sig = payment_signature(KEY_SECRET, "order_1", "pay_1")

    first = await service.verify_payment(user_id, "order_1", "pay_1", sig, "pro-monthly", NOW)
    end_date = first.end_date
    later = NOW + timedelta(days=3)
    second = await service.verify_payment(user_id, "order_1", "pay_1", sig, "pro-monthly", later)

    assert second.end_date == end_date
    assert second.start_date == NOW


@pytest.mark.asyncio
async def test_verify_unknown_plan_falls_back_to_basic():
    storage = MemoryStorage()
    service = _service(storage)
    user_id = await _trial_user(storage)
    _place_order(service, "order_9", user_id, "platinum", amount="n/a")
    sig = payment_signature(KEY_SECRET, "order_9", "pay_9")

    sub = await service.verify_payment(user_id, "order_9", "pay_9", sig, "platinum", NOW)
    assert sub.plan_type == "basic-monthly"
    assert sub.amount == 9900
    assert sub.end_date == datetime(2024, 2, 15, 12, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_verify_without_key_secret_is_config_error():
    service = _service(key_secret="")
    with pytest.raises(GatewayConfigError):
        await service.verify_payment(uuid.uuid4(), "o", "p", "sig", "pro-monthly", NOW)


@pytest.mark.asyncio
async def test_verify_rejects_plan_other_than_ordered():
    storage = MemoryStorage()
    service = _service(storage)
    user_id = await _trial_user(storage)
    _place_order(service, "order_basic", user_id, "basic-monthly")
    sig = payment_signature(KEY_SECRET, "order_basic", "pay_1")

    with pytest.raises(OrderMismatchError) as exc:
        await service.verify_payment(user_id, "order_basic", "pay_1", sig, "pro-yearly", NOW)
    assert exc.value.status_code == 400
    sub = await storage.get_subscription(user_id)
    assert (sub.status, sub.payment_id) == ("trial", None)

    # The captured webhook still settles the plan that was actually bought
    event = _captured_event(user_id, plan_type="basic-monthly", payment_id="pay_1", amount=9900)
    body, wsig = _signed(event)
    await service.handle_webhook(body, wsig, NOW)
    sub = await storage.get_subscription(user_id)
    assert (sub.status, sub.plan_type, sub.amount) == ("active", "basic-monthly", 9900)
    assert sub.end_date == datetime(2024, 2, 15, 12, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_verify_rejects_order_of_another_user():
    storage = MemoryStorage()
    service = _service(storage)
    buyer = await _trial_user(storage)
    other = await _trial_user(storage)
    _place_order(service, "order_1", buyer, "pro-monthly")
    sig = payment_signature(KEY_SECRET, "order_1", "pay_1")

    with pytest.raises(OrderMismatchError):
        await service.verify_payment(other, "order_1", "pay_1", sig, "pro-monthly", NOW)
    assert (await storage.get_subscription(other)).status == "trial"


@pytest.mark.asyncio
async def test_verify_stores_amount_from_order():
    storage = MemoryStorage()
    service = _service(storage)
    user_id = await _trial_user(storage)
    _place_order(service, "order_1", user_id, "pro-monthly", amount=19900)
    sig = payment_signature(KEY_SECRET, "order_1", "pay_1")

    sub = await service.verify_payment(user_id, "order_1", "pay_1", sig, "pro-monthly", NOW)
    assert sub.amount == 19900
    service.gateway.fetch_order.assert_awaited_once_with("order_1")


# ── Webhook ────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_webhook_captured_activates_with_gateway_amount():
    storage = MemoryStorage()
    service = _service(storage)
    user_id = await _trial_user(storage)
    body, sig = _signed(_captured_event(user_id, amount=19900))

    result = await service.handle_webhook(body, sig, NOW)

    assert result["status"] == "ok"
    sub = await storage.get_subscription(user_id)
    assert sub.status == "active"
    assert sub.plan_type == "pro-monthly"
    assert sub.amount == 19900
    assert sub.payment_id == "pay_001"
    assert sub.end_date == datetime(2024, 2, 15, 12, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_webhook_bad_signature_rejected():
    storage = MemoryStorage()
    service = _service(storage)
    user_id = await _trial_user(storage)
    body, _ = _signed(_captured_event(user_id))

    with pytest.raises(SignatureError):
        await service.handle_webhook(body, "deadbeef", NOW)
    with pytest.raises(SignatureError):
        await service.handle_webhook(body, None, NOW)
    assert (await storage.get_subscription(user_id)).status == "trial"


@pytest.mark.asyncio
async def test_webhook_without_secret_is_config_error():
    service = _service(webhook_secret="")
    with pytest.raises(GatewayConfigError):
        await service.handle_webhook(b"{}", "sig", NOW)


@pytest.mark.asyncio
async def test_webhook_ignores_other_events():
    storage = MemoryStorage()
    service = _service(storage)
    user_id = await _trial_user(storage)
    event = _captured_event(user_id)
    event["event"] = "payment.failed"
    body, sig = _signed(event)

    result = await service.handle_webhook(body, sig, NOW)
    assert result["note"] == "ignored:payment.failed"
    assert (await storage.get_subscription(user_id)).status == "trial"


@pytest.mark.asyncio
async def test_webhook_missing_metadata_is_noop():
    storage = MemoryStorage()
    service = _service(storage)
    user_id = await _trial_user(storage)
    event = _captured_event(user_id)
    event["payload"]["payment"]["entity"]["notes"] = {"planType": "pro-monthly"}
    body, sig = _signed(event)

    result = await service.handle_webhook(body, sig, NOW)
    assert result["note"] == "missing-metadata"
    assert (await storage.get_subscription(user_id)).status == "trial"


@pytest.mark.asyncio
async def test_client_and_webhook_for_same_payment_apply_once():
    storage = MemoryStorage()
    service = _service(storage)
    user_id = await _trial_user(storage)
    _place_order(service, "order_001", user_id, "pro-monthly")
    sig = payment_signature(KEY_SECRET, "order_001", "pay_001")

    first = await service.verify_payment(user_id, "order_001", "pay_001", sig, "pro-monthly", NOW)
    end_date = first.end_date

    body, wsig = _signed(_captured_event(user_id, payment_id="pay_001"))
    await service.handle_webhook(body, wsig, NOW + timedelta(minutes=5))

    sub = await storage.get_subscription(user_id)
    assert sub.end_date == end_date
    assert sub.start_date == NOW


@pytest.mark.asyncio
async def test_renewal_after_expiry_with_new_payment():
    storage = MemoryStorage()
    service = _service(storage)
    user_id = await _trial_user(storage)
    _place_order(service, "order_1", user_id, "basic-monthly")
    _place_order(service, "order_2", user_id, "pro-monthly")
    sig1 = payment_signature(KEY_SECRET, "order_1", "pay_1")
    await service.verify_payment(user_id, "order_1", "pay_1", sig1, "basic-monthly", NOW)

    renew_at = NOW + timedelta(days=40)
    sig2 = payment_signature(KEY_SECRET, "order_2", "pay_2")
    sub = await service.verify_payment(user_id, "order_2", "pay_2", sig2, "pro-monthly", renew_at)

    assert sub.status == "active"
    assert sub.plan_type == "pro-monthly"
    assert sub.start_date == renew_at
    assert sub.payment_id == "pay_2"
