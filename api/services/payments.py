"""
Payment Service — plan purchase through Razorpay.

Flow:
  1. create_order    → guard check, fixed plan price, Razorpay order with
                       notes {userId, planType}; no subscription change
  2. verify_payment  → client callback after checkout; HMAC over
                       "order_id|payment_id" with the key secret, then plan
                       and user checked against the fetched order notes
  3. handle_webhook  → server-to-server "payment.captured"; HMAC over the
                       raw body with the webhook secret

Steps 2 and 3 usually both fire for one payment. Activation is keyed by
payment id, so whichever arrives second finds the payment already applied
and leaves the row as it is.
"""

import json
import logging
import uuid
from datetime import datetime

from fastapi import Depends

from config import settings
from models.subscription import Subscription
from services.razorpay_client import (
    GatewayConfigError, RazorpayClient, get_gateway, verify_payment_signature,
    verify_webhook_signature,
)
from services.storage import Storage, get_storage
from services.subscription_guard import SubscriptionGuard
from services.subscription_utils import (
    DEFAULT_PAID_PLAN, calculate_end_date, is_paid_plan, now_utc, plan_amount,
)

logger = logging.getLogger(__name__)

CAPTURED_EVENT = "payment.captured"


class PaymentError(Exception):
    status_code = 400


class InvalidPlanError(PaymentError):
    status_code = 400


class PurchaseNotAllowedError(PaymentError):
    status_code = 403


class SignatureError(PaymentError):
    status_code = 400


class OrderMismatchError(PaymentError):
    """Signed payment whose order was placed for another user or plan."""

    status_code = 400


def resolve_paid_plan(plan_type: str) -> str:
    """Unknown or non-paid plans settle as basic-monthly."""
    if is_paid_plan(plan_type):
        return plan_type
    logger.warning("Unknown plan %r on verified payment; using %s", plan_type, DEFAULT_PAID_PLAN)
    return DEFAULT_PAID_PLAN


def _parse_user_id(value) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


class PaymentService:
    def __init__(
        self,
        storage: Storage,
        gateway: RazorpayClient,
        key_secret: str | None = None,
        webhook_secret: str | None = None,
        currency: str | None = None,
    ):
        self.storage = storage
        self.gateway = gateway
        self.guard = SubscriptionGuard(storage)
        self.key_secret = key_secret if key_secret is not None else settings.RAZORPAY_KEY_SECRET
        self.webhook_secret = (
            webhook_secret if webhook_secret is not None else settings.RAZORPAY_WEBHOOK_SECRET
        )
        self.currency = currency or settings.PAY_CURRENCY

    # ── Order creation ─────────────────────────────────────

    async def create_order(
        self, user_id: uuid.UUID, plan_type: str, now: datetime | None = None
    ) -> dict:
        now = now or now_utc()

        check = await self.guard.can_purchase_plan(user_id, plan_type, now)
        if not check.allowed:
            raise PurchaseNotAllowedError(check.reason)

        amount = plan_amount(plan_type)
        if amount <= 0:
            raise InvalidPlanError(f"Invalid plan type: {plan_type}")

        if not self.gateway.configured:
            logger.error("Razorpay keys missing; cannot create order for user_id=%s", user_id)
            raise GatewayConfigError("Payment gateway configuration missing")

        receipt = f"rcpt_{user_id.hex[:12]}_{int(now.timestamp() * 1000)}"
        order = await self.gateway.create_order(
            amount=amount,
            currency=self.currency,
            receipt=receipt,
            notes={"userId": str(user_id), "planType": plan_type},
        )
        logger.info(
            "Razorpay order created: order_id=%s user_id=%s plan=%s amount=%s",
            order.get("id"), user_id, plan_type, amount,
        )
        return {
            "order_id": order["id"],
            "amount": order.get("amount", amount),
            "currency": order.get("currency", self.currency),
            "key_id": self.gateway.key_id,
        }

    # ── Activation ─────────────────────────────────────────

    async def activate(
        self,
        user_id: uuid.UUID,
        plan_type: str,
        order_id: str | None,
        payment_id: str | None,
        amount: int,
        now: datetime | None = None,
    ) -> Subscription:
        """Move the subscription to "active" for a verified payment."""
        now = now or now_utc()
        sub = await self.storage.get_subscription(user_id)
        if sub is None:
            await self.storage.create_subscription(user_id, now)
        elif payment_id and sub.payment_id == payment_id:
            logger.info("Payment already applied: payment_id=%s user_id=%s", payment_id, user_id)
            return sub

        updated = await self.storage.update_subscription(
            user_id,
            status="active",
            plan_type=plan_type,
            start_date=now,
            end_date=calculate_end_date(plan_type, now),
            payment_id=payment_id,
            order_id=order_id,
            amount=amount,
            updated_at=now,
        )
        logger.info(
            "Subscription activated: user_id=%s plan=%s until=%s payment_id=%s",
            user_id, plan_type, updated.end_date, payment_id,
        )
        return updated

    # ── Client-confirmed verification ──────────────────────

    async def verify_payment(
        self,
        user_id: uuid.UUID,
        order_id: str,
        payment_id: str,
        signature: str,
        plan_type: str,
        now: datetime | None = None,
    ) -> Subscription:
        """
        The signature only covers "order_id|payment_id", so plan and user are
        read back from the order's notes on Razorpay; the client's plan_type
        must agree with them.
        """
        if not self.key_secret:
            logger.error("RAZORPAY_KEY_SECRET is not set")
            raise GatewayConfigError("Server configuration error")

        if not verify_payment_signature(self.key_secret, order_id, payment_id, signature):
            logger.warning(
                "Invalid payment signature: user_id=%s order_id=%s payment_id=%s",
                user_id, order_id, payment_id,
            )
            raise SignatureError("Invalid payment signature")

        order = await self.gateway.fetch_order(order_id)
        notes = order.get("notes") or {}
        if not isinstance(notes, dict):
            notes = {}

        if _parse_user_id(notes.get("userId")) != user_id:
            logger.warning(
                "Order user mismatch: order_id=%s notes=%s user_id=%s", order_id, notes, user_id,
            )
            raise OrderMismatchError("Order does not belong to this user")

        ordered_plan = notes.get("planType") or ""
        if plan_type != ordered_plan:
            logger.warning(
                "Plan mismatch on verify: order_id=%s ordered=%s claimed=%s",
                order_id, ordered_plan, plan_type,
            )
            raise OrderMismatchError("Plan does not match the order")

        plan = resolve_paid_plan(ordered_plan)
        amount = order.get("amount")
        if not isinstance(amount, int):
            amount = plan_amount(plan)
        return await self.activate(user_id, plan, order_id, payment_id, amount, now)

    # ── Webhook ────────────────────────────────────────────

    async def handle_webhook(
        self, body: bytes, signature: str | None, now: datetime | None = None
    ) -> dict:
        if not self.webhook_secret:
            logger.error("RAZORPAY_WEBHOOK_SECRET is not set")
            raise GatewayConfigError("Webhook secret not configured")

        if not verify_webhook_signature(self.webhook_secret, body, signature):
            logger.warning("Webhook rejected: invalid signature")
            raise SignatureError("Invalid signature")

        try:
            event = json.loads(body)
        except ValueError:
            logger.warning("Webhook body is not valid JSON")
            return {"status": "ok", "note": "invalid-json"}

        etype = event.get("event", "") if isinstance(event, dict) else ""
        if etype != CAPTURED_EVENT:
            return {"status": "ok", "note": f"ignored:{etype}"}

        payment = ((event.get("payload") or {}).get("payment") or {}).get("entity") or {}
        notes = payment.get("notes") or {}
        if not isinstance(notes, dict):
            notes = {}
        user_id = _parse_user_id(notes.get("userId"))
        plan_type = notes.get("planType")

        if user_id is None or not is_paid_plan(plan_type or ""):
            logger.error("Missing userId or planType in payment notes: %s", notes)
            return {"status": "ok", "note": "missing-metadata"}

        amount = payment.get("amount")
        if not isinstance(amount, int):
            amount = plan_amount(plan_type)

        await self.activate(
            user_id,
            plan_type,
            order_id=payment.get("order_id"),
            payment_id=payment.get("id"),
            amount=amount,
            now=now,
        )
        return {"status": "ok", "user_id": str(user_id), "plan_type": plan_type}


def get_payment_service(
    storage: Storage = Depends(get_storage),
    gateway: RazorpayClient = Depends(get_gateway),
) -> PaymentService:
    """FastAPI dependency."""
    return PaymentService(storage, gateway)
