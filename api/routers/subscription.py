"""
Subscription endpoints — status, plan catalogue and Razorpay checkout.

Checkout:
  POST /create-order → Razorpay order for a paid plan (nothing is activated)
  POST /verify       → checkout callback; signature checked, plan activated
"""

import logging
from fastapi import APIRouter, Depends, HTTPException

from models.user import User
from schemas import (
    CreateOrderRequest, CreateOrderResponse, PlanResponse, PlanType,
    SubscriptionStatusResponse, VerifyPaymentRequest,
)
from services.auth import get_current_user
from services.payments import PaymentError, PaymentService, get_payment_service
from services.razorpay_client import GatewayConfigError, GatewayError
from services.subscription_guard import SubscriptionGuard, get_guard
from services.subscription_utils import (
    PLAN_DURATIONS, format_amount, is_paid_plan, plan_amount, plan_display_name,
)

router = APIRouter()
logger = logging.getLogger(__name__)

PAYMENT_ERRORS = (PaymentError, GatewayConfigError, GatewayError)


def _http_error(e: Exception) -> HTTPException:
    detail = getattr(e, "detail", None) or str(e)
    return HTTPException(status_code=e.status_code, detail=detail)


@router.get("/status", response_model=SubscriptionStatusResponse)
async def subscription_status(
    user: User = Depends(get_current_user),
    guard: SubscriptionGuard = Depends(get_guard),
):
    return await guard.status(user.id)


@router.get("/plans", response_model=list[PlanResponse])
async def list_plans():
    """Paid plans with their fixed prices."""
    return [
        PlanResponse(
            plan_type=plan,
            display_name=plan_display_name(plan.value),
            amount=plan_amount(plan.value),
            price=format_amount(plan_amount(plan.value)),
            duration_days=PLAN_DURATIONS[plan.value],
        )
        for plan in PlanType
        if is_paid_plan(plan.value)
    ]


@router.post("/create-order", response_model=CreateOrderResponse)
async def create_order(
    data: CreateOrderRequest,
    user: User = Depends(get_current_user),
    payments: PaymentService = Depends(get_payment_service),
):
    try:
        return await payments.create_order(user.id, data.plan_type)
    except PAYMENT_ERRORS as e:
        raise _http_error(e)


@router.post("/verify")
async def verify_payment(
    data: VerifyPaymentRequest,
    user: User = Depends(get_current_user),
    payments: PaymentService = Depends(get_payment_service),
):
    try:
        sub = await payments.verify_payment(
            user.id,
            data.razorpay_order_id,
            data.razorpay_payment_id,
            data.razorpay_signature,
            data.plan_type,
        )
    except PAYMENT_ERRORS as e:
        raise _http_error(e)

    return {
        "success": True,
        "plan_type": sub.plan_type,
        "status": sub.status,
        "end_date": sub.end_date,
    }
