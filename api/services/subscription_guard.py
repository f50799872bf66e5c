"""
Subscription Guard — entitlement checks for every admin mutation.

State machine:
  trial   → active   (payment verified)
  trial   → expired  (end_date passed)
  active  → active   (renewal)
  active  → expired  (end_date passed)
  expired → active   (renewal)

Expiry is lazy: there is no scheduler. Every check re-reads the row and, if
`now > end_date` while status is not yet "expired", persists the transition
before answering. Refusals come back as GuardResult(allowed=False, reason)
and are never raised.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from fastapi import Depends

from models.subscription import Subscription
from services.storage import Storage, get_storage
from services.subscription_utils import (
    TRIAL_PLAN, as_utc, cafe_limit, days_remaining, format_date, is_pro_plan, now_utc,
    plan_display_name,
)

logger = logging.getLogger(__name__)

PREMIUM_THEMES = {"modern", "premium"}


@dataclass
class GuardResult:
    allowed: bool
    reason: str | None = None
    subscription: Subscription | None = None


def has_premium_access(subscription: Subscription | None) -> bool:
    """Active Pro plans and running trials unlock premium themes; Basic does not."""
    if subscription is None:
        return False
    is_pro = subscription.status == "active" and is_pro_plan(subscription.plan_type)
    is_trial = subscription.status == "trial"
    return is_pro or is_trial


class SubscriptionGuard:
    def __init__(self, storage: Storage):
        self.storage = storage

    async def refresh(
        self, subscription: Subscription, now: datetime | None = None
    ) -> Subscription:
        """Apply the lazy expiry transition if the window has closed."""
        now = now or now_utc()
        if subscription.status != "expired" and now > as_utc(subscription.end_date):
            logger.info(
                "Subscription expired: user_id=%s plan=%s end_date=%s",
                subscription.user_id, subscription.plan_type, subscription.end_date,
            )
            return await self.storage.update_subscription(
                subscription.user_id, status="expired", updated_at=now,
            )
        return subscription

    async def current(
        self, user_id: uuid.UUID, now: datetime | None = None
    ) -> Subscription | None:
        """Read the user's subscription with expiry applied."""
        sub = await self.storage.get_subscription(user_id)
        if sub is None:
            return None
        return await self.refresh(sub, now)

    async def status(self, user_id: uuid.UUID, now: datetime | None = None) -> dict:
        """
        Dashboard view of the subscription. Creates the trial for users
        that predate subscriptions.
        """
        now = now or now_utc()
        sub = await self.storage.get_subscription(user_id)
        if sub is None:
            sub = await self.storage.create_subscription(user_id, now)
        sub = await self.refresh(sub, now)

        return {
            "has_subscription": True,
            "status": sub.status,
            "plan_type": sub.plan_type,
            "start_date": sub.start_date,
            "end_date": sub.end_date,
            "days_remaining": days_remaining(sub.end_date, now),
            "can_perform_actions": sub.status != "expired",
            "can_change_plan": sub.status in ("expired", "trial"),
            "amount": sub.amount,
        }

    async def can_perform_admin_action(
        self, user_id: uuid.UUID, now: datetime | None = None
    ) -> GuardResult:
        sub = await self.current(user_id, now)
        if sub is None:
            return GuardResult(False, "No subscription found. Please contact support.")

        if sub.status == "expired":
            return GuardResult(
                False,
                f"Subscription expired on {format_date(sub.end_date)}. Please renew to continue.",
                sub,
            )

        return GuardResult(True, subscription=sub)

    async def can_purchase_plan(
        self, user_id: uuid.UUID, new_plan_type: str, now: datetime | None = None
    ) -> GuardResult:
        now = now or now_utc()
        sub = await self.current(user_id, now)
        if sub is None:
            # Purchase bootstraps the subscription
            return GuardResult(True)

        if sub.status == "active" and now <= as_utc(sub.end_date):
            return GuardResult(
                False,
                f"Your {plan_display_name(sub.plan_type)} plan is active until "
                f"{format_date(sub.end_date)}. You cannot change plans mid-cycle.",
                sub,
            )

        return GuardResult(True, subscription=sub)

    async def can_create_cafe(
        self, user_id: uuid.UUID, now: datetime | None = None
    ) -> GuardResult:
        access = await self.can_perform_admin_action(user_id, now)
        if not access.allowed:
            return access

        sub = access.subscription
        plan_type = sub.plan_type if sub else TRIAL_PLAN
        limit = cafe_limit(plan_type)
        count = await self.storage.count_cafes_by_owner(user_id)

        if count >= limit:
            tier = "Free Trial" if plan_type == TRIAL_PLAN else "Basic Plan"
            return GuardResult(
                False,
                f"You have reached the limit of {limit} cafes for your {tier}. "
                "Upgrade to Pro for unlimited cafes.",
                sub,
            )

        return GuardResult(True, subscription=sub)

    async def can_use_theme(
        self, user_id: uuid.UUID, theme: str, now: datetime | None = None
    ) -> GuardResult:
        """Admin check plus the premium-theme gate."""
        access = await self.can_perform_admin_action(user_id, now)
        if not access.allowed or theme not in PREMIUM_THEMES:
            return access

        if not has_premium_access(access.subscription):
            return GuardResult(
                False,
                "Premium themes are only available on the Pro plan or during Trial.",
                access.subscription,
            )
        return access


def get_guard(storage: Storage = Depends(get_storage)) -> SubscriptionGuard:
    """FastAPI dependency."""
    return SubscriptionGuard(storage)
