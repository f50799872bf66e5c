"""
Subscription plan tables and pure date helpers.

Plans:
  trial          → 7 days, free
  basic-monthly  → 1 calendar month, ₹99
  pro-monthly    → 1 calendar month, ₹199
  pro-yearly     → 1 calendar year, ₹1000

No I/O here; every function takes an optional `now` so callers and tests
can pin the clock.
"""

import math
from datetime import datetime, timedelta, timezone

from dateutil.relativedelta import relativedelta


# ── Constants ──────────────────────────────────────────────

TRIAL_PLAN = "trial"
DEFAULT_PAID_PLAN = "basic-monthly"

# Amounts in paise
PLAN_PRICING = {
    "basic-monthly": 9900,     # ₹99
    "pro-monthly": 19900,      # ₹199
    "pro-yearly": 100000,      # ₹1000
}

PLAN_DURATIONS = {
    "trial": 7,
    "basic-monthly": 30,
    "pro-monthly": 30,
    "pro-yearly": 365,
}

# Calendar periods used for the actual end date
PLAN_PERIODS = {
    "trial": relativedelta(days=7),
    "basic-monthly": relativedelta(months=1),
    "pro-monthly": relativedelta(months=1),
    "pro-yearly": relativedelta(years=1),
}

PLAN_DISPLAY_NAMES = {
    "trial": "Free Trial",
    "basic-monthly": "Basic Monthly",
    "pro-monthly": "Pro Monthly",
    "pro-yearly": "Pro Yearly",
}

DEFAULT_DURATION_DAYS = 30

# Cafe limits per tier
BASIC_CAFE_LIMIT = 2
PRO_CAFE_LIMIT = 1000  # effectively unlimited


# ── Core Functions ─────────────────────────────────────────

def now_utc() -> datetime:
    return datetime.now(tz=timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes (e.g. ORM `datetime.utcnow` defaults) as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def is_paid_plan(plan_type: str) -> bool:
    return plan_type in PLAN_PRICING


def is_pro_plan(plan_type: str | None) -> bool:
    return bool(plan_type) and plan_type.startswith("pro")


def plan_amount(plan_type: str) -> int:
    """Plan price in paise; 0 for trial and unknown plans."""
    if plan_type == TRIAL_PLAN:
        return 0
    return PLAN_PRICING.get(plan_type, 0)


def plan_duration_days(plan_type: str) -> int:
    return PLAN_DURATIONS.get(plan_type, DEFAULT_DURATION_DAYS)


def calculate_end_date(plan_type: str, start_date: datetime | None = None) -> datetime:
    """
    End of the entitlement window starting at `start_date`.

    Month and year plans use calendar arithmetic: 2024-01-31 plus one month
    is 2024-02-29, 2024-01-15 plus one year is 2025-01-15. Unknown plans get
    DEFAULT_DURATION_DAYS.
    """
    start = start_date or now_utc()
    period = PLAN_PERIODS.get(plan_type)
    if period is None:
        return start + timedelta(days=plan_duration_days(plan_type))
    return start + period


def is_expired(subscription, now: datetime | None = None) -> bool:
    now = now or now_utc()
    return now > as_utc(subscription.end_date) or subscription.status == "expired"


def days_remaining(end_date: datetime, now: datetime | None = None) -> int:
    """Whole days left, rounded up, never negative."""
    now = now or now_utc()
    diff = (as_utc(end_date) - now).total_seconds()
    return max(0, math.ceil(diff / 86400))


def cafe_limit(plan_type: str | None) -> int:
    if is_pro_plan(plan_type):
        return PRO_CAFE_LIMIT
    return BASIC_CAFE_LIMIT


def plan_display_name(plan_type: str) -> str:
    return PLAN_DISPLAY_NAMES.get(plan_type, plan_type)


def format_amount(amount_paise: int) -> str:
    return f"₹{amount_paise / 100:.2f}"


def format_date(dt: datetime) -> str:
    """Date as shown in user-facing messages, e.g. '15 Jan 2025'."""
    return as_utc(dt).strftime("%d %b %Y")
