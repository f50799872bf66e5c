"""Pydantic schemas for API request/response models."""

from __future__ import annotations
import uuid
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field


# ── Enums ──────────────────────────────────────────────────

class PlanType(str, Enum):
    TRIAL = "trial"
    BASIC_MONTHLY = "basic-monthly"
    PRO_MONTHLY = "pro-monthly"
    PRO_YEARLY = "pro-yearly"


class SubscriptionStatus(str, Enum):
    TRIAL = "trial"
    ACTIVE = "active"
    EXPIRED = "expired"


class MenuType(str, Enum):
    DIGITAL = "digital"
    IMAGE = "image"


class CafeTheme(str, Enum):
    STANDARD = "standard"
    MODERN = "modern"
    PREMIUM = "premium"


class OfferType(str, Enum):
    FLAT = "flat"
    CATEGORY = "category"
    ITEM = "item"


class DiscountType(str, Enum):
    PERCENT = "percent"
    FLAT = "flat"


# ── Auth Schemas ───────────────────────────────────────────

class UserRegister(BaseModel):
    username: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6, max_length=128)


class UserLogin(BaseModel):
    username: str
    password: str


class UserResponse(BaseModel):
    id: uuid.UUID
    username: str

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


# ── Cafe Schemas ───────────────────────────────────────────

class CafeCreate(BaseModel):
    name: str = Field("My Cafe", min_length=1, max_length=255)
    description: str | None = None
    address: str | None = None
    logo_url: str | None = None
    menu_type: MenuType = MenuType.DIGITAL
    image_menu_urls: list[str] | None = None
    theme: CafeTheme = CafeTheme.STANDARD


class CafeUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    address: str | None = None
    logo_url: str | None = None
    menu_type: MenuType | None = None
    image_menu_urls: list[str] | None = None
    theme: CafeTheme | None = None


class CafeResponse(BaseModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    name: str
    description: str | None
    slug: str
    address: str | None
    logo_url: str | None
    public_url: str | None
    menu_type: str
    image_menu_urls: list[str] | None
    theme: str
    created_at: datetime | None

    class Config:
        from_attributes = True


# ── Category / Item Schemas ────────────────────────────────

class CategoryCreate(BaseModel):
    cafe_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=255)
    sort_order: int = 0
    is_visible: bool = True


class CategoryUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    sort_order: int | None = None
    is_visible: bool | None = None


class CategoryResponse(BaseModel):
    id: uuid.UUID
    cafe_id: uuid.UUID
    name: str
    sort_order: int
    is_visible: bool

    class Config:
        from_attributes = True


class MenuItemCreate(BaseModel):
    cafe_id: uuid.UUID
    category_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    price: int = Field(..., ge=0)  # paise
    image_url: str | None = None
    is_available: bool = True
    sort_order: int = 0
    badges: list[str] = Field(default_factory=list)


class MenuItemUpdate(BaseModel):
    category_id: uuid.UUID | None = None
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    price: int | None = Field(None, ge=0)
    image_url: str | None = None
    is_available: bool | None = None
    sort_order: int | None = None
    badges: list[str] | None = None


class MenuItemResponse(BaseModel):
    id: uuid.UUID
    cafe_id: uuid.UUID
    category_id: uuid.UUID
    name: str
    description: str | None
    price: int
    image_url: str | None
    is_available: bool
    sort_order: int
    badges: list[str]

    class Config:
        from_attributes = True


# ── Offer Schemas ──────────────────────────────────────────

class OfferCreate(BaseModel):
    cafe_id: uuid.UUID
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    image_url: str | None = None
    offer_type: OfferType = OfferType.FLAT
    discount_type: DiscountType = DiscountType.PERCENT
    discount_value: int = Field(0, ge=0)
    applied_categories: list[uuid.UUID] = Field(default_factory=list)
    applied_items: list[uuid.UUID] = Field(default_factory=list)
    start_at: datetime | None = None
    end_at: datetime | None = None
    is_active: bool = True
    is_visible: bool = True
    is_featured: bool = False


class OfferUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    image_url: str | None = None
    offer_type: OfferType | None = None
    discount_type: DiscountType | None = None
    discount_value: int | None = Field(None, ge=0)
    applied_categories: list[uuid.UUID] | None = None
    applied_items: list[uuid.UUID] | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    is_active: bool | None = None
    is_visible: bool | None = None
    is_featured: bool | None = None


class OfferResponse(BaseModel):
    id: uuid.UUID
    cafe_id: uuid.UUID
    title: str
    description: str | None
    image_url: str | None
    offer_type: str
    discount_type: str
    discount_value: int
    applied_categories: list[uuid.UUID]
    applied_items: list[uuid.UUID]
    start_at: datetime | None
    end_at: datetime | None
    is_active: bool
    is_visible: bool
    is_featured: bool

    class Config:
        from_attributes = True


class PublicMenuResponse(BaseModel):
    cafe: CafeResponse
    categories: list[CategoryResponse]
    items: list[MenuItemResponse]
    offers: list[OfferResponse]


# ── Tag Schemas ────────────────────────────────────────────

class TagCreate(BaseModel):
    label: str = Field(..., min_length=1, max_length=100)
    group: str = Field(..., min_length=1, max_length=50)
    key: str = Field(..., min_length=1, max_length=100)
    cafe_id: uuid.UUID | None = None


class TagResponse(BaseModel):
    id: uuid.UUID
    label: str
    group: str
    key: str
    cafe_id: uuid.UUID | None

    class Config:
        from_attributes = True


# ── Subscription Schemas ───────────────────────────────────

class SubscriptionStatusResponse(BaseModel):
    has_subscription: bool = True
    status: SubscriptionStatus | None = None
    plan_type: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    days_remaining: int = 0
    can_perform_actions: bool = False
    can_change_plan: bool = False
    amount: int | None = None


class PlanResponse(BaseModel):
    plan_type: PlanType
    display_name: str
    amount: int
    price: str
    duration_days: int


class CreateOrderRequest(BaseModel):
    plan_type: str


class CreateOrderResponse(BaseModel):
    order_id: str
    amount: int
    currency: str
    key_id: str


class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str
    plan_type: str
