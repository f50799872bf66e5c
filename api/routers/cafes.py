"""Cafe endpoints — owner CRUD plus the public menu behind the QR code."""

import logging
import re
import secrets
import uuid
from fastapi import APIRouter, Depends, HTTPException

from config import settings
from models.user import User
from routers.access import get_owned_cafe, patch_values, require_admin_access
from schemas import (
    CafeCreate, CafeUpdate, CafeResponse, CategoryResponse, MenuItemResponse,
    OfferResponse, PublicMenuResponse,
)
from services.auth import get_current_user
from services.storage import Storage, get_storage
from services.subscription_guard import SubscriptionGuard, get_guard

router = APIRouter()

CAFE_NULLABLE = ("description", "address", "logo_url", "image_menu_urls")
logger = logging.getLogger(__name__)


def make_slug(name: str) -> str:
    """Lowercase, dash-separated name with a short random suffix."""
    base = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-") or "cafe"
    return f"{base[:48]}-{secrets.token_hex(3)}"


def public_menu_url(slug: str) -> str:
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/menu/{slug}"


# ── Owner endpoints ────────────────────────────────────────

@router.get("/", response_model=list[CafeResponse])
async def list_my_cafes(
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.list_cafes_by_owner(user.id)


@router.post("/", response_model=CafeResponse, status_code=201)
async def create_cafe(
    data: CafeCreate,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    guard: SubscriptionGuard = Depends(get_guard),
):
    """
    Create a cafe. The first cafe starts the free trial; after that the
    plan's cafe limit and the premium-theme gate apply.
    """
    if await storage.get_subscription(user.id) is None:
        await storage.create_subscription(user.id)

    check = await guard.can_create_cafe(user.id)
    if not check.allowed:
        raise HTTPException(status_code=403, detail=check.reason)

    theme_check = await guard.can_use_theme(user.id, data.theme.value)
    if not theme_check.allowed:
        raise HTTPException(status_code=403, detail=theme_check.reason)

    slug = make_slug(data.name)
    while await storage.get_cafe_by_slug(slug):
        slug = make_slug(data.name)

    cafe = await storage.create_cafe(
        owner_id=user.id,
        name=data.name,
        description=data.description,
        slug=slug,
        address=data.address,
        logo_url=data.logo_url,
        public_url=public_menu_url(slug),
        menu_type=data.menu_type.value,
        image_menu_urls=data.image_menu_urls,
        theme=data.theme.value,
    )
    logger.info("Cafe created: cafe_id=%s owner=%s slug=%s", cafe.id, user.id, slug)
    return cafe


@router.get("/{cafe_id}", response_model=CafeResponse)
async def get_cafe(
    cafe_id: uuid.UUID,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await get_owned_cafe(storage, cafe_id, user)


@router.patch("/{cafe_id}", response_model=CafeResponse)
async def update_cafe(
    cafe_id: uuid.UUID,
    data: CafeUpdate,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    guard: SubscriptionGuard = Depends(get_guard),
):
    """Update cafe settings. Switching to a premium theme needs Pro or Trial."""
    if data.theme is not None:
        check = await guard.can_use_theme(user.id, data.theme.value)
        if not check.allowed:
            raise HTTPException(status_code=403, detail=check.reason)
    else:
        await require_admin_access(guard, user)

    await get_owned_cafe(storage, cafe_id, user)

    updates = patch_values(data, nullable=CAFE_NULLABLE)
    for field in ("menu_type", "theme"):
        if updates.get(field) is not None:
            updates[field] = updates[field].value
    return await storage.update_cafe(cafe_id, **updates)


# ── Public endpoints ───────────────────────────────────────

@router.get("/slug/{slug}", response_model=CafeResponse)
async def get_cafe_by_slug(slug: str, storage: Storage = Depends(get_storage)):
    cafe = await storage.get_cafe_by_slug(slug)
    if not cafe:
        raise HTTPException(status_code=404, detail="Cafe not found")
    return cafe


@router.get("/slug/{slug}/menu", response_model=PublicMenuResponse)
async def get_public_menu(slug: str, storage: Storage = Depends(get_storage)):
    """Everything a diner sees: visible categories, available items, live offers."""
    cafe = await storage.get_cafe_by_slug(slug)
    if not cafe:
        raise HTTPException(status_code=404, detail="Cafe not found")

    categories = [c for c in await storage.list_categories(cafe.id) if c.is_visible]
    visible_ids = {c.id for c in categories}
    items = [
        i for i in await storage.list_menu_items(cafe.id)
        if i.is_available and i.category_id in visible_ids
    ]
    offers = [o for o in await storage.list_offers(cafe.id) if o.is_active and o.is_visible]

    return PublicMenuResponse(
        cafe=CafeResponse.model_validate(cafe),
        categories=[CategoryResponse.model_validate(c) for c in categories],
        items=[MenuItemResponse.model_validate(i) for i in items],
        offers=[OfferResponse.model_validate(o) for o in offers],
    )
