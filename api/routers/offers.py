"""Offer endpoints."""

import uuid
from fastapi import APIRouter, Depends, HTTPException

from models.user import User
from routers.access import get_owned_cafe, patch_values, require_admin_access
from schemas import OfferCreate, OfferUpdate, OfferResponse
from services.auth import get_current_user
from services.storage import Storage, get_storage
from services.subscription_guard import SubscriptionGuard, get_guard

router = APIRouter()

OFFER_NULLABLE = ("description", "image_url", "start_at", "end_at")


def _to_row(values: dict) -> dict:
    """Enums to their values and id lists to strings for the JSONB columns."""
    row = dict(values)
    for field in ("offer_type", "discount_type"):
        if row.get(field) is not None:
            row[field] = row[field].value
    for field in ("applied_categories", "applied_items"):
        if row.get(field) is not None:
            row[field] = [str(v) for v in row[field]]
    return row


async def _owned_offer(storage: Storage, offer_id: uuid.UUID, user: User):
    offer = await storage.get_offer(offer_id)
    if not offer:
        raise HTTPException(status_code=404, detail="Offer not found")
    await get_owned_cafe(storage, offer.cafe_id, user)
    return offer


@router.get("/", response_model=list[OfferResponse])
async def list_offers(cafe_id: uuid.UUID, storage: Storage = Depends(get_storage)):
    return await storage.list_offers(cafe_id)


@router.post("/", response_model=OfferResponse, status_code=201)
async def create_offer(
    data: OfferCreate,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    guard: SubscriptionGuard = Depends(get_guard),
):
    await require_admin_access(guard, user)
    await get_owned_cafe(storage, data.cafe_id, user)
    return await storage.create_offer(**_to_row(data.model_dump()))


@router.patch("/{offer_id}", response_model=OfferResponse)
async def update_offer(
    offer_id: uuid.UUID,
    data: OfferUpdate,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    guard: SubscriptionGuard = Depends(get_guard),
):
    await require_admin_access(guard, user)
    await _owned_offer(storage, offer_id, user)
    updates = _to_row(patch_values(data, nullable=OFFER_NULLABLE))
    return await storage.update_offer(offer_id, **updates)


@router.delete("/{offer_id}", status_code=204)
async def delete_offer(
    offer_id: uuid.UUID,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    guard: SubscriptionGuard = Depends(get_guard),
):
    await require_admin_access(guard, user)
    await _owned_offer(storage, offer_id, user)
    await storage.delete_offer(offer_id)
