"""Menu category endpoints."""

import uuid
from fastapi import APIRouter, Depends, HTTPException

from models.user import User
from routers.access import get_owned_cafe, patch_values, require_admin_access
from schemas import CategoryCreate, CategoryUpdate, CategoryResponse
from services.auth import get_current_user
from services.storage import Storage, get_storage
from services.subscription_guard import SubscriptionGuard, get_guard

router = APIRouter()


async def _owned_category(storage: Storage, category_id: uuid.UUID, user: User):
    category = await storage.get_category(category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    await get_owned_cafe(storage, category.cafe_id, user)
    return category


@router.get("/", response_model=list[CategoryResponse])
async def list_categories(cafe_id: uuid.UUID, storage: Storage = Depends(get_storage)):
    return await storage.list_categories(cafe_id)


@router.post("/", response_model=CategoryResponse, status_code=201)
async def create_category(
    data: CategoryCreate,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    guard: SubscriptionGuard = Depends(get_guard),
):
    await require_admin_access(guard, user)
    await get_owned_cafe(storage, data.cafe_id, user)
    return await storage.create_category(**data.model_dump())


@router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: uuid.UUID,
    data: CategoryUpdate,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    guard: SubscriptionGuard = Depends(get_guard),
):
    await require_admin_access(guard, user)
    await _owned_category(storage, category_id, user)
    return await storage.update_category(category_id, **patch_values(data))


@router.delete("/{category_id}", status_code=204)
async def delete_category(
    category_id: uuid.UUID,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    guard: SubscriptionGuard = Depends(get_guard),
):
    """Deletes the category together with its items."""
    await require_admin_access(guard, user)
    await _owned_category(storage, category_id, user)
    await storage.delete_category(category_id)
