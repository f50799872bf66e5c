"""Menu item endpoints. Prices are integer paise."""

import uuid
from fastapi import APIRouter, Depends, HTTPException

from models.user import User
from routers.access import get_owned_cafe, patch_values, require_admin_access
from schemas import MenuItemCreate, MenuItemUpdate, MenuItemResponse
from services.auth import get_current_user
from services.storage import Storage, get_storage
from services.subscription_guard import SubscriptionGuard, get_guard

router = APIRouter()


async def _check_category(storage: Storage, category_id: uuid.UUID, cafe_id: uuid.UUID):
    category = await storage.get_category(category_id)
    if not category or category.cafe_id != cafe_id:
        raise HTTPException(status_code=400, detail="Category does not belong to this cafe")


@router.get("/", response_model=list[MenuItemResponse])
async def list_menu_items(
    cafe_id: uuid.UUID,
    category_id: uuid.UUID | None = None,
    storage: Storage = Depends(get_storage),
):
    return await storage.list_menu_items(cafe_id, category_id)


@router.post("/", response_model=MenuItemResponse, status_code=201)
async def create_menu_item(
    data: MenuItemCreate,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    guard: SubscriptionGuard = Depends(get_guard),
):
    await require_admin_access(guard, user)
    await get_owned_cafe(storage, data.cafe_id, user)
    await _check_category(storage, data.category_id, data.cafe_id)
    return await storage.create_menu_item(**data.model_dump())


@router.patch("/{item_id}", response_model=MenuItemResponse)
async def update_menu_item(
    item_id: uuid.UUID,
    data: MenuItemUpdate,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    guard: SubscriptionGuard = Depends(get_guard),
):
    await require_admin_access(guard, user)
    item = await storage.get_menu_item(item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Menu item not found")
    await get_owned_cafe(storage, item.cafe_id, user)

    updates = patch_values(data, nullable=("description", "image_url"))
    if updates.get("category_id") is not None:
        await _check_category(storage, updates["category_id"], item.cafe_id)
    return await storage.update_menu_item(item_id, **updates)


@router.delete("/{item_id}", status_code=204)
async def delete_menu_item(
    item_id: uuid.UUID,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    guard: SubscriptionGuard = Depends(get_guard),
):
    await require_admin_access(guard, user)
    item = await storage.get_menu_item(item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Menu item not found")
    await get_owned_cafe(storage, item.cafe_id, user)
    await storage.delete_menu_item(item_id)
