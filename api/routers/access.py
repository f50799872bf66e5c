"""Shared checks for owner-only mutation endpoints."""

import uuid

from fastapi import HTTPException
from pydantic import BaseModel

from models.cafe import Cafe
from models.user import User
from services.storage import Storage
from services.subscription_guard import GuardResult, SubscriptionGuard


async def require_admin_access(guard: SubscriptionGuard, user: User) -> GuardResult:
    """403 with the guard's reason when the subscription blocks admin actions."""
    check = await guard.can_perform_admin_action(user.id)
    if not check.allowed:
        raise HTTPException(status_code=403, detail=check.reason)
    return check


async def get_owned_cafe(storage: Storage, cafe_id: uuid.UUID, user: User) -> Cafe:
    cafe = await storage.get_cafe(cafe_id)
    if not cafe:
        raise HTTPException(status_code=404, detail="Cafe not found")
    if cafe.owner_id != user.id:
        raise HTTPException(status_code=403, detail="Forbidden")
    return cafe


def patch_values(data: BaseModel, nullable: tuple[str, ...] = ()) -> dict:
    """Fields the client sent. A null only clears columns listed in `nullable`."""
    return {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field in nullable
    }
