"""Shared dietary, allergen and characteristic tags."""

from fastapi import APIRouter, Depends, HTTPException

from models.user import User
from schemas import TagCreate, TagResponse
from services.auth import get_current_user
from services.storage import Storage, get_storage

router = APIRouter()


@router.get("/", response_model=list[TagResponse])
async def list_tags(storage: Storage = Depends(get_storage)):
    return await storage.list_tags()


@router.post("/", response_model=TagResponse, status_code=201)
async def create_tag(
    data: TagCreate,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    try:
        return await storage.create_tag(**data.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
