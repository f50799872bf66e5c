"""Registration and login endpoints."""

import logging
from fastapi import APIRouter, Depends, HTTPException

from schemas import UserRegister, UserLogin, UserResponse, TokenResponse
from services.auth import authenticate_user, create_access_token, hash_password
from services.storage import Storage, get_storage

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/register", response_model=UserResponse, status_code=201)
async def register(data: UserRegister, storage: Storage = Depends(get_storage)):
    """Create a cafe-owner account. The trial starts with the first cafe or status check."""
    username = data.username.strip().lower()
    if await storage.get_user_by_username(username):
        raise HTTPException(status_code=400, detail="Username already exists")

    user = await storage.create_user(username, hash_password(data.password))
    logger.info("User registered: user_id=%s", user.id)
    return user


@router.post("/login", response_model=TokenResponse)
async def login(data: UserLogin, storage: Storage = Depends(get_storage)):
    user = await authenticate_user(storage, data.username.strip().lower(), data.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid username or password")
    return TokenResponse(access_token=create_access_token(user.id))
