"""User endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException

from src.dependencies import PathUser, StorageDep
from src.models.tracking import UserCreate, UserRead
from src.storage.base import DuplicateUserError

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserRead, status_code=201)
async def create_user(body: UserCreate, storage: StorageDep) -> Any:
    try:
        return await storage.create_user(body)
    except DuplicateUserError as exc:
        raise HTTPException(status_code=409, detail="Username already taken") from exc


@router.get("/{user_id}", response_model=UserRead)
async def get_user(user: PathUser) -> Any:
    return user
