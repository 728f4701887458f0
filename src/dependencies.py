"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from src.config import Settings
from src.cycles.deriver import CycleDeriver
from src.cycles.insights import CycleInsightsEngine
from src.models.tracking import UserRead
from src.storage.base import Storage


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was created with."""
    return request.app.state.settings


def get_storage(request: Request) -> Storage:
    """The storage backend built during app startup."""
    return request.app.state.storage


def get_deriver(request: Request) -> CycleDeriver:
    return request.app.state.deriver


def get_insights_engine(request: Request) -> CycleInsightsEngine:
    return request.app.state.insights


async def get_user_or_404(
    user_id: int, storage: Annotated[Storage, Depends(get_storage)]
) -> UserRead:
    """Resolve the ``{user_id}`` path parameter to a stored user."""
    user = await storage.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


# Annotated shortcuts for route signatures
StorageDep = Annotated[Storage, Depends(get_storage)]
DeriverDep = Annotated[CycleDeriver, Depends(get_deriver)]
InsightsDep = Annotated[CycleInsightsEngine, Depends(get_insights_engine)]
PathUser = Annotated[UserRead, Depends(get_user_or_404)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
