"""Endpoints for derived cycles and cycle insights.

Cycles are produced by the deriver.  Manual edits through PATCH/DELETE are
allowed but only last until the next period-log change re-derives the set.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from src.dependencies import DeriverDep, InsightsDep, PathUser, StorageDep
from src.models.tracking import CycleInsights, CycleRead, CycleUpdate, UserRead
from src.storage.base import Storage

router = APIRouter(prefix="/users/{user_id}/cycles", tags=["cycles"])


async def _owned_cycle_or_404(storage: Storage, user: UserRead, cycle_id: int) -> CycleRead:
    cycle = await storage.get_cycle(cycle_id)
    if cycle is None or cycle.user_id != user.user_id:
        raise HTTPException(status_code=404, detail="Cycle not found")
    return cycle


@router.get("", response_model=list[CycleRead])
async def list_cycles(user: PathUser, storage: StorageDep) -> Any:
    """All of the user's cycles, oldest first."""
    return await storage.list_cycles(user.user_id)


@router.post("/derive", response_model=list[CycleRead])
async def derive_cycles(user: PathUser, storage: StorageDep, deriver: DeriverDep) -> Any:
    """Force a derivation pass and return the resulting cycle set."""
    await deriver.derive(user.user_id)
    return await storage.list_cycles(user.user_id)


@router.get("/insights", response_model=CycleInsights)
async def get_insights(
    user: PathUser,
    storage: StorageDep,
    engine: InsightsDep,
    as_of: date | None = Query(default=None),
) -> Any:
    cycles = await storage.list_cycles(user.user_id)
    return engine.compute(cycles, as_of=as_of)


@router.get("/{cycle_id}", response_model=CycleRead)
async def get_cycle(cycle_id: int, user: PathUser, storage: StorageDep) -> Any:
    return await _owned_cycle_or_404(storage, user, cycle_id)


@router.patch("/{cycle_id}", response_model=CycleRead)
async def update_cycle(
    cycle_id: int, user: PathUser, body: CycleUpdate, storage: StorageDep
) -> Any:
    if not body.model_fields_set:
        raise HTTPException(status_code=400, detail="No fields to update")
    for name in ("start_date", "end_date", "period_length"):
        if name in body.model_fields_set and getattr(body, name) is None:
            raise HTTPException(status_code=400, detail=f"{name} cannot be cleared")
    await _owned_cycle_or_404(storage, user, cycle_id)

    cycle = await storage.update_cycle(cycle_id, body)
    if cycle is None:
        raise HTTPException(status_code=404, detail="Cycle not found")
    return cycle


@router.delete("/{cycle_id}", status_code=204)
async def delete_cycle(cycle_id: int, user: PathUser, storage: StorageDep) -> None:
    await _owned_cycle_or_404(storage, user, cycle_id)
    if not await storage.delete_cycle(cycle_id):
        raise HTTPException(status_code=404, detail="Cycle not found")
