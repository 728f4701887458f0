"""CRUD endpoints for daily period logs.

Any mutation that touches a bleeding day (light, medium or heavy flow,
before or after the change) re-derives the user's cycles once the log
entry itself has been written.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from src.dependencies import DeriverDep, PathUser, StorageDep
from src.models.tracking import (
    PeriodLogCreate,
    PeriodLogRead,
    PeriodLogUpdate,
    UserRead,
)
from src.storage.base import DuplicateLogDateError, Storage

router = APIRouter(prefix="/users/{user_id}/period-logs", tags=["period logs"])


async def _owned_log_or_404(storage: Storage, user: UserRead, log_id: int) -> PeriodLogRead:
    log = await storage.get_period_log(log_id)
    if log is None or log.user_id != user.user_id:
        raise HTTPException(status_code=404, detail="Period log not found")
    return log


@router.get("", response_model=list[PeriodLogRead])
async def list_logs(
    user: PathUser,
    storage: StorageDep,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
) -> Any:
    return await storage.list_period_logs(user.user_id, start_date, end_date)


@router.post("", response_model=PeriodLogRead, status_code=201)
async def create_log(
    user: PathUser, body: PeriodLogCreate, storage: StorageDep, deriver: DeriverDep
) -> Any:
    """Create a log entry, or overwrite the entry already logged for that date."""
    log, previous = await storage.upsert_period_log(user.user_id, body)
    if log.qualifies or (previous is not None and previous.qualifies):
        await deriver.derive(user.user_id)
    return log


@router.get("/{log_id}", response_model=PeriodLogRead)
async def get_log(log_id: int, user: PathUser, storage: StorageDep) -> Any:
    return await _owned_log_or_404(storage, user, log_id)


@router.patch("/{log_id}", response_model=PeriodLogRead)
async def update_log(
    log_id: int,
    user: PathUser,
    body: PeriodLogUpdate,
    storage: StorageDep,
    deriver: DeriverDep,
) -> Any:
    if not body.model_fields_set:
        raise HTTPException(status_code=400, detail="No fields to update")
    if "log_date" in body.model_fields_set and body.log_date is None:
        raise HTTPException(status_code=400, detail="log_date cannot be cleared")

    existing = await _owned_log_or_404(storage, user, log_id)
    try:
        log = await storage.update_period_log(log_id, body)
    except DuplicateLogDateError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if log is None:
        raise HTTPException(status_code=404, detail="Period log not found")

    if existing.qualifies or log.qualifies:
        await deriver.derive(user.user_id)
    return log


@router.delete("/{log_id}", status_code=204)
async def delete_log(
    log_id: int, user: PathUser, storage: StorageDep, deriver: DeriverDep
) -> None:
    existing = await _owned_log_or_404(storage, user, log_id)
    if not await storage.delete_period_log(log_id):
        raise HTTPException(status_code=404, detail="Period log not found")

    if existing.qualifies:
        await deriver.derive(user.user_id)
