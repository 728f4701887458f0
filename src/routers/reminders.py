"""CRUD endpoints for reminders, plus due dates for the upcoming cycle."""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from src.cycles.reminders import upcoming_reminders
from src.dependencies import InsightsDep, PathUser, StorageDep
from src.models.tracking import (
    ReminderCreate,
    ReminderRead,
    ReminderUpdate,
    UpcomingReminder,
    UserRead,
)
from src.storage.base import Storage

router = APIRouter(prefix="/users/{user_id}/reminders", tags=["reminders"])

_REQUIRED_FIELDS = ("reminder_type", "timing", "time", "enabled")


async def _owned_reminder_or_404(
    storage: Storage, user: UserRead, reminder_id: int
) -> ReminderRead:
    reminder = await storage.get_reminder(reminder_id)
    if reminder is None or reminder.user_id != user.user_id:
        raise HTTPException(status_code=404, detail="Reminder not found")
    return reminder


@router.get("", response_model=list[ReminderRead])
async def list_reminders(user: PathUser, storage: StorageDep) -> Any:
    return await storage.list_reminders(user.user_id)


@router.post("", response_model=ReminderRead, status_code=201)
async def create_reminder(user: PathUser, body: ReminderCreate, storage: StorageDep) -> Any:
    return await storage.create_reminder(user.user_id, body)


@router.get("/upcoming", response_model=list[UpcomingReminder])
async def list_upcoming(
    user: PathUser,
    storage: StorageDep,
    engine: InsightsDep,
    as_of: date | None = Query(default=None),
) -> Any:
    """Enabled period/fertile/ovulation reminders with their next due date."""
    insights = engine.compute(await storage.list_cycles(user.user_id), as_of=as_of)
    return upcoming_reminders(await storage.list_reminders(user.user_id), insights)


@router.get("/{reminder_id}", response_model=ReminderRead)
async def get_reminder(reminder_id: int, user: PathUser, storage: StorageDep) -> Any:
    return await _owned_reminder_or_404(storage, user, reminder_id)


@router.patch("/{reminder_id}", response_model=ReminderRead)
async def update_reminder(
    reminder_id: int, user: PathUser, body: ReminderUpdate, storage: StorageDep
) -> Any:
    if not body.model_fields_set:
        raise HTTPException(status_code=400, detail="No fields to update")
    for name in _REQUIRED_FIELDS:
        if name in body.model_fields_set and getattr(body, name) is None:
            raise HTTPException(status_code=400, detail=f"{name} cannot be cleared")
    await _owned_reminder_or_404(storage, user, reminder_id)

    reminder = await storage.update_reminder(reminder_id, body)
    if reminder is None:
        raise HTTPException(status_code=404, detail="Reminder not found")
    return reminder


@router.delete("/{reminder_id}", status_code=204)
async def delete_reminder(reminder_id: int, user: PathUser, storage: StorageDep) -> None:
    await _owned_reminder_or_404(storage, user, reminder_id)
    if not await storage.delete_reminder(reminder_id):
        raise HTTPException(status_code=404, detail="Reminder not found")
