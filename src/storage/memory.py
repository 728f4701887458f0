"""In-process storage adapter.

Collections are plain dicts keyed by integer id (insertion ordered), with one
id counter per collection.  Cycles are kept as an immutable tuple per user:
``replace_cycles`` builds the complete new tuple first and then swaps it into
place with a single assignment, so a concurrent reader sees either the old
cycle set or the new one, never a mix.

Usage::

    storage = InMemoryStorage()
    user = await storage.create_user(UserCreate(username="ada"))
    await storage.create_period_log(user.user_id, PeriodLogCreate(log_date=..., flow="heavy"))
"""

from __future__ import annotations

import itertools
import logging
from datetime import date
from typing import Any, Sequence

from pydantic import BaseModel

from src.models.tracking import (
    CycleDraft,
    CycleRead,
    CycleUpdate,
    PeriodLogCreate,
    PeriodLogRead,
    PeriodLogUpdate,
    ReminderCreate,
    ReminderRead,
    ReminderUpdate,
    UserCreate,
    UserRead,
)
from src.storage.base import DuplicateLogDateError, DuplicateUserError, Storage

logger = logging.getLogger("flowcycle.storage.memory")


def _explicit_changes(changes: BaseModel) -> dict[str, Any]:
    """Fields the caller actually sent, keeping nested models as models."""
    return {name: getattr(changes, name) for name in changes.model_fields_set}


class InMemoryStorage(Storage):
    """Dict-backed storage.  Data lives only as long as the process."""

    backend_name = "memory"

    def __init__(self) -> None:
        self._users: dict[int, UserRead] = {}
        self._period_logs: dict[int, PeriodLogRead] = {}
        self._cycles: dict[int, tuple[CycleRead, ...]] = {}  # user_id -> snapshot
        self._reminders: dict[int, ReminderRead] = {}

        self._user_ids = itertools.count(1)
        self._log_ids = itertools.count(1)
        self._cycle_ids = itertools.count(1)
        self._reminder_ids = itertools.count(1)

    # ---------- Users ----------

    async def create_user(self, user: UserCreate) -> UserRead:
        if await self.get_user_by_username(user.username) is not None:
            raise DuplicateUserError(f"Username already taken: {user.username}")
        record = UserRead(user_id=next(self._user_ids), username=user.username)
        self._users[record.user_id] = record
        return record

    async def get_user(self, user_id: int) -> UserRead | None:
        return self._users.get(user_id)

    async def get_user_by_username(self, username: str) -> UserRead | None:
        return next(
            (u for u in self._users.values() if u.username == username), None
        )

    # ---------- Period logs ----------

    async def list_period_logs(
        self,
        user_id: int,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[PeriodLogRead]:
        logs = [
            log
            for log in self._period_logs.values()
            if log.user_id == user_id
            and (start_date is None or log.log_date >= start_date)
            and (end_date is None or log.log_date <= end_date)
        ]
        return sorted(logs, key=lambda log: (log.log_date, log.log_id), reverse=True)

    async def get_period_log(self, log_id: int) -> PeriodLogRead | None:
        return self._period_logs.get(log_id)

    async def get_period_log_by_date(
        self, user_id: int, log_date: date
    ) -> PeriodLogRead | None:
        return next(
            (
                log
                for log in self._period_logs.values()
                if log.user_id == user_id and log.log_date == log_date
            ),
            None,
        )

    async def create_period_log(
        self, user_id: int, log: PeriodLogCreate
    ) -> PeriodLogRead:
        if await self.get_period_log_by_date(user_id, log.log_date) is not None:
            raise DuplicateLogDateError(f"A period log already exists for {log.log_date}")
        record = PeriodLogRead(
            log_id=next(self._log_ids),
            user_id=user_id,
            **log.model_dump(),
        )
        self._period_logs[record.log_id] = record
        return record

    async def upsert_period_log(
        self, user_id: int, log: PeriodLogCreate
    ) -> tuple[PeriodLogRead, PeriodLogRead | None]:
        # No await suspends between the lookup and the write
        previous = await self.get_period_log_by_date(user_id, log.log_date)
        if previous is None:
            return await self.create_period_log(user_id, log), None
        stored = previous.touched(**log.model_dump())
        self._period_logs[stored.log_id] = stored
        return stored, previous

    async def update_period_log(
        self, log_id: int, changes: PeriodLogUpdate
    ) -> PeriodLogRead | None:
        existing = self._period_logs.get(log_id)
        if existing is None:
            return None
        new_date = changes.log_date
        if new_date is not None and new_date != existing.log_date:
            if await self.get_period_log_by_date(existing.user_id, new_date) is not None:
                raise DuplicateLogDateError(f"A period log already exists for {new_date}")
        updated = existing.touched(**_explicit_changes(changes))
        self._period_logs[log_id] = updated
        return updated

    async def delete_period_log(self, log_id: int) -> bool:
        return self._period_logs.pop(log_id, None) is not None

    # ---------- Cycles ----------

    async def list_cycles(self, user_id: int) -> list[CycleRead]:
        snapshot = self._cycles.get(user_id, ())
        return sorted(snapshot, key=lambda c: (c.start_date, c.cycle_id))

    def _find_cycle(self, cycle_id: int) -> tuple[int, CycleRead] | None:
        for user_id, snapshot in self._cycles.items():
            for cycle in snapshot:
                if cycle.cycle_id == cycle_id:
                    return user_id, cycle
        return None

    async def get_cycle(self, cycle_id: int) -> CycleRead | None:
        found = self._find_cycle(cycle_id)
        return found[1] if found else None

    async def update_cycle(
        self, cycle_id: int, changes: CycleUpdate
    ) -> CycleRead | None:
        found = self._find_cycle(cycle_id)
        if found is None:
            return None
        user_id, existing = found
        updated = existing.model_copy(update=_explicit_changes(changes))
        self._cycles[user_id] = tuple(
            updated if c.cycle_id == cycle_id else c for c in self._cycles[user_id]
        )
        return updated

    async def delete_cycle(self, cycle_id: int) -> bool:
        found = self._find_cycle(cycle_id)
        if found is None:
            return False
        user_id, _ = found
        self._cycles[user_id] = tuple(
            c for c in self._cycles[user_id] if c.cycle_id != cycle_id
        )
        return True

    async def replace_cycles(
        self, user_id: int, drafts: Sequence[CycleDraft]
    ) -> list[CycleRead]:
        snapshot = tuple(
            CycleRead(
                cycle_id=next(self._cycle_ids),
                user_id=user_id,
                **draft.model_dump(),
            )
            for draft in drafts
        )
        previous = self._cycles.get(user_id, ())
        self._cycles[user_id] = snapshot
        logger.debug(
            "Replaced %d cycles with %d for user %s",
            len(previous), len(snapshot), user_id,
        )
        return list(snapshot)

    # ---------- Reminders ----------

    async def list_reminders(self, user_id: int) -> list[ReminderRead]:
        return sorted(
            (r for r in self._reminders.values() if r.user_id == user_id),
            key=lambda r: r.reminder_id,
        )

    async def get_reminder(self, reminder_id: int) -> ReminderRead | None:
        return self._reminders.get(reminder_id)

    async def create_reminder(
        self, user_id: int, reminder: ReminderCreate
    ) -> ReminderRead:
        record = ReminderRead(
            reminder_id=next(self._reminder_ids),
            user_id=user_id,
            **reminder.model_dump(),
        )
        self._reminders[record.reminder_id] = record
        return record

    async def update_reminder(
        self, reminder_id: int, changes: ReminderUpdate
    ) -> ReminderRead | None:
        existing = self._reminders.get(reminder_id)
        if existing is None:
            return None
        updated = existing.model_copy(update=_explicit_changes(changes))
        self._reminders[reminder_id] = updated
        return updated

    async def delete_reminder(self, reminder_id: int) -> bool:
        return self._reminders.pop(reminder_id, None) is not None
