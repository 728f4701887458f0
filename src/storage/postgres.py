"""PostgreSQL storage adapter built on an asyncpg pool.

``replace_cycles`` wraps the DELETE and every INSERT in a single
transaction, so a failed insert rolls the user's previous cycles back into
place instead of leaving a partial set.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Sequence

import asyncpg

from src.models.tracking import (
    CycleDraft,
    CycleRead,
    CycleUpdate,
    QUALIFYING_FLOWS,
    PeriodLogCreate,
    PeriodLogRead,
    PeriodLogUpdate,
    ReminderCreate,
    ReminderRead,
    ReminderUpdate,
    UserCreate,
    UserRead,
)
from src.services.database import transaction
from src.storage.base import (
    DuplicateLogDateError,
    DuplicateUserError,
    Storage,
    StorageError,
)

logger = logging.getLogger("flowcycle.storage.postgres")

_QUALIFYING_FLOW_VALUES = sorted(f.value for f in QUALIFYING_FLOWS)


def _reminder_from_row(row: asyncpg.Record) -> ReminderRead:
    data = dict(row)
    data["timing"] = {
        "days": data.pop("timing_days"),
        "when": data.pop("timing_when"),
    }
    return ReminderRead.model_validate(data)


def _column_values(changes: dict[str, Any]) -> dict[str, Any]:
    """Convert enum members to their stored text values."""
    return {k: getattr(v, "value", v) for k, v in changes.items()}


def _log_values(log: PeriodLogCreate) -> tuple:
    return (log.log_date, log.flow.value if log.flow else None, log.symptoms, log.mood, log.notes)


def _set_clause(columns: Sequence[str], start: int) -> str:
    return ", ".join(f"{col} = ${i}" for i, col in enumerate(columns, start=start))


class PostgresStorage(Storage):
    """Storage backed by PostgreSQL.  Owns the pool it is given."""

    backend_name = "postgres"

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    # ---------- Users ----------

    async def create_user(self, user: UserCreate) -> UserRead:
        try:
            row = await self._pool.fetchrow(
                "INSERT INTO users (username) VALUES ($1) RETURNING *",
                user.username,
            )
        except asyncpg.UniqueViolationError as exc:
            raise DuplicateUserError(f"Username already taken: {user.username}") from exc
        return UserRead.model_validate(dict(row))

    async def get_user(self, user_id: int) -> UserRead | None:
        row = await self._pool.fetchrow("SELECT * FROM users WHERE user_id = $1", user_id)
        return UserRead.model_validate(dict(row)) if row else None

    async def get_user_by_username(self, username: str) -> UserRead | None:
        row = await self._pool.fetchrow("SELECT * FROM users WHERE username = $1", username)
        return UserRead.model_validate(dict(row)) if row else None

    # ---------- Period logs ----------

    async def list_period_logs(
        self,
        user_id: int,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[PeriodLogRead]:
        conditions = ["user_id = $1"]
        params: list[Any] = [user_id]
        if start_date:
            params.append(start_date)
            conditions.append(f"log_date >= ${len(params)}")
        if end_date:
            params.append(end_date)
            conditions.append(f"log_date <= ${len(params)}")

        where = " AND ".join(conditions)
        rows = await self._pool.fetch(
            f"SELECT * FROM period_logs WHERE {where} ORDER BY log_date DESC, log_id DESC",
            *params,
        )
        return [PeriodLogRead.model_validate(dict(r)) for r in rows]

    async def list_qualifying_log_entries(self, user_id: int) -> list[PeriodLogRead]:
        rows = await self._pool.fetch(
            "SELECT * FROM period_logs WHERE user_id = $1 AND flow = ANY($2::text[])",
            user_id, _QUALIFYING_FLOW_VALUES,
        )
        return [PeriodLogRead.model_validate(dict(r)) for r in rows]

    async def get_period_log(self, log_id: int) -> PeriodLogRead | None:
        row = await self._pool.fetchrow("SELECT * FROM period_logs WHERE log_id = $1", log_id)
        return PeriodLogRead.model_validate(dict(row)) if row else None

    async def get_period_log_by_date(
        self, user_id: int, log_date: date
    ) -> PeriodLogRead | None:
        row = await self._pool.fetchrow(
            "SELECT * FROM period_logs WHERE user_id = $1 AND log_date = $2",
            user_id, log_date,
        )
        return PeriodLogRead.model_validate(dict(row)) if row else None

    async def create_period_log(
        self, user_id: int, log: PeriodLogCreate
    ) -> PeriodLogRead:
        try:
            row = await self._pool.fetchrow(
                """
                INSERT INTO period_logs (user_id, log_date, flow, symptoms, mood, notes)
                VALUES ($1, $2, $3, $4, $5, $6)
                RETURNING *
                """,
                user_id, *_log_values(log),
            )
        except asyncpg.UniqueViolationError as exc:
            raise DuplicateLogDateError(
                f"A period log already exists for {log.log_date}"
            ) from exc
        return PeriodLogRead.model_validate(dict(row))

    async def upsert_period_log(
        self, user_id: int, log: PeriodLogCreate
    ) -> tuple[PeriodLogRead, PeriodLogRead | None]:
        """Insert, or lock and overwrite the entry already on ``log.log_date``.

        ``ON CONFLICT DO NOTHING`` waits for a concurrent insert of the same
        date to commit, so the follow-up ``SELECT ... FOR UPDATE`` always
        sees the row that won and can report it as the previous entry.
        """
        values = _log_values(log)
        async with transaction(self._pool) as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO period_logs (user_id, log_date, flow, symptoms, mood, notes)
                VALUES ($1, $2, $3, $4, $5, $6)
                ON CONFLICT (user_id, log_date) DO NOTHING
                RETURNING *
                """,
                user_id, *values,
            )
            if row is not None:
                return PeriodLogRead.model_validate(dict(row)), None

            previous = await conn.fetchrow(
                "SELECT * FROM period_logs WHERE user_id = $1 AND log_date = $2 FOR UPDATE",
                user_id, log.log_date,
            )
            if previous is None:
                raise StorageError(f"Period log for {log.log_date} was deleted during upsert")
            row = await conn.fetchrow(
                """
                UPDATE period_logs
                SET flow = $2, symptoms = $3, mood = $4, notes = $5, updated_at = NOW()
                WHERE log_id = $1
                RETURNING *
                """,
                previous["log_id"], *values[1:],
            )
        return (
            PeriodLogRead.model_validate(dict(row)),
            PeriodLogRead.model_validate(dict(previous)),
        )

    async def update_period_log(
        self, log_id: int, changes: PeriodLogUpdate
    ) -> PeriodLogRead | None:
        updates = _column_values(changes.model_dump(exclude_unset=True))
        if not updates:
            return await self.get_period_log(log_id)

        try:
            row = await self._pool.fetchrow(
                f"""
                UPDATE period_logs SET {_set_clause(list(updates), 2)}, updated_at = NOW()
                WHERE log_id = $1
                RETURNING *
                """,
                log_id, *updates.values(),
            )
        except asyncpg.UniqueViolationError as exc:
            raise DuplicateLogDateError(
                f"A period log already exists for {changes.log_date}"
            ) from exc
        return PeriodLogRead.model_validate(dict(row)) if row else None

    async def delete_period_log(self, log_id: int) -> bool:
        result = await self._pool.execute("DELETE FROM period_logs WHERE log_id = $1", log_id)
        return result != "DELETE 0"

    # ---------- Cycles ----------

    async def list_cycles(self, user_id: int) -> list[CycleRead]:
        rows = await self._pool.fetch(
            "SELECT * FROM cycles WHERE user_id = $1 ORDER BY start_date, cycle_id",
            user_id,
        )
        return [CycleRead.model_validate(dict(r)) for r in rows]

    async def get_cycle(self, cycle_id: int) -> CycleRead | None:
        row = await self._pool.fetchrow("SELECT * FROM cycles WHERE cycle_id = $1", cycle_id)
        return CycleRead.model_validate(dict(row)) if row else None

    async def update_cycle(
        self, cycle_id: int, changes: CycleUpdate
    ) -> CycleRead | None:
        updates = changes.model_dump(exclude_unset=True)
        if not updates:
            return await self.get_cycle(cycle_id)

        row = await self._pool.fetchrow(
            f"UPDATE cycles SET {_set_clause(list(updates), 2)} WHERE cycle_id = $1 RETURNING *",
            cycle_id, *updates.values(),
        )
        return CycleRead.model_validate(dict(row)) if row else None

    async def delete_cycle(self, cycle_id: int) -> bool:
        result = await self._pool.execute("DELETE FROM cycles WHERE cycle_id = $1", cycle_id)
        return result != "DELETE 0"

    async def replace_cycles(
        self, user_id: int, drafts: Sequence[CycleDraft]
    ) -> list[CycleRead]:
        stored: list[CycleRead] = []
        async with transaction(self._pool) as conn:
            status = await conn.execute("DELETE FROM cycles WHERE user_id = $1", user_id)
            for draft in drafts:
                row = await conn.fetchrow(
                    """
                    INSERT INTO cycles (user_id, start_date, end_date, period_length, cycle_length)
                    VALUES ($1, $2, $3, $4, $5)
                    RETURNING *
                    """,
                    user_id,
                    draft.start_date,
                    draft.end_date,
                    draft.period_length,
                    draft.cycle_length,
                )
                stored.append(CycleRead.model_validate(dict(row)))
        logger.debug("Replaced cycles for user %s (%s, inserted %d)", user_id, status, len(stored))
        return stored

    # ---------- Reminders ----------

    async def list_reminders(self, user_id: int) -> list[ReminderRead]:
        rows = await self._pool.fetch(
            "SELECT * FROM reminders WHERE user_id = $1 ORDER BY reminder_id", user_id
        )
        return [_reminder_from_row(r) for r in rows]

    async def get_reminder(self, reminder_id: int) -> ReminderRead | None:
        row = await self._pool.fetchrow(
            "SELECT * FROM reminders WHERE reminder_id = $1", reminder_id
        )
        return _reminder_from_row(row) if row else None

    async def create_reminder(
        self, user_id: int, reminder: ReminderCreate
    ) -> ReminderRead:
        row = await self._pool.fetchrow(
            """
            INSERT INTO reminders (
                user_id, reminder_type, timing_days, timing_when, time, message, enabled
            ) VALUES ($1, $2, $3, $4, $5, $6, $7)
            RETURNING *
            """,
            user_id,
            reminder.reminder_type.value,
            reminder.timing.days,
            reminder.timing.when.value,
            reminder.time,
            reminder.message,
            reminder.enabled,
        )
        return _reminder_from_row(row)

    async def update_reminder(
        self, reminder_id: int, changes: ReminderUpdate
    ) -> ReminderRead | None:
        updates = changes.model_dump(exclude_unset=True)
        timing = updates.pop("timing", None)
        if timing is not None:
            updates["timing_days"] = timing["days"]
            updates["timing_when"] = timing["when"]
        updates = _column_values(updates)
        if not updates:
            return await self.get_reminder(reminder_id)

        row = await self._pool.fetchrow(
            f"UPDATE reminders SET {_set_clause(list(updates), 2)} WHERE reminder_id = $1 RETURNING *",
            reminder_id, *updates.values(),
        )
        return _reminder_from_row(row) if row else None

    async def delete_reminder(self, reminder_id: int) -> bool:
        result = await self._pool.execute(
            "DELETE FROM reminders WHERE reminder_id = $1", reminder_id
        )
        return result != "DELETE 0"

    # ---------- Lifecycle ----------

    async def ping(self) -> bool:
        return await self._pool.fetchval("SELECT 1") == 1

    async def close(self) -> None:
        await self._pool.close()
        logger.info("Database pool closed")
