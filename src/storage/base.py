"""Storage interface shared by the request layer and the cycle deriver.

Concrete adapters live in ``src.storage.memory`` and ``src.storage.postgres``.
Exactly one of them is built at startup (see ``src.storage.create_storage``)
and injected wherever storage is needed.  Adapters never trigger cycle
derivation themselves; the period-log handlers do that after a mutation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Sequence

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


class StorageError(RuntimeError):
    """Raised when a storage backend cannot complete an operation."""


class ConfigurationError(StorageError):
    """Raised at startup when the configured backend cannot be built."""


class DuplicateUserError(StorageError):
    """Raised when a username is already taken."""


class DuplicateLogDateError(StorageError):
    """Raised when a user already has a period log on the target date."""


class Storage(ABC):
    """Abstract storage backend.

    Every method is a coroutine so the in-memory and PostgreSQL adapters are
    interchangeable from the caller's point of view.
    """

    backend_name: str = "abstract"

    # ---------- Users ----------

    @abstractmethod
    async def create_user(self, user: UserCreate) -> UserRead:
        """Insert a user.  Raises DuplicateUserError if the username exists."""

    @abstractmethod
    async def get_user(self, user_id: int) -> UserRead | None: ...

    @abstractmethod
    async def get_user_by_username(self, username: str) -> UserRead | None: ...

    # ---------- Period logs ----------

    @abstractmethod
    async def list_period_logs(
        self,
        user_id: int,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[PeriodLogRead]:
        """Return the user's log entries, newest first, optionally date-bounded."""

    @abstractmethod
    async def get_period_log(self, log_id: int) -> PeriodLogRead | None: ...

    @abstractmethod
    async def get_period_log_by_date(
        self, user_id: int, log_date: date
    ) -> PeriodLogRead | None: ...

    @abstractmethod
    async def create_period_log(
        self, user_id: int, log: PeriodLogCreate
    ) -> PeriodLogRead: ...

    @abstractmethod
    async def upsert_period_log(
        self, user_id: int, log: PeriodLogCreate
    ) -> tuple[PeriodLogRead, PeriodLogRead | None]:
        """Store ``log``, overwriting the entry already on its date.

        Returns the stored entry and the entry it replaced (None on insert).
        Atomic per date: two concurrent calls never create a second entry.
        """

    @abstractmethod
    async def update_period_log(
        self, log_id: int, changes: PeriodLogUpdate
    ) -> PeriodLogRead | None:
        """Apply the fields explicitly set on ``changes``.  None if missing.

        Raises DuplicateLogDateError if a moved entry lands on a taken date.
        """

    @abstractmethod
    async def delete_period_log(self, log_id: int) -> bool: ...

    async def list_qualifying_log_entries(self, user_id: int) -> list[PeriodLogRead]:
        """Log entries with a light, medium or heavy flow, in no particular order.

        Adapters that can filter in the backend should override this.
        """
        logs = await self.list_period_logs(user_id)
        return [log for log in logs if log.qualifies]

    # ---------- Cycles ----------

    @abstractmethod
    async def list_cycles(self, user_id: int) -> list[CycleRead]:
        """Return the user's cycles ordered by start date, oldest first."""

    @abstractmethod
    async def get_cycle(self, cycle_id: int) -> CycleRead | None: ...

    @abstractmethod
    async def update_cycle(
        self, cycle_id: int, changes: CycleUpdate
    ) -> CycleRead | None: ...

    @abstractmethod
    async def delete_cycle(self, cycle_id: int) -> bool: ...

    @abstractmethod
    async def replace_cycles(
        self, user_id: int, drafts: Sequence[CycleDraft]
    ) -> list[CycleRead]:
        """Delete every cycle of ``user_id`` and insert ``drafts`` in order.

        Must be atomic: readers observe either the old set or the new one.
        Each inserted cycle receives a fresh id.
        """

    # ---------- Reminders ----------

    @abstractmethod
    async def list_reminders(self, user_id: int) -> list[ReminderRead]: ...

    @abstractmethod
    async def get_reminder(self, reminder_id: int) -> ReminderRead | None: ...

    @abstractmethod
    async def create_reminder(
        self, user_id: int, reminder: ReminderCreate
    ) -> ReminderRead: ...

    @abstractmethod
    async def update_reminder(
        self, reminder_id: int, changes: ReminderUpdate
    ) -> ReminderRead | None: ...

    @abstractmethod
    async def delete_reminder(self, reminder_id: int) -> bool: ...

    # ---------- Lifecycle ----------

    async def ping(self) -> bool:
        """Cheap liveness probe used by the health endpoint."""
        return True

    async def close(self) -> None:
        """Release backend resources.  Default is a no-op."""
