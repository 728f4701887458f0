"""Pydantic models for cycle tracking: users, period logs, derived cycles,
cycle insights and reminders."""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import ConfigDict, Field

from src.models.base import CreatedAt, FlowCycleBase, Timestamped


# ---------- Enums ----------

class FlowLevel(str, Enum):
    none = "none"
    light = "light"
    medium = "medium"
    heavy = "heavy"


# Flows that count as a bleeding day for cycle derivation
QUALIFYING_FLOWS: frozenset[FlowLevel] = frozenset(
    {FlowLevel.light, FlowLevel.medium, FlowLevel.heavy}
)


def is_qualifying_flow(flow: FlowLevel | str | None) -> bool:
    """True for light/medium/heavy. ``none`` and a missing flow are equivalent."""
    if flow is None:
        return False
    try:
        return FlowLevel(flow) in QUALIFYING_FLOWS
    except ValueError:
        return False


class CyclePhase(str, Enum):
    menstrual = "menstrual"
    follicular = "follicular"
    ovulation = "ovulation"
    luteal = "luteal"


class ReminderType(str, Enum):
    period = "period"
    fertile = "fertile"
    ovulation = "ovulation"
    medication = "medication"
    custom = "custom"


class ReminderWhen(str, Enum):
    before = "before"
    after = "after"
    on = "on"


# ---------- Users ----------

class UserCreate(FlowCycleBase):
    username: str = Field(min_length=1, max_length=64)


class UserRead(UserCreate, CreatedAt):
    user_id: int


# ---------- Period Logs ----------

class PeriodLogBase(FlowCycleBase):
    log_date: date
    flow: FlowLevel | None = None
    symptoms: list[str] = Field(default_factory=list)
    mood: str | None = None
    notes: str | None = None


class PeriodLogCreate(PeriodLogBase):
    pass


class PeriodLogUpdate(FlowCycleBase):
    log_date: date | None = None
    flow: FlowLevel | None = None
    symptoms: list[str] | None = None
    mood: str | None = None
    notes: str | None = None


class PeriodLogRead(PeriodLogBase, Timestamped):
    log_id: int
    user_id: int

    @property
    def qualifies(self) -> bool:
        return is_qualifying_flow(self.flow)


# ---------- Cycles ----------

class CycleDraft(FlowCycleBase):
    """A derived cycle that has not been stored yet."""

    model_config = ConfigDict(frozen=True)

    start_date: date
    end_date: date
    period_length: int = Field(ge=1)
    cycle_length: int | None = Field(default=None, ge=0)


class CycleRead(CycleDraft):
    cycle_id: int
    user_id: int


class CycleUpdate(FlowCycleBase):
    start_date: date | None = None
    end_date: date | None = None
    period_length: int | None = Field(default=None, ge=1)
    cycle_length: int | None = Field(default=None, ge=0)


class CycleInsights(FlowCycleBase):
    as_of: date
    cycles_used: int = 0
    average_cycle_length: float
    average_period_length: float
    cycle_length_stddev: float | None = None
    is_irregular: bool = False
    current_cycle_start: date | None = None
    current_cycle_day: int | None = None
    current_phase: CyclePhase | None = None
    predicted_next_start: date | None = None
    predicted_period_end: date | None = None
    predicted_ovulation: date | None = None
    fertile_window_start: date | None = None
    fertile_window_end: date | None = None
    warnings: list[str] = Field(default_factory=list)


# ---------- Reminders ----------

class ReminderTiming(FlowCycleBase):
    days: int = Field(default=0, ge=0, le=60)
    when: ReminderWhen = ReminderWhen.on


class ReminderBase(FlowCycleBase):
    reminder_type: ReminderType
    timing: ReminderTiming = Field(default_factory=ReminderTiming)
    time: str = Field(default="08:00", pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    message: str | None = None
    enabled: bool = True


class ReminderCreate(ReminderBase):
    pass


class ReminderUpdate(FlowCycleBase):
    reminder_type: ReminderType | None = None
    timing: ReminderTiming | None = None
    time: str | None = Field(default=None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    message: str | None = None
    enabled: bool | None = None


class ReminderRead(ReminderBase):
    reminder_id: int
    user_id: int


class UpcomingReminder(FlowCycleBase):
    reminder: ReminderRead
    due_date: date
    anchor_date: date
