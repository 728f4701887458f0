"""Pydantic base classes for FlowCycle records."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field

_Stamped = TypeVar("_Stamped", bound="Timestamped")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FlowCycleBase(BaseModel):
    """Shared config: builds from asyncpg records and trims string input."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class CreatedAt(BaseModel):
    created_at: datetime = Field(default_factory=utc_now)


class Timestamped(CreatedAt):
    """Records users edit in place (period log entries)."""

    updated_at: datetime = Field(default_factory=utc_now)

    def touched(self: _Stamped, **changes: Any) -> _Stamped:
        """Copy with ``changes`` applied and ``updated_at`` set to now.

        The PostgreSQL adapter sets ``updated_at = NOW()`` in SQL instead.
        """
        return self.model_copy(update={**changes, "updated_at": utc_now()})
