"""Shared fixtures and asyncpg fakes for storage tests."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Callable

import pytest

from src.storage.memory import InMemoryStorage

TEST_USER_ID = 1


@pytest.fixture
def memory_storage() -> InMemoryStorage:
    return InMemoryStorage()


class FakeConnection:
    """Records every statement; ``responder`` produces rows for fetch calls.

    ``events`` holds ("begin" | "commit" | "rollback" | sql, args) tuples in
    the order they happened.
    """

    def __init__(self, responder: Callable[[str, tuple], Any] | None = None) -> None:
        self._responder = responder or (lambda sql, args: None)
        self.events: list[tuple[str, tuple]] = []

    @asynccontextmanager
    async def transaction(self):
        self.events.append(("begin", ()))
        try:
            yield
        except BaseException:
            self.events.append(("rollback", ()))
            raise
        self.events.append(("commit", ()))

    def _record(self, sql: str, args: tuple) -> Any:
        normalized = " ".join(sql.split())
        self.events.append((normalized, args))
        return self._responder(normalized, args)

    async def execute(self, sql: str, *args: Any) -> str:
        result = self._record(sql, args)
        return result if isinstance(result, str) else "OK"

    async def fetch(self, sql: str, *args: Any) -> list[dict]:
        return self._record(sql, args) or []

    async def fetchrow(self, sql: str, *args: Any) -> dict | None:
        return self._record(sql, args)

    async def fetchval(self, sql: str, *args: Any) -> Any:
        return self._record(sql, args)

    @property
    def statements(self) -> list[str]:
        return [sql for sql, _ in self.events if sql not in {"begin", "commit", "rollback"}]


class FakePool(FakeConnection):
    """Pool facade over a single FakeConnection."""

    def __init__(self, responder: Callable[[str, tuple], Any] | None = None) -> None:
        super().__init__(responder)
        self.closed = False

    @asynccontextmanager
    async def acquire(self):
        yield self

    async def close(self) -> None:
        self.closed = True
