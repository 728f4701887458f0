"""Tests for startup-time backend selection."""

from __future__ import annotations

import pytest

import src.services.database as database
from src.config import Settings
from src.storage import ConfigurationError, InMemoryStorage, create_storage
from src.storage.postgres import PostgresStorage
from src.storage.tests.conftest import FakePool


class TestCreateStorage:
    @pytest.mark.asyncio
    async def test_memory_backend(self) -> None:
        storage = await create_storage(Settings(_env_file=None, storage_backend="memory"))
        assert isinstance(storage, InMemoryStorage)

    @pytest.mark.asyncio
    async def test_postgres_without_url_fails_fast(self) -> None:
        settings = Settings(_env_file=None, storage_backend="postgres", database_url=None)
        with pytest.raises(ConfigurationError):
            await create_storage(settings)

    @pytest.mark.asyncio
    async def test_postgres_backend_applies_schema(self, monkeypatch: pytest.MonkeyPatch) -> None:
        pool = FakePool()

        async def fake_create_pool(settings: Settings) -> FakePool:
            return pool

        monkeypatch.setattr(database, "create_pool", fake_create_pool)
        settings = Settings(
            _env_file=None,
            storage_backend="postgres",
            database_url="postgresql://localhost/flowcycle",
        )
        storage = await create_storage(settings)

        assert isinstance(storage, PostgresStorage)
        assert any("CREATE TABLE IF NOT EXISTS cycles" in sql for sql in pool.statements)

    @pytest.mark.asyncio
    async def test_connection_errors_are_not_swallowed(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def failing_create_pool(settings: Settings) -> FakePool:
            raise OSError("connection refused")

        monkeypatch.setattr(database, "create_pool", failing_create_pool)
        settings = Settings(
            _env_file=None,
            storage_backend="postgres",
            database_url="postgresql://localhost/flowcycle",
        )
        with pytest.raises(OSError):
            await create_storage(settings)
