"""Storage backends for FlowCycle.

The backend is chosen once, at startup, from ``Settings.storage_backend``.
A misconfigured or unreachable PostgreSQL backend is a startup error; the
service never falls back to in-memory storage on its own.

Modules:
    base    : Storage interface and storage errors
    memory  : In-process dict-backed adapter
    postgres: asyncpg adapter with transactional cycle replacement
"""

from __future__ import annotations

import logging

from src.config import Settings
from src.storage.base import (
    ConfigurationError,
    DuplicateLogDateError,
    DuplicateUserError,
    Storage,
    StorageError,
)
from src.storage.memory import InMemoryStorage

logger = logging.getLogger("flowcycle.storage")


async def create_storage(settings: Settings) -> Storage:
    """Build the storage backend named by ``settings.storage_backend``.

    Raises:
        ConfigurationError: If the backend is unknown or lacks its settings.
        OSError / asyncpg errors: If PostgreSQL cannot be reached.
    """
    backend = settings.storage_backend
    if backend == "memory":
        logger.info("Using in-memory storage")
        return InMemoryStorage()

    if backend == "postgres":
        if not settings.database_url:
            raise ConfigurationError(
                "storage_backend=postgres requires DATABASE_URL to be set"
            )
        # Imported lazily so the memory backend works without asyncpg installed
        from src.services.database import apply_schema, create_pool
        from src.storage.postgres import PostgresStorage

        pool = await create_pool(settings)
        if settings.database_auto_migrate:
            await apply_schema(pool)
        logger.info("Using PostgreSQL storage")
        return PostgresStorage(pool)

    raise ConfigurationError(f"Unknown storage backend: {backend!r}")


__all__ = [
    "ConfigurationError",
    "DuplicateLogDateError",
    "DuplicateUserError",
    "InMemoryStorage",
    "Storage",
    "StorageError",
    "create_storage",
]
