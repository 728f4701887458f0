"""asyncpg connection pool and schema bootstrap for the PostgreSQL backend.

The pool is created once at app startup by ``create_storage`` and owned by
the ``PostgresStorage`` adapter, which closes it on shutdown.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import asyncpg

from src.config import Settings

logger = logging.getLogger("flowcycle.db")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    user_id     SERIAL PRIMARY KEY,
    username    TEXT NOT NULL UNIQUE,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS period_logs (
    log_id      SERIAL PRIMARY KEY,
    user_id     INTEGER NOT NULL REFERENCES users (user_id) ON DELETE CASCADE,
    log_date    DATE NOT NULL,
    flow        TEXT CHECK (flow IN ('none', 'light', 'medium', 'heavy')),
    symptoms    TEXT[] NOT NULL DEFAULT '{}',
    mood        TEXT,
    notes       TEXT,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (user_id, log_date)
);

CREATE TABLE IF NOT EXISTS cycles (
    cycle_id       SERIAL PRIMARY KEY,
    user_id        INTEGER NOT NULL REFERENCES users (user_id) ON DELETE CASCADE,
    start_date     DATE NOT NULL,
    end_date       DATE NOT NULL,
    period_length  INTEGER NOT NULL CHECK (period_length >= 1),
    cycle_length   INTEGER CHECK (cycle_length >= 0)
);
CREATE INDEX IF NOT EXISTS cycles_user_start_idx ON cycles (user_id, start_date);

CREATE TABLE IF NOT EXISTS reminders (
    reminder_id    SERIAL PRIMARY KEY,
    user_id        INTEGER NOT NULL REFERENCES users (user_id) ON DELETE CASCADE,
    reminder_type  TEXT NOT NULL,
    timing_days    INTEGER NOT NULL DEFAULT 0,
    timing_when    TEXT NOT NULL DEFAULT 'on',
    time           TEXT NOT NULL DEFAULT '08:00',
    message        TEXT,
    enabled        BOOLEAN NOT NULL DEFAULT TRUE
);
"""


async def create_pool(settings: Settings) -> asyncpg.Pool:
    """Create the asyncpg connection pool from settings."""
    pool = await asyncpg.create_pool(
        settings.database_url,
        min_size=settings.database_pool_min_size,
        max_size=settings.database_pool_max_size,
        command_timeout=settings.database_command_timeout,
    )
    logger.info(
        "Database pool initialized (min=%d, max=%d)",
        settings.database_pool_min_size,
        settings.database_pool_max_size,
    )
    return pool


async def apply_schema(pool: asyncpg.Pool) -> None:
    """Create tables and indexes if they do not exist yet."""
    async with pool.acquire() as conn:
        await conn.execute(SCHEMA_SQL)
    logger.info("Database schema ensured")


@asynccontextmanager
async def transaction(pool: asyncpg.Pool) -> AsyncGenerator[asyncpg.Connection, None]:
    """Acquire a connection and run the block inside one transaction.

    Usage::

        async with transaction(pool) as conn:
            await conn.execute("DELETE FROM cycles WHERE user_id = $1", user_id)
            await conn.execute("INSERT INTO cycles ...", ...)

    Any exception rolls the whole block back.
    """
    async with pool.acquire() as conn:
        async with conn.transaction():
            yield conn
