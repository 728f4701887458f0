"""FlowCycle API: FastAPI application entry point.

Run locally:
    uvicorn src.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.config import Settings, get_settings
from src.cycles.deriver import CycleDeriver
from src.cycles.insights import CycleInsightsEngine, PredictionConfig
from src.middleware.request_log import REQUEST_ID_HEADER, RequestLogMiddleware
from src.routers import cycles, health, period_logs, reminders, users
from src.storage import create_storage

logger = logging.getLogger("flowcycle")


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


# ---------- App factory ----------

def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Startup / shutdown hooks."""
        logger.info(
            "Starting FlowCycle API v%s [%s, storage=%s]",
            settings.app_version,
            settings.environment,
            settings.storage_backend,
        )
        storage = await create_storage(settings)
        app.state.storage = storage
        app.state.deriver = CycleDeriver(storage)
        app.state.insights = CycleInsightsEngine(PredictionConfig.from_settings(settings))
        yield
        await storage.close()
        logger.info("FlowCycle API shut down")

    app = FastAPI(
        title="FlowCycle API",
        description=(
            "Period tracking: daily flow logs, automatically derived cycles, "
            "cycle insights, and reminders."
        ),
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # ---------- Middleware (the last one added runs first) ----------

    app.add_middleware(RequestLogMiddleware)

    # CORS is added last so it wraps everything and answers preflight
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    # ---------- Health check (outside v1 prefix, always at /health) ----------
    app.include_router(health.router)

    # ---------- API v1 routes ----------
    v1_prefix = "/api/v1"

    app.include_router(users.router, prefix=v1_prefix)
    app.include_router(period_logs.router, prefix=v1_prefix)
    app.include_router(cycles.router, prefix=v1_prefix)
    app.include_router(reminders.router, prefix=v1_prefix)

    return app


app = create_app()
