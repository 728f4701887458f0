"""Health check endpoint: public, no user scope."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from src.dependencies import AppSettings, StorageDep

router = APIRouter(tags=["system"])
logger = logging.getLogger("flowcycle.health")


@router.get("/health")
async def health_check(settings: AppSettings, storage: StorageDep) -> dict:
    """Liveness probe. Returns 200 if the API process is up.

    Also pings the storage backend.
    """
    storage_ok = False
    try:
        storage_ok = await storage.ping()
    except Exception as exc:
        logger.warning("Health check storage probe failed: %s", exc)

    return {
        "status": "healthy" if storage_ok else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "storage": storage.backend_name,
        "storage_status": "connected" if storage_ok else "unreachable",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
