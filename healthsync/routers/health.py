"""Health check endpoint — public, no auth required."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from healthsync.dependencies import AppSettings, Availability

router = APIRouter(tags=["system"])


@router.get("/health")
async def health_check(settings: AppSettings, store: Availability) -> dict:
    """Liveness probe. Returns 200 if the process is up.

    Also reports the last known availability of the remote store.
    """
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "remote_store": store.current.status.value,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
