"""Health Sync API — FastAPI application entry point.

Run locally:
    uvicorn healthsync.main:app --reload --port 8000
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from healthsync.config import Settings, get_settings
from healthsync.routers import aggregation, availability, health, records
from healthsync.sync.availability import AvailabilityProber, AvailabilityStore
from healthsync.sync.client import RemoteStoreClient

logger = logging.getLogger("healthsync")


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings = get_settings()
    logger.info("Starting Health Sync API v%s [%s]", settings.app_version, settings.environment)

    client = RemoteStoreClient.from_settings(settings)
    store = AvailabilityStore()
    prober = AvailabilityProber(
        store,
        ping=client.ping,
        timeout=settings.probe_timeout_seconds,
        retry_delay=settings.probe_retry_delay_seconds,
        max_retries=settings.probe_max_retries,
    )
    cancel = asyncio.Event()

    app.state.remote_client = client
    app.state.availability_store = store
    app.state.prober = prober
    app.state.probe_cancel = cancel

    task = prober.start(cancel) if settings.probe_on_startup else None
    yield

    cancel.set()
    if task is not None:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
    await client.close()
    logger.info("Health Sync API shut down")


# ---------- App factory ----------

def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="Health Sync API",
        description=(
            "Aggregates on-device health records into daily records and "
            "publishes them to the remote record store."
        ),
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------- Health check (outside the v1 prefix, always at /health) ----------
    app.include_router(health.router)

    # ---------- API v1 routes ----------
    v1_prefix = "/api/v1"

    app.include_router(availability.router, prefix=v1_prefix)
    app.include_router(aggregation.router, prefix=v1_prefix)
    app.include_router(records.router, prefix=v1_prefix)

    return app


app = create_app()
