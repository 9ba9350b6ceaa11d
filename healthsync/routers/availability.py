"""Remote-store availability: read the current state, trigger a fresh probe."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

from healthsync.dependencies import Availability, Prober
from healthsync.models.records import AvailabilityRead

router = APIRouter(prefix="/availability", tags=["availability"])


def _read(store: Availability) -> dict[str, Any]:
    current = store.current
    return {
        "status": current.status.value,
        "message": current.message,
        "checked_at": current.checked_at,
    }


@router.get("", response_model=AvailabilityRead)
async def get_availability(store: Availability) -> Any:
    return _read(store)


@router.post("/probe", response_model=AvailabilityRead, status_code=202)
async def probe_availability(request: Request, prober: Prober) -> Any:
    """Start a probe cycle in the background (wakes a sleeping server)."""
    prober.start(getattr(request.app.state, "probe_cancel", None))
    return _read(prober.store)
