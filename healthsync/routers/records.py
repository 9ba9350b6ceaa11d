"""Records held by the remote store: listing, latest, manual entry."""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from healthsync.dependencies import RemoteClient
from healthsync.models.records import DailyRecordPayload, ManualEntry
from healthsync.sync.client import RemoteStoreError
from healthsync.sync.publisher import BatchPublisher

router = APIRouter(prefix="/records", tags=["records"])


@router.get("", response_model=list[DailyRecordPayload])
async def list_records(
    client: RemoteClient,
    user_id: str = Query(alias="userId", min_length=1),
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
) -> Any:
    try:
        if start_date is None and end_date is None:
            records = await client.list_records(user_id)
        else:
            records = await client.records_in_range(
                user_id, start_date or date.min, end_date or date.max
            )
    except RemoteStoreError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return [DailyRecordPayload.from_record(r) for r in records]


@router.get("/{user_id}/latest", response_model=DailyRecordPayload)
async def latest_record(user_id: str, client: RemoteClient) -> Any:
    try:
        record = await client.latest_record(user_id)
    except RemoteStoreError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    if record is None:
        raise HTTPException(status_code=404, detail="No records for this user")
    return DailyRecordPayload.from_record(record)


@router.post("", response_model=DailyRecordPayload, status_code=201)
async def create_manual_record(body: ManualEntry, client: RemoteClient) -> Any:
    """Submit one hand-entered day.  A store rejection is reported as 502."""
    record = body.to_record()
    report = await BatchPublisher(client.submit_record).publish([record])
    (outcome,) = report.outcomes
    if not outcome.success:
        raise HTTPException(status_code=502, detail=outcome.error)
    return DailyRecordPayload.from_record(record)
