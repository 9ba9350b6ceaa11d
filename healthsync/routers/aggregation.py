"""Aggregate uploaded device records into daily records and publish them."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException

from healthsync.aggregation.base import PermissionRequestError, attach_user
from healthsync.aggregation.pipeline import DailyAggregator
from healthsync.aggregation.sources import HealthConnectExportSource
from healthsync.dependencies import RemoteClient
from healthsync.models.records import (
    AggregateRequest,
    DailyRecordPayload,
    PublishReportRead,
    PublishRequest,
)
from healthsync.sync.publisher import BatchPublisher

router = APIRouter(tags=["aggregation"])


@router.post("/aggregate", response_model=list[DailyRecordPayload])
async def aggregate_records(body: AggregateRequest) -> Any:
    """Reduce uploaded Health Connect records to one record per date, newest first."""
    source = HealthConnectExportSource(body.records, available=body.available)
    try:
        records = await DailyAggregator(source).aggregate(
            body.start_date, body.end_date, user_id=body.user_id
        )
    except PermissionRequestError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    return [DailyRecordPayload.from_record(r) for r in records]


@router.post("/publish", response_model=PublishReportRead)
async def publish_records(body: PublishRequest, client: RemoteClient) -> Any:
    """Submit records one by one; failures are reported per record."""
    records = [item.to_record() for item in body.records]
    if body.user_id:
        records = attach_user(records, body.user_id)

    report = await BatchPublisher(submit=client.submit_record).publish(records)
    return {
        "success_count": report.success_count,
        "total_count": report.total_count,
        "outcomes": [
            {"record_date": o.record_date, "success": o.success, "error": o.error}
            for o in report.outcomes
        ],
        "failed_dates": report.failed_dates(),
    }
