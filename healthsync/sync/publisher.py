"""Best-effort batch publisher for unified daily records.

Records are submitted one at a time, in order.  A failing record is logged
and recorded in the report; it never stops the remaining submissions, and it
is not retried within the same batch.  The per-record outcomes let callers
retry only what failed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Awaitable, Callable, Iterable

from healthsync.aggregation.base import UnifiedDailyRecord, parse_instant

logger = logging.getLogger("healthsync.sync.publisher")

SubmitFn = Callable[[UnifiedDailyRecord], Awaitable[Any]]


@dataclass
class RecordOutcome:
    """Result of submitting one record.

    Attributes:
        record_date: Date of the submitted record.
        success:     True if the store accepted the record.
        error:       Failure description when ``success`` is False.
        response:    Decoded response body on success.
    """

    record_date: date
    success: bool
    error: str | None = None
    response: dict = field(default_factory=dict, repr=False)


@dataclass
class PublishReport:
    """Outcome of one batch, in submission order."""

    outcomes: list[RecordOutcome] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def total_count(self) -> int:
        return len(self.outcomes)

    @property
    def all_succeeded(self) -> bool:
        return self.success_count == self.total_count

    def failed_dates(self) -> list[date]:
        return [o.record_date for o in self.outcomes if not o.success]

    def summary(self) -> str:
        return f"{self.success_count}/{self.total_count}"


class BatchPublisher:
    """Publish daily records sequentially with per-record failure isolation.

    Usage::

        publisher = BatchPublisher(submit=client.submit_record)
        report = await publisher.publish(records)
        report.success_count, report.total_count   # (2, 3)
        report.failed_dates()                       # [date(2024, 1, 2)]
    """

    def __init__(self, submit: SubmitFn) -> None:
        """Initialize the publisher.

        Args:
            submit: Async callback(UnifiedDailyRecord) → response body.
                    Raising marks that record as failed.
        """
        self._submit = submit

    async def publish(self, records: Iterable[UnifiedDailyRecord]) -> PublishReport:
        """Submit each record in order and report what happened to each.

        Successful records are marked synced in place.  Records without a
        user id are reported as failed without being submitted.
        """
        report = PublishReport()
        for record in records:
            report.outcomes.append(await self._publish_one(record))

        logger.info("Published %s record(s)", report.summary())
        return report

    async def _publish_one(self, record: UnifiedDailyRecord) -> RecordOutcome:
        if not record.user_id:
            logger.warning("Not publishing %s: record has no user_id", record.record_date)
            return RecordOutcome(record.record_date, success=False, error="missing user_id")

        try:
            response = await self._submit(record)
        except Exception as exc:
            logger.warning("Publish failed for %s: %s", record.record_date, exc)
            return RecordOutcome(record.record_date, success=False, error=str(exc) or repr(exc))

        body = response if isinstance(response, dict) else {}
        if body.get("success") is False:
            error = str(body.get("error") or body.get("message") or "rejected by server")
            logger.warning("Publish rejected for %s: %s", record.record_date, error)
            return RecordOutcome(record.record_date, success=False, error=error, response=body)

        record.mark_synced(parse_instant(body.get("syncedAt")))
        return RecordOutcome(record.record_date, success=True, response=body)


async def publish_batch(
    records: Iterable[UnifiedDailyRecord], submit: SubmitFn
) -> PublishReport:
    """Shortcut for ``BatchPublisher(submit).publish(records)``."""
    return await BatchPublisher(submit).publish(records)
