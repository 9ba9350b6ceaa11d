"""HTTP client for the remote daily-record store.

Endpoints used (relative to ``remote_base_url``):
    POST /health/sync                        — Submit one daily record
    GET  /health/records?userId=...          — All records for a user
    GET  /health/records/{userId}/latest     — Most recent record for a user

The availability probe reuses the listing endpoint with a reserved user id;
its response body is never interpreted.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

import httpx
from pydantic import ValidationError

from healthsync.aggregation.base import UnifiedDailyRecord
from healthsync.config import Settings
from healthsync.models.records import DailyRecordPayload

logger = logging.getLogger("healthsync.sync.client")

_SYNC_PATH = "/health/sync"
_RECORDS_PATH = "/health/records"


class RemoteStoreError(RuntimeError):
    """Raised when a request to the remote store fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _parse_record(data: Any) -> UnifiedDailyRecord:
    try:
        return DailyRecordPayload.model_validate(data).to_record()
    except ValidationError as exc:
        raise RemoteStoreError(f"Malformed record from remote store: {exc}") from exc


class RemoteStoreClient:
    """Async client for the remote record store.

    Usage::

        async with RemoteStoreClient.from_settings(get_settings()) as client:
            await client.submit_record(record)
            records = await client.list_records("user-1")
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        probe_timeout: float = 60.0,
        probe_user_id: str = "healthcheck",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url:      Remote store root, e.g. ``https://host/api``.
            timeout:       Per-request timeout in seconds.
            probe_timeout: Timeout for the availability probe in seconds.
            probe_user_id: Reserved user id the probe lists records for.
            http_client:   Optional pre-configured httpx client (for testing).
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._probe_timeout = probe_timeout
        self._probe_user_id = probe_user_id
        self._http_client = http_client
        self._owns_client = http_client is None

    @classmethod
    def from_settings(cls, settings: Settings) -> RemoteStoreClient:
        return cls(
            base_url=settings.remote_base_url,
            timeout=settings.request_timeout_seconds,
            probe_timeout=settings.probe_timeout_seconds,
            probe_user_id=settings.probe_user_id,
        )

    @property
    def probe_timeout(self) -> float:
        return self._probe_timeout

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
        return self._http_client

    async def close(self) -> None:
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> RemoteStoreClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    async def submit_record(self, record: UnifiedDailyRecord) -> dict[str, Any]:
        """Submit one daily record.  Resubmitting a date is accepted as a new write.

        Returns:
            The decoded response body (empty dict if there is none).

        Raises:
            RemoteStoreError: On transport failure or a non-2xx response.
        """
        body = DailyRecordPayload.from_record(record).wire()
        data = await self._request("POST", _SYNC_PATH, json=body)
        return data if isinstance(data, dict) else {"data": data}

    async def list_records(self, user_id: str) -> list[UnifiedDailyRecord]:
        """Return every record the store holds for ``user_id``."""
        data = await self._request("GET", _RECORDS_PATH, params={"userId": user_id})
        if not isinstance(data, list):
            raise RemoteStoreError(f"Expected a list of records, got {type(data).__name__}")
        return [_parse_record(item) for item in data]

    async def latest_record(self, user_id: str) -> UnifiedDailyRecord | None:
        """Return the most recent record for ``user_id``, or None if there is none."""
        try:
            data = await self._request("GET", f"{_RECORDS_PATH}/{user_id}/latest")
        except RemoteStoreError as exc:
            if exc.status_code == 404:
                return None
            raise
        if not data:
            return None
        return _parse_record(data)

    async def records_in_range(
        self, user_id: str, start_date: date, end_date: date
    ) -> list[UnifiedDailyRecord]:
        """Return the user's records with ``start_date <= record_date <= end_date``.

        The store has no range query; the full listing is filtered here.
        """
        records = await self.list_records(user_id)
        return [r for r in records if start_date <= r.record_date <= end_date]

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    async def ping(self) -> None:
        """Issue the lightweight availability request.

        Exceptions from httpx propagate unchanged so the prober can tell a
        timeout from a refused connection.
        """
        response = await self._client().get(
            _RECORDS_PATH,
            params={"userId": self._probe_user_id},
            timeout=self._probe_timeout,
        )
        response.raise_for_status()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client().request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise RemoteStoreError(
                f"{method} {path} returned HTTP {status}", status_code=status
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteStoreError(f"{method} {path} failed: {exc!r}") from exc

        if not response.content:
            return {}
        return response.json()
