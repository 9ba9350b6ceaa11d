"""Tests for the HTTP surface with the remote store mocked out."""

from __future__ import annotations

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from healthsync.aggregation.base import UnifiedDailyRecord
from healthsync.main import create_app
from healthsync.sync.availability import AvailabilityProber, AvailabilityStatus, AvailabilityStore
from healthsync.sync.client import RemoteStoreError

USER = "user-1"


@pytest.fixture
def remote() -> MagicMock:
    client = MagicMock()
    client.submit_record = AsyncMock(return_value={"success": True})
    client.list_records = AsyncMock(return_value=[])
    client.records_in_range = AsyncMock(return_value=[])
    client.latest_record = AsyncMock(return_value=None)
    client.ping = AsyncMock(return_value=None)
    return client


@pytest.fixture
def api(remote: MagicMock) -> TestClient:
    """App wired to a mocked remote store; the startup probe is not run."""
    app = create_app()
    store = AvailabilityStore()
    app.state.remote_client = remote
    app.state.availability_store = store
    app.state.prober = AvailabilityProber(store, ping=remote.ping)
    return TestClient(app)


class TestHealth:
    def test_health(self, api: TestClient) -> None:
        response = api.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["remote_store"] == "checking"


class TestAvailability:
    def test_reads_current_state(self, api: TestClient) -> None:
        api.app.state.availability_store.set(AvailabilityStatus.OFFLINE)
        body = api.get("/api/v1/availability").json()
        assert body["status"] == "offline"
        assert body["message"] == "Server connection failed"
        assert "checkedAt" in body

    def test_probe_is_accepted(self, api: TestClient) -> None:
        response = api.post("/api/v1/availability/probe")
        assert response.status_code == 202


class TestAggregate:
    def test_aggregates_uploaded_records(self, api: TestClient) -> None:
        payload = {
            "startDate": "2024-01-01",
            "endDate": "2024-01-02",
            "userId": USER,
            "records": {
                "Steps": [{"startTime": "2024-01-01T08:00:00Z", "count": 1200}],
                "Weight": [
                    {"time": "2024-01-01T07:00:00Z", "weight": {"inKilograms": 70.2}},
                    {"time": "2024-01-02T07:00:00Z", "weight": {"inKilograms": 70.5}},
                ],
            },
        }
        response = api.post("/api/v1/aggregate", json=payload)
        assert response.status_code == 200
        body = response.json()
        assert [r["recordDate"] for r in body] == ["2024-01-02", "2024-01-01"]
        assert body[0]["steps"] is None
        assert body[0]["weightKg"] == 70.5
        assert body[1]["steps"] == 1200
        assert all(r["userId"] == USER for r in body)

    def test_empty_upload_gives_empty_list(self, api: TestClient) -> None:
        response = api.post(
            "/api/v1/aggregate", json={"startDate": "2024-01-01", "endDate": "2024-01-07"}
        )
        assert response.status_code == 200
        assert response.json() == []

    def test_reversed_range_is_rejected(self, api: TestClient) -> None:
        response = api.post(
            "/api/v1/aggregate", json={"startDate": "2024-01-07", "endDate": "2024-01-01"}
        )
        assert response.status_code == 422


class TestPublish:
    def test_reports_per_record_outcomes(self, api: TestClient, remote: MagicMock) -> None:
        remote.submit_record.side_effect = [{}, RemoteStoreError("HTTP 500"), {}]
        payload = {
            "userId": USER,
            "records": [
                {"recordDate": "2024-01-03", "steps": 3},
                {"recordDate": "2024-01-02", "steps": 2},
                {"recordDate": "2024-01-01", "steps": 1},
            ],
        }
        body = api.post("/api/v1/publish", json=payload).json()

        assert body["successCount"] == 2
        assert body["totalCount"] == 3
        assert body["failedDates"] == ["2024-01-02"]
        assert body["outcomes"][1] == {
            "recordDate": "2024-01-02", "success": False, "error": "HTTP 500"
        }
        submitted = [call.args[0] for call in remote.submit_record.await_args_list]
        assert all(r.user_id == USER for r in submitted)


class TestRecords:
    def test_list_by_range(self, api: TestClient, remote: MagicMock) -> None:
        remote.records_in_range.return_value = [
            UnifiedDailyRecord(record_date=date(2024, 1, 2), steps=10, user_id=USER)
        ]
        response = api.get(
            "/api/v1/records",
            params={"userId": USER, "startDate": "2024-01-01", "endDate": "2024-01-31"},
        )
        assert response.status_code == 200
        assert response.json()[0]["recordDate"] == "2024-01-02"
        remote.records_in_range.assert_awaited_once_with(
            USER, date(2024, 1, 1), date(2024, 1, 31)
        )

    def test_list_all(self, api: TestClient, remote: MagicMock) -> None:
        api.get("/api/v1/records", params={"userId": USER})
        remote.list_records.assert_awaited_once_with(USER)

    def test_remote_failure_is_bad_gateway(self, api: TestClient, remote: MagicMock) -> None:
        remote.list_records.side_effect = RemoteStoreError("down")
        assert api.get("/api/v1/records", params={"userId": USER}).status_code == 502

    def test_latest_missing_is_404(self, api: TestClient) -> None:
        assert api.get(f"/api/v1/records/{USER}/latest").status_code == 404

    def test_manual_entry(self, api: TestClient, remote: MagicMock) -> None:
        payload = {"userId": USER, "recordDate": "2024-01-05", "steps": 4200, "calories": 1800.5}
        response = api.post("/api/v1/records", json=payload)

        assert response.status_code == 201
        body = response.json()
        assert body["calories"] == 1801
        assert body["heartRate"] is None
        assert body["syncedToNotion"] is True
        (record,) = [call.args[0] for call in remote.submit_record.await_args_list]
        assert record.steps == 4200

    def test_manual_entry_rejected_by_store(self, api: TestClient, remote: MagicMock) -> None:
        remote.submit_record.return_value = {"success": False, "error": "duplicate"}
        payload = {"userId": USER, "recordDate": "2024-01-05", "steps": 4200}
        response = api.post("/api/v1/records", json=payload)

        assert response.status_code == 502
        assert response.json()["detail"] == "duplicate"

    def test_manual_entry_remote_failure(self, api: TestClient, remote: MagicMock) -> None:
        remote.submit_record.side_effect = RemoteStoreError("down")
        payload = {"userId": USER, "recordDate": "2024-01-05", "steps": 4200}
        assert api.post("/api/v1/records", json=payload).status_code == 502

    def test_manual_entry_requires_steps(self, api: TestClient) -> None:
        payload = {"userId": USER, "recordDate": "2024-01-05"}
        assert api.post("/api/v1/records", json=payload).status_code == 422
