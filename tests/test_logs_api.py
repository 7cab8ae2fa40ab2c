import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import requests
from fastapi.testclient import TestClient

from mediadash.api.endpoints.logs import format_sse, get_log_stream
from mediadash.core.config import Settings
from mediadash.main import create_application
from mediadash.services.log_query import QueryService
from mediadash.services.log_store import LogStore
from mediadash.services.stream_broker import StreamBroker
from tests.helpers import make_entry, make_response

FETCH_PATH = "mediadash.background_services.log_fetcher.requests.get"

RADARR_PAYLOAD = {
    "name": "Radarr",
    "type": "radarr",
    "host": "radarr.local",
    "port": 7878,
    "api_key": "radarr-key",
}

RADARR_RECORDS = {"records": [
    {"id": 11, "time": "2024-05-01T10:00:00Z", "level": "Error", "logger": "Download", "message": "Client unreachable"},
    {"id": 10, "time": "2024-05-01T09:00:00Z", "level": "Info", "logger": "Api", "message": "Request ok"},
    {"id": 9, "time": "2024-05-01T08:00:00Z", "level": "Warn", "logger": "Import", "message": "Slow import"},
]}


def start_radarr(client, service_id=1):
    with patch(FETCH_PATH, return_value=make_response(payload=RADARR_RECORDS)) as mock_get:
        response = client.post(f"/api/v1/logs/start/{service_id}", json=RADARR_PAYLOAD)
    return response, mock_get


class TestStartStop:

    def test_start_collects_immediately(self, client):
        response, mock_get = start_radarr(client)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["serviceId"] == 1
        assert "Radarr" in data["message"]
        mock_get.assert_called_once()

        logs = client.get("/api/v1/logs/service/1").json()
        assert logs["count"] == 3
        assert [log["id"] for log in logs["logs"]] == ["11", "10", "9"]

    def test_start_without_api_key_is_rejected(self, client):
        payload = {k: v for k, v in RADARR_PAYLOAD.items() if k != "api_key"}
        with patch(FETCH_PATH) as mock_get:
            response = client.post("/api/v1/logs/start/1", json=payload)

        assert response.status_code == 400
        assert response.json()["detail"] == "Service configuration with API key required"
        mock_get.assert_not_called()

    def test_start_with_invalid_body(self, client):
        response = client.post("/api/v1/logs/start/1", json={"name": "Radarr"})
        assert response.status_code == 422

    def test_start_unknown_type_succeeds_without_fetching(self, client):
        payload = dict(RADARR_PAYLOAD, type="plex")
        with patch(FETCH_PATH) as mock_get:
            response = client.post("/api/v1/logs/start/5", json=payload)

        assert response.status_code == 200
        mock_get.assert_not_called()

    def test_failed_fetch_still_succeeds(self, client):
        with patch(FETCH_PATH, side_effect=requests.ConnectionError("refused")):
            response = client.post("/api/v1/logs/start/1", json=RADARR_PAYLOAD)

        assert response.status_code == 200
        assert client.get("/api/v1/logs/service/1").json()["count"] == 0

    def test_stop_is_idempotent(self, client):
        for _ in range(2):
            response = client.delete("/api/v1/logs/stop/1")
            assert response.status_code == 200
            assert response.json()["serviceId"] == 1


class TestQueries:

    def test_service_logs_filters(self, client):
        start_radarr(client)

        data = client.get("/api/v1/logs/service/1", params={"level": "ERROR"}).json()
        assert data["count"] == 1
        assert data["logs"][0]["facility"] == "Download"
        assert data["filters"]["level"] == "ERROR"

        data = client.get("/api/v1/logs/service/1", params={"facility": "api"}).json()
        assert [log["id"] for log in data["logs"]] == ["10"]

    def test_service_log_fields(self, client):
        start_radarr(client)
        log = client.get("/api/v1/logs/service/1", params={"limit": 1}).json()["logs"][0]

        assert log["serviceId"] == 1
        assert log["serviceName"] == "Radarr"
        assert log["serviceType"] == "radarr"
        assert log["level"] == "ERROR"
        assert log["message"] == "Client unreachable"

    def test_unknown_service_returns_empty_list(self, client):
        data = client.get("/api/v1/logs/service/9999").json()
        assert data["success"] is True
        assert data["logs"] == []

    def test_all_logs_is_empty_without_demo_data(self, client):
        data = client.get("/api/v1/logs/all").json()
        assert data["count"] == 0
        assert data["logs"] == []

    def test_all_logs_after_collection(self, client):
        start_radarr(client)
        data = client.get("/api/v1/logs/all", params={"limit": 2}).json()
        assert [log["id"] for log in data["logs"]] == ["11", "10"]

    @pytest.mark.parametrize("limit", [0, 501, "abc"])
    def test_invalid_limit(self, client, limit):
        assert client.get("/api/v1/logs/all", params={"limit": limit}).status_code == 422
        assert client.get("/api/v1/logs/service/1", params={"limit": limit}).status_code == 422

    def test_facilities(self, client):
        start_radarr(client)
        data = client.get("/api/v1/logs/facilities/1").json()
        assert data["facilities"] == ["Api", "Download", "Import"]

    def test_numeric_facility_does_not_break_queries(self, client):
        records = {"records": [
            {"id": 1, "time": "2024-05-01T10:00:00Z", "level": "Info", "logger": 42, "message": "odd"},
            {"id": 2, "time": "2024-05-01T09:00:00Z", "level": "Info", "logger": "Api", "message": "ok"},
        ]}
        with patch(FETCH_PATH, return_value=make_response(payload=records)):
            client.post("/api/v1/logs/start/1", json=RADARR_PAYLOAD)
        start_radarr(client, service_id=2)

        response = client.get("/api/v1/logs/service/1", params={"facility": "api"})
        assert response.status_code == 200
        assert [log["id"] for log in response.json()["logs"]] == ["2"]

        assert client.get("/api/v1/logs/all").json()["count"] == 5
        assert client.get("/api/v1/logs/facilities/1").json()["facilities"] == ["42", "Api"]

    def test_status(self, client):
        start_radarr(client)
        data = client.get("/api/v1/logs/status").json()

        status = data["status"]
        assert status["activeCollectors"] == 0
        assert status["totalCachedLogs"] == 3
        assert status["serviceStatus"]["1"]["cached"] == 3
        assert status["serviceStatus"]["1"]["lastFetch"] is not None
        assert status["activeStreams"] == 0


class TestDemoData:

    def test_demo_data_when_nothing_collected(self):
        app = create_application(Settings(DEMO_DATA_ENABLED=True, MONITORED_SERVICES=[]))
        with TestClient(app) as client:
            data = client.get("/api/v1/logs/all").json()
            facilities = client.get("/api/v1/logs/facilities/1").json()["facilities"]

        assert data["count"] == 25
        assert facilities == ["Api", "Download", "Import", "Health", "RSS"]


class TestCollectionTest:

    def test_successful_test(self, client):
        with patch(FETCH_PATH, return_value=make_response(payload=RADARR_RECORDS)):
            response = client.post("/api/v1/logs/test", json=RADARR_PAYLOAD)

        data = response.json()
        assert response.status_code == 200
        assert data["success"] is True
        assert len(data["sampleLogs"]) == 3
        assert "Indexer" in data["availableFacilities"]
        # The application caches are untouched
        assert client.get("/api/v1/logs/status").json()["status"]["totalCachedLogs"] == 0

    def test_authentication_failure(self, client):
        with patch(FETCH_PATH, return_value=make_response(status_code=401)):
            data = client.post("/api/v1/logs/test", json=RADARR_PAYLOAD).json()

        assert data["success"] is False
        assert "authentication" in data["message"]
        assert data["sampleLogs"] == []

    def test_unknown_type(self, client):
        response = client.post("/api/v1/logs/test", json=dict(RADARR_PAYLOAD, type="plex"))
        assert response.status_code == 400

    def test_missing_api_key(self, client):
        payload = {k: v for k, v in RADARR_PAYLOAD.items() if k != "api_key"}
        assert client.post("/api/v1/logs/test", json=payload).status_code == 400


class TestStream:

    def test_format_sse(self):
        frame = format_sse({"type": "connected", "message": "Log stream connected"})
        assert frame.startswith("data: ")
        assert frame.endswith("\n\n")
        assert json.loads(frame[len("data: "):]) == {"type": "connected", "message": "Log stream connected"}

    @pytest.mark.asyncio
    async def test_stream_sends_connected_then_closes_on_disconnect(self):
        store = LogStore()
        store.merge(1, [make_entry(1)])
        broker = StreamBroker(QueryService(store), interval_seconds=60)
        request = MagicMock()
        request.is_disconnected = AsyncMock(side_effect=[False, True])

        response = await get_log_stream(request, service_id=None, facility=None, level=None, broker=broker)
        assert response.media_type == "text/event-stream"
        assert broker.active_sessions == 0

        first = await response.body_iterator.__anext__()
        assert json.loads(first[len("data: "):])["type"] == "connected"
        assert broker.active_sessions == 1

        with pytest.raises(StopAsyncIteration):
            await response.body_iterator.__anext__()
        assert broker.active_sessions == 0

    @pytest.mark.asyncio
    async def test_stream_never_sent_leaves_no_session(self):
        broker = StreamBroker(QueryService(LogStore()), interval_seconds=60)
        request = MagicMock()
        request.is_disconnected = AsyncMock(return_value=False)

        response = await get_log_stream(request, service_id=1, facility=None, level=None, broker=broker)
        await response.body_iterator.aclose()

        assert broker.active_sessions == 0

    @pytest.mark.asyncio
    async def test_stream_closed_mid_flight_disconnects_session(self):
        broker = StreamBroker(QueryService(LogStore()), interval_seconds=60)
        request = MagicMock()
        request.is_disconnected = AsyncMock(return_value=False)

        response = await get_log_stream(request, service_id=None, facility=None, level=None, broker=broker)
        await response.body_iterator.__anext__()
        [session] = broker.sessions.values()

        await response.body_iterator.aclose()

        assert broker.active_sessions == 0
        assert session.closed and not session.running
