"""run 触发路由测试

测试内容：
1. 正常触发返回 202 + run_id
2. run.started 在响应返回前已落盘
3. 请求体校验失败返回 422
4. run.started 写入失败返回 503，且不调度执行
5. 响应头携带 X-Request-ID
"""

import uuid

import aiosqlite
from httpx import AsyncClient
from runtrack.core.event_log import EventLogWriter
from runtrack.core.models import EventType
from runtrack.gateway.services.run_service import RunService


class UnavailableEventStore:
    """写入总是失败的 EventStore"""

    async def append_event(self, event_type, payload):
        raise aiosqlite.OperationalError("database is locked")


class TestTriggerRun:
    """POST /api/runs"""

    async def test_trigger_returns_202(self, client: AsyncClient):
        resp = await client.post(
            "/api/runs",
            json={"campaign_id": "c1", "triggered_by": "platform-shell"},
        )
        assert resp.status_code == 202
        data = resp.json()
        assert data["status"] == "run_started"
        assert uuid.UUID(data["run_id"]).version == 4

    async def test_run_started_persisted_before_response(self, client: AsyncClient, gateway_app):
        resp = await client.post("/api/runs", json={"campaign_id": "c1"})
        run_id = resp.json()["run_id"]

        events = await gateway_app.state.store_group.event_store.get_events_for_run(run_id)
        assert events[0].event_type == EventType.RUN_STARTED
        assert events[0].payload["campaign_id"] == "c1"
        assert events[0].payload["triggered_by"] == "manual"
        assert events[0].payload["started_at"]

    async def test_each_trigger_creates_new_run(self, client: AsyncClient):
        first = await client.post("/api/runs", json={"campaign_id": "c1"})
        second = await client.post("/api/runs", json={"campaign_id": "c1"})
        assert first.json()["run_id"] != second.json()["run_id"]

    async def test_missing_campaign_id_returns_422(self, client: AsyncClient):
        resp = await client.post("/api/runs", json={"triggered_by": "manual"})
        assert resp.status_code == 422

    async def test_unknown_trigger_source_returns_422(self, client: AsyncClient):
        resp = await client.post(
            "/api/runs", json={"campaign_id": "c1", "triggered_by": "cron-job"}
        )
        assert resp.status_code == 422

    async def test_append_failure_returns_503(self, client: AsyncClient, gateway_app):
        scheduled_before = RunService.pending_task_count()
        gateway_app.state.run_service = RunService(
            gateway_app.state.store_group,
            writer=EventLogWriter(UnavailableEventStore()),
        )

        resp = await client.post("/api/runs", json={"campaign_id": "c1"})
        assert resp.status_code == 503
        assert resp.json()["error"]["code"] == "EVENT_LOG_UNAVAILABLE"
        assert RunService.pending_task_count() == scheduled_before

    async def test_request_id_header(self, client: AsyncClient):
        resp = await client.post("/api/runs", json={"campaign_id": "c1"})
        assert len(resp.headers["X-Request-ID"]) == 26  # ULID 长度
