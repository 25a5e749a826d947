"""SSEHub 单元测试"""

import asyncio
from datetime import UTC, datetime

from runtrack.core.models import EventType, RunEvent
from runtrack.gateway.services.sse_hub import SSEHub


def _event(run_id: str, seq: int = 1) -> RunEvent:
    return RunEvent(
        event_id=f"01J{seq:023d}",
        seq=seq,
        event_type=EventType.RUN_RUNNING,
        payload={"campaign_id": "c1", "run_id": run_id},
        created_at=datetime.now(UTC),
    )


class TestSSEHub:
    async def test_publish_routes_by_run_id(self):
        hub = SSEHub()
        q1 = await hub.subscribe("r1")
        q2 = await hub.subscribe("r2")

        await hub.publish(_event("r1"))

        assert q1.qsize() == 1
        assert q2.qsize() == 0

    async def test_unsubscribe_cleans_up(self):
        hub = SSEHub()
        queue = await hub.subscribe("r1")
        await hub.unsubscribe("r1", queue)
        assert hub.subscriber_count("r1") == 0

    async def test_full_queue_is_dropped(self):
        hub = SSEHub(queue_maxsize=1)
        queue = await hub.subscribe("r1")
        await hub.broadcast("r1", _event("r1", 1))
        await hub.broadcast("r1", _event("r1", 2))
        assert hub.subscriber_count("r1") == 0
        assert queue.qsize() == 1
        assert isinstance(queue, asyncio.Queue)
