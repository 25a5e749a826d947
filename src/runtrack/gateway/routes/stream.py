"""SSE 事件流路由

GET /api/stream/run/{run_id}: SSE 实时推送指定 run 的事件。
支持历史事件推送、实时新事件推送、Last-Event-ID 断线重连、心跳保活。
"""

import asyncio
import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from runtrack.core.config import SSE_HEARTBEAT_INTERVAL
from runtrack.core.models.event import RunEvent
from sse_starlette.sse import EventSourceResponse

from ..deps import get_sse_hub, get_store_group

router = APIRouter()


def _event_to_sse_data(event: RunEvent) -> dict:
    """将 RunEvent 转换为 SSE data JSON，终态事件携带 final: true"""
    return {
        "event_id": event.event_id,
        "run_id": event.run_id,
        "campaign_id": event.campaign_id,
        "seq": event.seq,
        "ts": event.created_at.isoformat(),
        "type": event.event_type.value,
        "payload": event.payload,
        "final": event.is_terminal,
    }


def _to_sse(event: RunEvent) -> dict:
    return {
        "id": event.event_id,
        "event": event.event_type.value,
        "data": json.dumps(_event_to_sse_data(event), ensure_ascii=False),
    }


@router.get("/api/stream/run/{run_id}")
async def stream_run_events(
    run_id: str,
    request: Request,
    store_group=Depends(get_store_group),
    sse_hub=Depends(get_sse_hub),
):
    """SSE 事件流端点

    1. 先推送历史事件（或 Last-Event-ID 之后的事件）
    2. 注册到 SSEHub 监听新事件
    3. 终态事件携带 final: true 并结束流
    4. 心跳保活
    """
    history = await store_group.event_store.get_events_for_run(run_id)
    if not history:
        return JSONResponse(
            status_code=404,
            content={
                "error": {
                    "code": "RUN_NOT_FOUND",
                    "message": f"Run with id {run_id} does not exist",
                }
            },
        )

    last_event_id = request.headers.get("last-event-id")
    run_is_terminal = any(e.is_terminal for e in history)

    async def event_generator():
        # 先订阅再读历史，避免两者之间产生的事件丢失
        queue = None if run_is_terminal else await sse_hub.subscribe(run_id)
        try:
            if last_event_id:
                events = await store_group.event_store.get_events_after(
                    run_id, last_event_id
                )
            else:
                events = await store_group.event_store.get_events_for_run(run_id)

            sent: set[str] = set()
            for event in events:
                sent.add(event.event_id)
                yield _to_sse(event)
                if event.is_terminal:
                    return

            if queue is None:
                return

            while True:
                try:
                    event = await asyncio.wait_for(
                        queue.get(), timeout=SSE_HEARTBEAT_INTERVAL
                    )
                except TimeoutError:
                    # 心跳保活
                    yield {"comment": "heartbeat"}
                    continue
                if event.event_id in sent:
                    continue
                yield _to_sse(event)
                if event.is_terminal:
                    return
        finally:
            if queue is not None:
                await sse_hub.unsubscribe(run_id, queue)

    return EventSourceResponse(event_generator())
