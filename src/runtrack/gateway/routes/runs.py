"""Run 触发与查询路由

POST /api/runs: 触发 campaign run，同步写入 run.started 后后台执行，返回 202。
GET /api/runs/{run_id}: run 详情，含快照与事件日志。
"""

from typing import Any

import aiosqlite
import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from runtrack.core.exceptions import RunNotFoundError
from runtrack.core.models import TriggerSource
from starlette.responses import JSONResponse

from ..deps import get_run_service
from ..services.run_service import RunService

log = structlog.get_logger()

router = APIRouter()


class TriggerRunRequest(BaseModel):
    """触发 run 请求体"""

    campaign_id: str = Field(min_length=1, description="campaign 标识")
    triggered_by: TriggerSource = Field(
        default=TriggerSource.MANUAL, description="触发来源"
    )
    params: dict[str, dict[str, Any]] = Field(
        default_factory=dict, description="按阶段名分组的阶段输入参数"
    )


class TriggerRunResponse(BaseModel):
    """触发 run 响应 -- 仅表示已受理并调度，不代表执行结果"""

    run_id: str
    status: str = "run_started"


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


@router.post("/api/runs", status_code=202, response_model=TriggerRunResponse)
async def trigger_run(
    body: TriggerRunRequest,
    service: RunService = Depends(get_run_service),
):
    """触发 campaign run

    - run.started 落盘后返回 202 Accepted
    - run.started 写入失败返回 503，不会调度执行
    """
    try:
        run_id = await service.trigger_run(
            body.campaign_id,
            body.triggered_by,
            params=body.params,
        )
    except aiosqlite.Error as e:
        log.error(
            "run_trigger_append_failed",
            campaign_id=body.campaign_id,
            error_type=type(e).__name__,
        )
        return _error(503, "EVENT_LOG_UNAVAILABLE", "Failed to record run start event")

    return TriggerRunResponse(run_id=run_id)


@router.get("/api/runs/{run_id}")
async def get_run_detail(
    run_id: str,
    service: RunService = Depends(get_run_service),
):
    """查询 run 详情：快照 + 按写入顺序排列的事件"""
    try:
        snapshot, events = await service.get_run(run_id)
    except RunNotFoundError as e:
        return _error(404, "RUN_NOT_FOUND", str(e))

    return {
        "run": snapshot.model_dump(),
        "events": [
            {
                "event_id": e.event_id,
                "seq": e.seq,
                "created_at": e.created_at.isoformat(),
                "type": e.event_type.value,
                "payload": e.payload,
            }
            for e in events
        ],
    }
