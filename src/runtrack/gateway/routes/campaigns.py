"""Campaign 读侧路由

GET /api/campaigns/{campaign_id}/runs: run 快照列表，最新创建的在前。
GET /api/campaigns/{campaign_id}/runs/latest: 当前应展示的 run 及其规范状态。
GET /api/campaigns/{campaign_id}/execution-state: 当前 run 的完整执行状态及术语说明。

所有结果每次请求时从事件日志重新投影，不缓存。
"""

from fastapi import APIRouter, Depends
from runtrack.core.execution_state import EXECUTION_TOOLTIPS
from runtrack.core.resolver import resolve_canonical_run_state
from runtrack.core.staleness import (
    get_display_status,
    get_staleness_info,
    should_show_activity_indicators,
)

from ..deps import get_run_service
from ..services.run_service import RunService

router = APIRouter()


@router.get("/api/campaigns/{campaign_id}/runs")
async def list_campaign_runs(
    campaign_id: str,
    service: RunService = Depends(get_run_service),
):
    """查询 campaign 下所有 run 快照"""
    runs = await service.list_runs(campaign_id)
    return {
        "campaign_id": campaign_id,
        "runs": [run.model_dump() for run in runs],
    }


@router.get("/api/campaigns/{campaign_id}/runs/latest")
async def get_latest_run(
    campaign_id: str,
    service: RunService = Depends(get_run_service),
):
    """解析 campaign 当前应展示的 run"""
    resolution = await service.resolve_latest_run(campaign_id)
    run = resolution.active_run
    no_runs = run is None
    return {
        "campaign_id": campaign_id,
        "no_runs": no_runs,
        "run": run.model_dump() if run else None,
        "is_stale": resolution.is_stale,
        "resolution_reason": resolution.resolution_reason,
        "display_status": get_display_status(run) if run else None,
        "show_activity": should_show_activity_indicators(run),
        "staleness": get_staleness_info(run).model_dump(),
        "canonical": resolve_canonical_run_state(run, no_runs).model_dump(mode="json"),
    }


@router.get("/api/campaigns/{campaign_id}/execution-state")
async def get_execution_state(
    campaign_id: str,
    service: RunService = Depends(get_run_service),
):
    """派生 campaign 当前执行状态（置信度 + 时间线 + 结论陈述）"""
    resolution, state = await service.get_execution_state(campaign_id)
    return {
        "campaign_id": campaign_id,
        "run_id": resolution.active_run.run_id if resolution.active_run else None,
        "execution_state": state.model_dump(mode="json"),
        "tooltips": EXECUTION_TOOLTIPS,
    }
