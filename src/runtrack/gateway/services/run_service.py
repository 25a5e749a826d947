"""RunService -- run 触发与读侧查询业务逻辑

触发流程：
1. 生成 run_id（UUID v4）
2. 同步追加 run.started 事件（失败直接抛给调用方，不调度执行）
3. 后台调度 PipelineExecutor，调用方不等待、也无法取消
4. 立即返回 run_id

查询流程：从事件日志投影出 RunSnapshot，再交给纯函数解析器派生展示状态。
"""

import asyncio
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import structlog
from runtrack.core.event_log import EventLogWriter
from runtrack.core.exceptions import RunNotFoundError
from runtrack.core.execution_state import derive_execution_state
from runtrack.core.models import (
    EventType,
    ExecutionState,
    PipelineContext,
    RunEvent,
    RunResolution,
    RunSnapshot,
    TriggerSource,
)
from runtrack.core.models.payloads import RunStartedPayload
from runtrack.core.pipeline import PipelineExecutor
from runtrack.core.projection import build_run_snapshot, build_run_snapshots
from runtrack.core.staleness import resolve_active_run
from runtrack.core.store import StoreGroup

log = structlog.get_logger()

ExecutorFactory = Callable[[EventLogWriter], PipelineExecutor]


def default_executor_factory(writer: EventLogWriter) -> PipelineExecutor:
    return PipelineExecutor(writer)


class RunService:
    """run 业务服务"""

    # 持有后台任务引用，避免执行中途被垃圾回收
    _background_tasks: set[asyncio.Task] = set()

    def __init__(
        self,
        store_group: StoreGroup,
        writer: EventLogWriter | None = None,
        executor_factory: ExecutorFactory | None = None,
    ) -> None:
        self._stores = store_group
        self._writer = writer or EventLogWriter(store_group.event_store)
        self._executor_factory = executor_factory or default_executor_factory

    async def trigger_run(
        self,
        campaign_id: str,
        triggered_by: TriggerSource = TriggerSource.MANUAL,
        params: dict[str, dict[str, Any]] | None = None,
    ) -> str:
        """触发一次 campaign run

        Args:
            campaign_id: campaign 标识（不校验是否存在）
            triggered_by: 触发来源
            params: 按阶段名分组的阶段输入参数

        Returns:
            新 run 的 run_id

        Raises:
            Exception: run.started 写入失败时原样抛出，此时不会调度执行
        """
        run_id = str(uuid.uuid4())
        started_at = datetime.now(UTC).isoformat()

        await self._writer.append(
            EventType.RUN_STARTED,
            campaign_id,
            run_id,
            RunStartedPayload(
                triggered_by=triggered_by.value,
                started_at=started_at,
            ).model_dump(),
        )

        context = PipelineContext(
            run_id=run_id,
            campaign_id=campaign_id,
            triggered_by=triggered_by.value,
            started_at=started_at,
            params=params or {},
        )
        task = asyncio.create_task(
            self._execute_in_background(context),
            name=f"pipeline-{run_id}",
        )
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

        await log.ainfo(
            "run_triggered",
            run_id=run_id,
            campaign_id=campaign_id,
            triggered_by=triggered_by.value,
        )
        return run_id

    async def _execute_in_background(self, context: PipelineContext) -> None:
        """后台执行流水线

        执行器已把阶段异常转换为 run.failed；这里只兜住 run.failed 自身写入失败
        等执行器无法记录的错误，写日志后结束，不影响已返回的触发请求。
        """
        try:
            executor = self._executor_factory(self._writer)
            await executor.execute(context)
        except Exception as e:
            log.error(
                "background_pipeline_execution_failed",
                run_id=context.run_id,
                campaign_id=context.campaign_id,
                error_type=type(e).__name__,
                error=str(e),
            )

    async def list_runs(self, campaign_id: str) -> list[RunSnapshot]:
        """查询 campaign 下所有 run 快照，最新创建的在前"""
        events = await self._stores.event_store.get_events_for_campaign(campaign_id)
        return build_run_snapshots(events)

    async def resolve_latest_run(
        self, campaign_id: str, now: datetime | None = None
    ) -> RunResolution:
        """解析 campaign 当前应展示的 run"""
        runs = await self.list_runs(campaign_id)
        return resolve_active_run(runs, now)

    async def get_execution_state(
        self, campaign_id: str, now: datetime | None = None
    ) -> tuple[RunResolution, ExecutionState]:
        """派生 campaign 当前执行状态"""
        resolution = await self.resolve_latest_run(campaign_id, now)
        state = derive_execution_state(
            resolution.active_run,
            no_runs=resolution.active_run is None,
            now=now,
        )
        return resolution, state

    async def get_run(self, run_id: str) -> tuple[RunSnapshot, list[RunEvent]]:
        """查询单个 run 的快照与事件

        Raises:
            RunNotFoundError: 事件日志中没有该 run
        """
        events = await self._stores.event_store.get_events_for_run(run_id)
        snapshot = build_run_snapshot(events, run_id)
        if snapshot is None:
            raise RunNotFoundError(run_id)
        return snapshot, events

    @classmethod
    def pending_task_count(cls) -> int:
        """尚未结束的后台执行数"""
        return len(cls._background_tasks)
