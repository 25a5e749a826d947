"""PipelineExecutor -- 驱动单个 run 按固定阶段顺序执行

阶段顺序：sourcing -> discovery -> evaluation -> promotion -> completed

事件发射：
1. run.running（第一个阶段开始前，仅一次）
2. 每个阶段：stage.started，成功后 stage.completed（携带该阶段计数器）
3. 全部成功：run.completed（携带四个汇总计数器）
4. 任一阶段抛异常：不再继续后续阶段，写入唯一一条 run.failed

阶段内的真实业务逻辑对执行器不透明：每个阶段是一个可插拔的异步函数，
返回计数器或抛出异常。执行器只负责排序、事件发射和上下文传递。
"""

import time
from collections.abc import Awaitable, Callable, Mapping
from datetime import UTC, datetime
from typing import Any

import structlog

from .config import ERROR_MESSAGE_MAX_LENGTH
from .event_log import EventLogWriter
from .models.enums import (
    PIPELINE_STAGES,
    EventType,
    PipelineStage,
    validate_stage_transition,
)
from .models.payloads import (
    RunCompletedPayload,
    RunFailedPayload,
    RunRunningPayload,
    StageCompletedPayload,
    StageStartedPayload,
)
from .models.run import PipelineContext

log = structlog.get_logger()

StageHandler = Callable[[PipelineContext, dict[str, Any]], Awaitable[dict[str, int]]]


def _zero_counter_handler(counter_name: str) -> StageHandler:
    async def handler(context: PipelineContext, params: dict[str, Any]) -> dict[str, int]:
        return {counter_name: 0}

    return handler


def default_stage_handlers() -> dict[PipelineStage, StageHandler]:
    """占位阶段实现：不执行真实业务，各阶段计数器均为 0"""
    return {
        PipelineStage.SOURCING: _zero_counter_handler("orgs_sourced"),
        PipelineStage.DISCOVERY: _zero_counter_handler("contacts_discovered"),
        PipelineStage.EVALUATION: _zero_counter_handler("contacts_evaluated"),
        PipelineStage.PROMOTION: _zero_counter_handler("leads_promoted"),
    }


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class PipelineExecutor:
    """流水线执行器"""

    def __init__(
        self,
        writer: EventLogWriter,
        handlers: Mapping[PipelineStage, StageHandler] | None = None,
    ) -> None:
        self._writer = writer
        self._handlers = dict(handlers) if handlers is not None else default_stage_handlers()
        missing = [s for s in PIPELINE_STAGES if s not in self._handlers]
        if missing:
            raise ValueError(f"Missing stage handlers: {', '.join(missing)}")

    async def execute(self, context: PipelineContext) -> None:
        """执行完整流水线

        所有阶段异常在顶层被捕获并转换为唯一一条 run.failed 事件；
        run.failed 自身写入失败时异常向上抛出（由触发方的后台任务记录日志）。
        """
        run_id = context.run_id
        campaign_id = context.campaign_id
        start_time = time.monotonic()
        await log.ainfo(
            "pipeline_execution_started",
            run_id=run_id,
            campaign_id=campaign_id,
        )

        try:
            context.current_stage = PIPELINE_STAGES[0].value
            await self._writer.append(
                EventType.RUN_RUNNING,
                campaign_id,
                run_id,
                RunRunningPayload(
                    stage=PIPELINE_STAGES[0],
                    triggered_by=context.triggered_by,
                ).model_dump(mode="json"),
            )

            for stage in PIPELINE_STAGES:
                await self._run_stage(context, stage)

            self._transition(context, PipelineStage.COMPLETED)
            counters = context.counters
            await self._writer.append(
                EventType.RUN_COMPLETED,
                campaign_id,
                run_id,
                RunCompletedPayload(
                    completed_at=_now_iso(),
                    **counters.model_dump(),
                ).model_dump(mode="json"),
            )
        except Exception as e:
            await self._record_failure(context, e)
            return

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        await log.ainfo(
            "pipeline_execution_completed",
            run_id=run_id,
            campaign_id=campaign_id,
            elapsed_ms=elapsed_ms,
            **context.counters.model_dump(),
        )

    async def _run_stage(self, context: PipelineContext, stage: PipelineStage) -> None:
        """执行单个阶段：stage.started -> 阶段函数 -> stage.completed"""
        if context.current_stage != stage.value:
            self._transition(context, stage)

        params = dict(context.params.get(stage.value, {}))
        await self._writer.append(
            EventType.STAGE_STARTED,
            context.campaign_id,
            context.run_id,
            StageStartedPayload(
                stage=stage,
                params=params,
            ).model_dump(mode="json"),
        )

        stage_counters = await self._handlers[stage](context, params)
        for name, value in stage_counters.items():
            if name in type(context.counters).model_fields:
                setattr(context.counters, name, value)

        await self._writer.append(
            EventType.STAGE_COMPLETED,
            context.campaign_id,
            context.run_id,
            StageCompletedPayload(
                stage=stage,
                counters=stage_counters,
            ).model_dump(mode="json"),
        )
        log.info(
            "pipeline_stage_completed",
            run_id=context.run_id,
            stage=stage.value,
            counters=stage_counters,
        )

    @staticmethod
    def _transition(context: PipelineContext, to_stage: PipelineStage) -> None:
        """推进 current_stage，流转不合法时抛出 RuntimeError"""
        try:
            from_stage = PipelineStage(context.current_stage)
        except ValueError:
            from_stage = None
        if from_stage is not None and not validate_stage_transition(from_stage, to_stage):
            raise RuntimeError(
                f"Invalid stage transition: {from_stage} -> {to_stage}"
            )
        context.current_stage = to_stage.value

    async def _record_failure(self, context: PipelineContext, error: Exception) -> None:
        """写入 run.failed 事件，last_stage 取失败时刻的 current_stage"""
        last_stage = context.current_stage
        message = str(error) or type(error).__name__
        termination_reason = getattr(error, "termination_reason", None)

        log.error(
            "pipeline_execution_failed",
            run_id=context.run_id,
            campaign_id=context.campaign_id,
            last_stage=last_stage,
            error_type=type(error).__name__,
            termination_reason=termination_reason,
        )

        context.current_stage = PipelineStage.FAILED.value
        await self._writer.append(
            EventType.RUN_FAILED,
            context.campaign_id,
            context.run_id,
            RunFailedPayload(
                error=message[:ERROR_MESSAGE_MAX_LENGTH],
                failed_at=_now_iso(),
                last_stage=last_stage,
                termination_reason=termination_reason,
                **context.counters.model_dump(),
            ).model_dump(mode="json", exclude_none=True),
        )
