"""PipelineExecutor 单元测试

测试内容：
1. 成功路径的事件序列与计数器
2. 阶段失败：唯一一条 run.failed，失败阶段没有 stage.completed，后续阶段不执行
3. termination_reason 透传
4. run.failed 自身写入失败时异常向上抛出
5. 监听器异常不会产生第二个终态事件
6. 失败前累计的计数器随 run.failed 落盘
"""

import pytest
from runtrack.core.event_log import EventLogWriter
from runtrack.core.exceptions import StageExecutionError
from runtrack.core.models import EventType, PipelineContext, PipelineStage, RunEvent
from runtrack.core.pipeline import PipelineExecutor, default_stage_handlers


def _context(run_id: str = "r1", params: dict | None = None) -> PipelineContext:
    return PipelineContext(
        run_id=run_id,
        campaign_id="c1",
        triggered_by="manual",
        started_at="2026-01-01T00:00:00+00:00",
        params=params or {},
    )


def _counting(name: str, value: int):
    async def handler(context, params):
        return {name: value}

    return handler


def _raising(error: Exception):
    async def handler(context, params):
        raise error

    return handler


class FailingEventStore:
    async def append_event(self, event_type, payload):
        raise OSError("event log unavailable")


class TestSuccessfulRun:
    """成功路径"""

    async def test_event_sequence(self, writer, store_group):
        await PipelineExecutor(writer).execute(_context())

        events = await store_group.event_store.get_events_for_run("r1")
        assert [(e.event_type.value, e.payload.get("stage")) for e in events] == [
            ("run.running", "sourcing"),
            ("stage.started", "sourcing"),
            ("stage.completed", "sourcing"),
            ("stage.started", "discovery"),
            ("stage.completed", "discovery"),
            ("stage.started", "evaluation"),
            ("stage.completed", "evaluation"),
            ("stage.started", "promotion"),
            ("stage.completed", "promotion"),
            ("run.completed", None),
        ]

    async def test_default_handlers_report_zero_counters(self, writer, store_group):
        await PipelineExecutor(writer).execute(_context())

        events = await store_group.event_store.get_events_for_run("r1")
        completed = events[-1]
        assert completed.event_type == EventType.RUN_COMPLETED
        assert completed.payload["orgs_sourced"] == 0
        assert completed.payload["contacts_discovered"] == 0
        assert completed.payload["contacts_evaluated"] == 0
        assert completed.payload["leads_promoted"] == 0
        assert completed.payload["completed_at"]
        assert completed.payload["campaign_id"] == "c1"

    async def test_stage_counters_aggregate(self, writer, store_group):
        handlers = {
            PipelineStage.SOURCING: _counting("orgs_sourced", 12),
            PipelineStage.DISCOVERY: _counting("contacts_discovered", 30),
            PipelineStage.EVALUATION: _counting("contacts_evaluated", 25),
            PipelineStage.PROMOTION: _counting("leads_promoted", 4),
        }
        context = _context()
        await PipelineExecutor(writer, handlers).execute(context)

        events = await store_group.event_store.get_events_for_run("r1")
        stage_completed = [e for e in events if e.event_type == EventType.STAGE_COMPLETED]
        assert stage_completed[1].payload["counters"] == {"contacts_discovered": 30}
        assert events[-1].payload["leads_promoted"] == 4
        assert context.current_stage == PipelineStage.COMPLETED.value
        assert context.counters.orgs_sourced == 12

    async def test_stage_params_passed_and_recorded(self, writer, store_group):
        seen: dict = {}

        async def sourcing(context, params):
            seen.update(params)
            return {"orgs_sourced": 1}

        handlers = default_stage_handlers()
        handlers[PipelineStage.SOURCING] = sourcing
        await PipelineExecutor(writer, handlers).execute(
            _context(params={"sourcing": {"industry": "saas"}})
        )

        assert seen == {"industry": "saas"}
        events = await store_group.event_store.get_events_for_run("r1")
        assert events[1].payload["params"] == {"industry": "saas"}
        assert events[3].payload["params"] == {}


class TestFailedRun:
    """阶段失败"""

    async def test_failure_stops_pipeline(self, writer, store_group):
        calls: list[str] = []

        async def evaluation(context, params):
            calls.append("evaluation")
            raise RuntimeError("scoring service down")

        async def promotion(context, params):
            calls.append("promotion")
            return {"leads_promoted": 1}

        handlers = default_stage_handlers()
        handlers[PipelineStage.EVALUATION] = evaluation
        handlers[PipelineStage.PROMOTION] = promotion
        await PipelineExecutor(writer, handlers).execute(_context())

        assert calls == ["evaluation"]
        events = await store_group.event_store.get_events_for_run("r1")
        types = [e.event_type for e in events]
        assert types.count(EventType.RUN_FAILED) == 1
        assert EventType.RUN_COMPLETED not in types
        assert types[-1] == EventType.RUN_FAILED

        # 失败阶段只有 stage.started，没有 stage.completed
        evaluation_events = [e for e in events if e.payload.get("stage") == "evaluation"]
        assert [e.event_type for e in evaluation_events] == [EventType.STAGE_STARTED]

        failed = events[-1].payload
        assert failed["last_stage"] == "evaluation"
        assert failed["error"] == "scoring service down"
        assert failed["failed_at"]
        assert "termination_reason" not in failed

    async def test_termination_reason_recorded(self, writer, store_group):
        handlers = default_stage_handlers()
        handlers[PipelineStage.DISCOVERY] = _raising(
            StageExecutionError("discovery", "time budget exhausted", "execution_timeout")
        )
        await PipelineExecutor(writer, handlers).execute(_context())

        events = await store_group.event_store.get_events_for_run("r1")
        failed = events[-1].payload
        assert failed["termination_reason"] == "execution_timeout"
        assert failed["last_stage"] == "discovery"

    async def test_error_message_uses_type_name_when_empty(self, writer, store_group):
        handlers = default_stage_handlers()
        handlers[PipelineStage.SOURCING] = _raising(ValueError())
        await PipelineExecutor(writer, handlers).execute(_context())

        events = await store_group.event_store.get_events_for_run("r1")
        assert events[-1].payload["error"] == "ValueError"

    async def test_error_message_truncated(self, writer, store_group):
        handlers = default_stage_handlers()
        handlers[PipelineStage.SOURCING] = _raising(RuntimeError("x" * 2000))
        await PipelineExecutor(writer, handlers).execute(_context())

        events = await store_group.event_store.get_events_for_run("r1")
        assert len(events[-1].payload["error"]) == 500

    async def test_counters_before_failure_recorded(self, writer, store_group):
        """超时前已累计的计数器写入 run.failed"""
        handlers = default_stage_handlers()
        handlers[PipelineStage.SOURCING] = _counting("orgs_sourced", 12)
        handlers[PipelineStage.DISCOVERY] = _raising(
            StageExecutionError("discovery", "time budget exhausted", "execution_timeout")
        )
        await PipelineExecutor(writer, handlers).execute(_context())

        events = await store_group.event_store.get_events_for_run("r1")
        failed = events[-1]
        assert failed.event_type == EventType.RUN_FAILED
        assert failed.payload["orgs_sourced"] == 12
        assert failed.payload["contacts_discovered"] == 0
        assert failed.payload["leads_promoted"] == 0

    async def test_listener_error_after_completion_keeps_single_terminal(self, store_group):
        """run.completed 的监听器抛出异常时不再追加 run.failed"""

        async def broken(event: RunEvent) -> None:
            if event.event_type == EventType.RUN_COMPLETED:
                raise RuntimeError("subscriber gone")

        writer = EventLogWriter(store_group.event_store, listeners=[broken])
        await PipelineExecutor(writer).execute(_context())

        events = await store_group.event_store.get_events_for_run("r1")
        types = [e.event_type for e in events]
        assert types[-1] == EventType.RUN_COMPLETED
        assert EventType.RUN_FAILED not in types

    async def test_failure_recording_error_propagates(self):
        """run.failed 也无法写入时异常向上抛出，不被吞掉"""
        writer = EventLogWriter(FailingEventStore())
        with pytest.raises(OSError, match="event log unavailable"):
            await PipelineExecutor(writer).execute(_context())


class TestExecutorConstruction:
    async def test_missing_handler_rejected(self, writer):
        handlers = default_stage_handlers()
        del handlers[PipelineStage.PROMOTION]
        with pytest.raises(ValueError, match="promotion"):
            PipelineExecutor(writer, handlers)
