"""Run 快照投影 -- 从事件日志折叠出读侧 RunSnapshot

事件 -> status 映射：
- run.started                 -> queued（已受理，尚未开始）
- run.running / stage.*       -> running
- run.completed               -> completed
- run.failed                  -> failed（携带 termination_reason / error_message）

终态事件之后的事件不再改变快照。
终态事件携带的计数器作为快照额外字段保留；快照不携带阶段明细（步骤数据不属于当前读模型）。
"""

from collections.abc import Iterable

from .models.enums import EventType
from .models.event import RunEvent
from .models.run import PipelineCounters, RunSnapshot

_TERMINAL_STATUSES = {"completed", "failed"}

_COUNTER_FIELDS: tuple[str, ...] = tuple(PipelineCounters.model_fields)


def _counters_from(payload: dict) -> dict[str, int]:
    """终态事件中携带的计数器（作为快照额外字段保留）"""
    return {name: payload[name] for name in _COUNTER_FIELDS if name in payload}


def apply_event(snapshots: dict[str, RunSnapshot], event: RunEvent) -> None:
    """将单个事件应用到 run 快照（内存中操作）

    Args:
        snapshots: run_id -> RunSnapshot 的映射表（会被就地修改）
        event: 要应用的事件
    """
    run_id = event.run_id
    if not run_id:
        return

    ts = event.created_at.isoformat()
    payload = event.payload
    snapshot = snapshots.get(run_id)

    if snapshot is None:
        snapshot = RunSnapshot(
            run_id=run_id,
            campaign_id=event.campaign_id or None,
            status="queued",
            created_at=ts,
            updated_at=ts,
        )

    if snapshot.status in _TERMINAL_STATUSES:
        snapshots[run_id] = snapshot
        return

    update: dict = {"updated_at": ts}

    if event.event_type == EventType.RUN_STARTED:
        update["status"] = "queued"
        update["created_at"] = payload.get("started_at") or ts
        update["execution_mode"] = payload.get("triggered_by")
    elif event.event_type == EventType.RUN_RUNNING:
        update["status"] = "running"
        update["started_at"] = ts
    elif event.event_type in (EventType.STAGE_STARTED, EventType.STAGE_COMPLETED):
        update["status"] = "running"
        if snapshot.started_at is None:
            update["started_at"] = ts
    elif event.event_type == EventType.RUN_COMPLETED:
        update["status"] = "completed"
        update["completed_at"] = payload.get("completed_at") or ts
        update.update(_counters_from(payload))
    elif event.event_type == EventType.RUN_FAILED:
        update["status"] = "failed"
        update["completed_at"] = payload.get("failed_at") or ts
        update["termination_reason"] = payload.get("termination_reason")
        update["error_message"] = payload.get("error")
        update.update(_counters_from(payload))

    snapshots[run_id] = snapshot.model_copy(update=update)


def build_run_snapshots(events: Iterable[RunEvent]) -> list[RunSnapshot]:
    """从按写入顺序排列的事件构建所有 run 的快照，最新创建的 run 在前"""
    snapshots: dict[str, RunSnapshot] = {}
    for event in events:
        apply_event(snapshots, event)
    return list(reversed(list(snapshots.values())))


def build_run_snapshot(events: Iterable[RunEvent], run_id: str) -> RunSnapshot | None:
    """构建单个 run 的快照，事件中不存在该 run 时返回 None"""
    snapshots: dict[str, RunSnapshot] = {}
    for event in events:
        if event.run_id == run_id:
            apply_event(snapshots, event)
    return snapshots.get(run_id)
