"""Run 状态解析 -- 纯函数，只读

将最新可观测的 run 快照映射为一个封闭集合内的执行置信度。
只使用快照中的显式信号，不做推断：无法确定时返回 unknown，
没有观察到步骤数据时返回 completed_no_steps_observed。

所有函数均为全函数（不抛异常）、幂等、无 I/O。
"""

from datetime import datetime

from .models.enums import (
    COMPLETED_STATUSES,
    FAILED_STATUSES,
    PARTIAL_STATUSES,
    QUEUED_STATUSES,
    RUNNING_STATUSES,
    CanonicalState,
    ExecutionConfidence,
    StatusGroup,
)
from .models.execution import CanonicalRunState
from .models.run import RunSnapshot
from .staleness import is_run_stale, normalize_status
from .termination import is_invariant_violation_reason


def classify_status(status: str | None) -> StatusGroup:
    """将后端原始 status 归入已知分组

    新增后端 status 取值时必须显式加入某个分组，否则落入 UNRECOGNIZED。
    """
    normalized = normalize_status(status)
    if normalized in QUEUED_STATUSES:
        return StatusGroup.QUEUED
    if normalized in RUNNING_STATUSES:
        return StatusGroup.RUNNING
    if normalized in FAILED_STATUSES:
        return StatusGroup.FAILED
    if normalized in COMPLETED_STATUSES:
        return StatusGroup.COMPLETED
    if normalized in PARTIAL_STATUSES:
        return StatusGroup.PARTIAL
    return StatusGroup.UNRECOGNIZED


def resolve_execution_confidence(
    snapshot: RunSnapshot | None,
    no_runs: bool,
    now: datetime | None = None,
) -> ExecutionConfidence:
    """解析执行置信度

    优先级：
    1. no_runs 或无快照 -> not_executed
    2. queued / run_requested / pending -> queued
    3. running / in_progress -> 超过过期阈值为 stale，否则 in_progress
    4. failed / error -> failed（终止原因仅影响展示，不影响置信度）
    5. completed / success / succeeded -> 观察到步骤数据为 completed，
       否则 completed_no_steps_observed
    6. partial / partial_success -> completed（展示时附加“部分完成”）
    7. 其他 -> unknown
    """
    if no_runs or snapshot is None:
        return ExecutionConfidence.NOT_EXECUTED

    group = classify_status(snapshot.status)

    if group == StatusGroup.QUEUED:
        return ExecutionConfidence.QUEUED
    elif group == StatusGroup.RUNNING:
        if is_run_stale(snapshot, now):
            return ExecutionConfidence.STALE
        return ExecutionConfidence.IN_PROGRESS
    elif group == StatusGroup.FAILED:
        return ExecutionConfidence.FAILED
    elif group == StatusGroup.COMPLETED:
        if snapshot.has_observable_steps():
            return ExecutionConfidence.COMPLETED
        return ExecutionConfidence.COMPLETED_NO_STEPS_OBSERVED
    elif group == StatusGroup.PARTIAL:
        return ExecutionConfidence.COMPLETED
    else:
        return ExecutionConfidence.UNKNOWN


def is_partial(snapshot: RunSnapshot | None) -> bool:
    """快照是否为部分完成"""
    return snapshot is not None and classify_status(snapshot.status) == StatusGroup.PARTIAL


def is_invariant_violation(snapshot: RunSnapshot | None) -> bool:
    """失败的 run 是否由不变量违规导致（硬失败，结果不可视为有效）"""
    if snapshot is None or classify_status(snapshot.status) != StatusGroup.FAILED:
        return False
    return is_invariant_violation_reason(snapshot.termination_reason)


# 规范状态 -> 固定展示消息
CANONICAL_MESSAGES: dict[CanonicalState, str] = {
    CanonicalState.IDLE: "No execution has run yet",
    CanonicalState.QUEUED: "Execution queued",
    CanonicalState.RUNNING: "Execution in progress",
    CanonicalState.STALLED: "Execution stalled - system will mark failed",
    CanonicalState.FAILED: "Last execution failed",
    CanonicalState.INVARIANT_VIOLATION: "Execution failed - invariant violation",
    CanonicalState.COMPLETED: "Last execution completed successfully",
    CanonicalState.SKIPPED: "Execution skipped (planning only)",
}


def resolve_canonical_run_state(
    snapshot: RunSnapshot | None,
    no_runs: bool,
    now: datetime | None = None,
) -> CanonicalRunState:
    """解析规范 run 状态（固定消息矩阵）"""
    if no_runs or snapshot is None:
        return CanonicalRunState(
            state=CanonicalState.IDLE,
            raw_status=None,
            timestamp=None,
            is_active=False,
            message=CANONICAL_MESSAGES[CanonicalState.IDLE],
        )

    status = normalize_status(snapshot.status)
    group = classify_status(status)
    timestamp = (
        snapshot.completed_at
        or snapshot.updated_at
        or snapshot.started_at
        or snapshot.created_at
    )

    if group == StatusGroup.QUEUED:
        state, is_active = CanonicalState.QUEUED, True
    elif group == StatusGroup.RUNNING:
        if is_run_stale(snapshot, now):
            state, is_active = CanonicalState.STALLED, False
        else:
            state, is_active = CanonicalState.RUNNING, True
    elif group == StatusGroup.FAILED:
        if is_invariant_violation(snapshot):
            state = CanonicalState.INVARIANT_VIOLATION
        else:
            state = CanonicalState.FAILED
        is_active = False
    elif group == StatusGroup.COMPLETED:
        state, is_active = CanonicalState.COMPLETED, False
    elif group == StatusGroup.PARTIAL or status == "skipped":
        state, is_active = CanonicalState.SKIPPED, False
    else:
        # 未识别的 status 视为无活跃执行
        return CanonicalRunState(
            state=CanonicalState.IDLE,
            raw_status=snapshot.status,
            timestamp=timestamp,
            is_active=False,
            message=f"Status: {snapshot.status or 'Unknown'}",
        )

    return CanonicalRunState(
        state=state,
        raw_status=snapshot.status,
        timestamp=timestamp,
        is_active=is_active,
        message=CANONICAL_MESSAGES[state],
    )
