"""执行时间线投影 -- 纯函数

与状态解析使用同一套分支，但输出按顺序排列的叙述性条目。
条目只引用快照中存在的信息，不出现任何推断出的业务结果。
"""

from datetime import UTC, datetime

from .models.enums import ExecutionConfidence, TerminationCategory, TimelineEntryType
from .models.execution import TimelineEntry
from .models.run import RunSnapshot
from .resolver import is_partial, resolve_execution_confidence
from .staleness import RUN_STALE_THRESHOLD, parse_timestamp
from .termination import classify_termination


def format_timestamp(value: str | None) -> str | None:
    """格式化展示用时间戳（UTC），无法解析时原样返回"""
    if not value:
        return None
    parsed = parse_timestamp(value)
    if parsed is None:
        return value
    try:
        return parsed.astimezone(UTC).strftime("%b %d, %H:%M UTC")
    except (OverflowError, ValueError):
        # 接近 datetime 取值范围边界时无法换算到 UTC
        return value


def _with_time(label: str, value: str | None) -> str:
    formatted = format_timestamp(value)
    return f"{label} ({formatted})" if formatted else label


def _run_created(snapshot: RunSnapshot) -> TimelineEntry:
    return TimelineEntry(
        id="run_created",
        type=TimelineEntryType.SUCCESS,
        label=_with_time("Run created", snapshot.created_at),
        timestamp=snapshot.created_at,
        is_completed=True,
    )


def _failure_entry(snapshot: RunSnapshot) -> TimelineEntry:
    # 终止原因决定叙述框架：超时与主动停止不按错误展示
    termination = classify_termination(snapshot.termination_reason)
    if termination.category == TerminationCategory.TIMEOUT_PAUSE:
        return TimelineEntry(
            id="execution_paused",
            type=TimelineEntryType.WARNING,
            label=_with_time("Execution paused (timeout)", snapshot.updated_at),
            timestamp=snapshot.updated_at,
            is_completed=True,
        )
    if termination.category == TerminationCategory.INTENTIONAL_HALT:
        return TimelineEntry(
            id="execution_incomplete",
            type=TimelineEntryType.INFO,
            label=_with_time("Execution incomplete - will resume", snapshot.updated_at),
            timestamp=snapshot.updated_at,
            is_completed=True,
        )
    label = "Execution failed"
    if termination.category == TerminationCategory.HARD_FAILURE:
        label = "Execution failed - invariant violation"
    return TimelineEntry(
        id="execution_failed",
        type=TimelineEntryType.ERROR,
        label=_with_time(label, snapshot.updated_at),
        timestamp=snapshot.updated_at,
        is_completed=True,
    )


def project_timeline(
    snapshot: RunSnapshot | None,
    no_runs: bool,
    now: datetime | None = None,
) -> list[TimelineEntry]:
    """将 run 快照投影为有序时间线条目"""
    confidence = resolve_execution_confidence(snapshot, no_runs, now)

    if confidence == ExecutionConfidence.NOT_EXECUTED or snapshot is None:
        return [
            TimelineEntry(
                id="not_executed",
                type=TimelineEntryType.INFO,
                label="Awaiting first execution",
                is_completed=False,
            )
        ]

    if confidence == ExecutionConfidence.QUEUED:
        return [
            _run_created(snapshot),
            TimelineEntry(
                id="awaiting_pickup",
                type=TimelineEntryType.INFO,
                label="Awaiting worker pickup",
                is_completed=False,
            ),
        ]

    if confidence == ExecutionConfidence.STALE:
        threshold_minutes = int(RUN_STALE_THRESHOLD.total_seconds() // 60)
        return [
            _run_created(snapshot),
            TimelineEntry(
                id="stale_warning",
                type=TimelineEntryType.WARNING,
                label=f"Execution exceeded {threshold_minutes}-minute threshold",
                is_completed=True,
            ),
            TimelineEntry(
                id="awaiting_cleanup",
                type=TimelineEntryType.INFO,
                label="Awaiting system cleanup",
                is_completed=False,
            ),
        ]

    if confidence == ExecutionConfidence.IN_PROGRESS:
        return [
            _run_created(snapshot),
            TimelineEntry(
                id="worker_started",
                type=TimelineEntryType.SUCCESS,
                label=_with_time("Worker started execution", snapshot.started_at),
                timestamp=snapshot.started_at,
                is_completed=True,
            ),
            TimelineEntry(
                id="executing",
                type=TimelineEntryType.INFO,
                label="Execution in progress...",
                is_completed=False,
            ),
        ]

    if confidence == ExecutionConfidence.FAILED:
        return [_run_created(snapshot), _failure_entry(snapshot)]

    if confidence == ExecutionConfidence.COMPLETED and is_partial(snapshot):
        return [
            _run_created(snapshot),
            TimelineEntry(
                id="partial_completion",
                type=TimelineEntryType.WARNING,
                label=_with_time("Partially completed", snapshot.updated_at),
                timestamp=snapshot.updated_at,
                is_completed=True,
            ),
        ]

    execution_completed = TimelineEntry(
        id="execution_completed",
        type=TimelineEntryType.SUCCESS,
        label=_with_time("Execution completed", snapshot.updated_at),
        timestamp=snapshot.updated_at,
        is_completed=True,
    )

    if confidence == ExecutionConfidence.COMPLETED:
        return [_run_created(snapshot), execution_completed]

    if confidence == ExecutionConfidence.COMPLETED_NO_STEPS_OBSERVED:
        return [
            _run_created(snapshot),
            TimelineEntry(
                id="no_steps_observed",
                type=TimelineEntryType.WARNING,
                label="No execution steps observed",
                is_completed=True,
            ),
            execution_completed,
        ]

    return [
        TimelineEntry(
            id="unknown",
            type=TimelineEntryType.INFO,
            label=f"Status: {snapshot.status or 'Unknown'}",
            is_completed=False,
        )
    ]
