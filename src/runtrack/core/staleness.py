"""Run 过期判定与活跃 run 解析 -- 只读

与后台 watchdog 语义保持一致：
- running 超过阈值（默认 30 分钟）的 run 视为过期，等待 watchdog 追加 run.failed
- 过期仅是读时重新分类，不写事件日志
- 排队中的 run 总是优先于更早的 running run
- 任何时候最多只有一个 run 被展示为“活跃”
"""

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

from .config import get_run_stale_threshold
from .models.enums import (
    QUEUED_STATUSES,
    RUNNING_STATUSES,
    TERMINAL_STATUSES,
)
from .models.execution import RunResolution, StalenessInfo
from .models.run import RunSnapshot

RUN_STALE_THRESHOLD: timedelta = get_run_stale_threshold()

_EPOCH = datetime.min.replace(tzinfo=UTC)


def normalize_status(status: str | None) -> str:
    """status 归一化为去空白的小写字符串"""
    return status.strip().lower() if isinstance(status, str) else ""


def parse_timestamp(value: str | None) -> datetime | None:
    """解析 ISO 8601 时间戳，无法解析时返回 None；无时区信息按 UTC 处理"""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _started_at(run: RunSnapshot) -> datetime | None:
    # 没有显式开始字段时用 created_at 作为开始时间
    return parse_timestamp(run.started_at) or parse_timestamp(run.created_at)


def _elapsed(run: RunSnapshot, now: datetime | None) -> timedelta | None:
    started = _started_at(run)
    if started is None:
        return None
    current = now or datetime.now(UTC)
    if current.tzinfo is None:
        current = current.replace(tzinfo=UTC)
    return current - started


def is_run_stale(
    run: RunSnapshot,
    now: datetime | None = None,
    threshold: timedelta = RUN_STALE_THRESHOLD,
) -> bool:
    """running / in_progress 且已运行时长严格大于阈值时视为过期

    恰好等于阈值时不算过期；缺少或无法解析开始时间时不算过期。
    """
    if normalize_status(run.status) not in RUNNING_STATUSES:
        return False
    elapsed = _elapsed(run, now)
    if elapsed is None:
        return False
    return elapsed > threshold


def get_staleness_info(
    run: RunSnapshot | None,
    now: datetime | None = None,
    threshold: timedelta = RUN_STALE_THRESHOLD,
) -> StalenessInfo:
    """获取用于展示的过期信息"""
    threshold_minutes = int(threshold.total_seconds() // 60)
    if run is None or normalize_status(run.status) not in RUNNING_STATUSES:
        return StalenessInfo(is_stale=False, stale_minutes=0, threshold_minutes=threshold_minutes)

    elapsed = _elapsed(run, now)
    if elapsed is None:
        return StalenessInfo(is_stale=False, stale_minutes=0, threshold_minutes=threshold_minutes)

    return StalenessInfo(
        is_stale=elapsed > threshold,
        stale_minutes=max(0, int(elapsed.total_seconds() // 60)),
        threshold_minutes=threshold_minutes,
    )


def resolve_active_run(
    runs: Sequence[RunSnapshot],
    now: datetime | None = None,
    threshold: timedelta = RUN_STALE_THRESHOLD,
) -> RunResolution:
    """解析应当作为“活跃”展示的 run

    优先级：
    1. 排队中的 run（最新的优先）
    2. running run（过期时仍返回，但标记 is_stale）
    3. 最新的终态 run
    4. 都不匹配时返回最新的 run
    """
    if not runs:
        return RunResolution(active_run=None, is_stale=False, resolution_reason="none")

    ordered = sorted(
        runs,
        key=lambda r: parse_timestamp(r.created_at) or parse_timestamp(r.started_at) or _EPOCH,
        reverse=True,
    )

    queued = next(
        (r for r in ordered if normalize_status(r.status) in QUEUED_STATUSES), None
    )
    if queued is not None:
        return RunResolution(active_run=queued, is_stale=False, resolution_reason="queued")

    running = next(
        (r for r in ordered if normalize_status(r.status) in RUNNING_STATUSES), None
    )
    if running is not None:
        if is_run_stale(running, now, threshold):
            return RunResolution(
                active_run=running, is_stale=True, resolution_reason="stale_running"
            )
        return RunResolution(active_run=running, is_stale=False, resolution_reason="running")

    terminal = next(
        (r for r in ordered if normalize_status(r.status) in TERMINAL_STATUSES), None
    )
    if terminal is not None:
        return RunResolution(active_run=terminal, is_stale=False, resolution_reason="terminal")

    return RunResolution(active_run=ordered[0], is_stale=False, resolution_reason="none")


def get_display_status(run: RunSnapshot | None, now: datetime | None = None) -> str:
    """展示用 status：过期的 running run 不再显示为 running"""
    if run is None:
        return "unknown"
    if is_run_stale(run, now):
        return "stale"
    return normalize_status(run.status)


def should_show_activity_indicators(
    run: RunSnapshot | None, now: datetime | None = None
) -> bool:
    """是否展示活动指示（加载动画等），过期 run 不展示"""
    if run is None:
        return False
    status = normalize_status(run.status)
    if status not in QUEUED_STATUSES and status not in RUNNING_STATUSES:
        return False
    return not is_run_stale(run, now)
