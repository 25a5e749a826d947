"""终止原因分类

run.failed 的 termination_reason 决定展示语义，而不是置信度：
- 硬失败（invariant）：始终按失败展示，本次结果不可视为有效
- 超时暂停（timeout）：按暂停展示，此前累计的计数器仍有效
- 主动停止（limit / 剩余未处理工作）：按“未完成，将继续”展示
- 未分类：按真实失败展示，并建议重试

匹配顺序固定为 invariant -> timeout -> 主动停止 -> 未分类，
同一原因总是映射到同一分类。
"""

from .models.enums import TerminationCategory
from .models.execution import TerminationClassification

INVARIANT_VIOLATION = "invariant_violation"
EXECUTION_TIMEOUT = "execution_timeout"

INTENTIONAL_HALT_REASONS: frozenset[str] = frozenset(
    {
        "unprocessed_work_remaining",
        "batch_limit_reached",
        "rate_limit_exceeded",
    }
)


def _normalize_reason(reason: str | None) -> str:
    return reason.strip().lower() if isinstance(reason, str) else ""


def is_invariant_violation_reason(reason: str | None) -> bool:
    normalized = _normalize_reason(reason)
    return normalized == INVARIANT_VIOLATION or "invariant" in normalized


def is_timeout_reason(reason: str | None) -> bool:
    normalized = _normalize_reason(reason)
    return normalized == EXECUTION_TIMEOUT or "timeout" in normalized


def is_intentional_pause(reason: str | None) -> bool:
    """终止原因是否属于有意暂停（超时或主动停止），而非错误"""
    normalized = _normalize_reason(reason)
    if not normalized or is_invariant_violation_reason(normalized):
        return False
    return (
        is_timeout_reason(normalized)
        or normalized in INTENTIONAL_HALT_REASONS
        or "limit" in normalized
    )


def classify_termination(reason: str | None) -> TerminationClassification:
    """将 termination_reason 分类为展示语义"""
    normalized = _normalize_reason(reason) or None

    if is_invariant_violation_reason(normalized):
        return TerminationClassification(
            category=TerminationCategory.HARD_FAILURE,
            reason=normalized,
            display_label="Failed",
            is_error=True,
            counters_valid=False,
            recommendation=(
                "A system invariant was violated. Results from this run are not valid; "
                "resolve the violation before requesting a new execution."
            ),
        )

    if is_timeout_reason(normalized):
        return TerminationClassification(
            category=TerminationCategory.TIMEOUT_PAUSE,
            reason=normalized,
            display_label="Timeout",
            is_error=False,
            counters_valid=True,
            will_resume=True,
            recommendation=(
                "Execution time limit reached. Progress shown reflects completed work "
                "and continues on the next run."
            ),
        )

    if is_intentional_pause(normalized):
        return TerminationClassification(
            category=TerminationCategory.INTENTIONAL_HALT,
            reason=normalized,
            display_label="Incomplete",
            is_error=False,
            counters_valid=True,
            will_resume=True,
            recommendation="Processing paused. Progress continues on the next run.",
        )

    return TerminationClassification(
        category=TerminationCategory.UNCLASSIFIED,
        reason=normalized,
        display_label="Failed",
        is_error=True,
        counters_valid=False,
        recommendation="Review the execution logs and retry when the issue is resolved.",
    )
