"""执行状态派生 -- 将后端原始信号转换为面向用户的执行状态

组合 resolve_execution_confidence + project_timeline + 终止原因分类，
输出带标签、描述、结论陈述与下一步建议的完整 ExecutionState。

约束：
- 只读：不修改事件日志
- 不推断：只使用快照中的显式信号
- 基于观察：陈述观察到的内容，而非推断的内容
- unknown 是合法结果
"""

from datetime import datetime

from .models.enums import ExecutionConfidence, TerminationCategory
from .models.execution import ExecutionState
from .models.run import PipelineCounters, RunSnapshot
from .resolver import is_partial, resolve_execution_confidence
from .staleness import RUN_STALE_THRESHOLD
from .termination import classify_termination
from .timeline import project_timeline


def _failed_texts(category: TerminationCategory) -> tuple[str, str, str]:
    """失败 run 按终止原因分类返回 (label, description, outcome)"""
    if category == TerminationCategory.HARD_FAILURE:
        return (
            "Failed - Invariant Violation",
            "Execution stopped because a system invariant was violated.",
            "This execution failed on an invariant violation. Its results must not be treated as valid.",
        )
    if category == TerminationCategory.TIMEOUT_PAUSE:
        return (
            "Paused (Timeout)",
            "Execution reached its time limit and paused.",
            "This execution paused after reaching its time limit. Progress made before the pause remains valid.",
        )
    if category == TerminationCategory.INTENTIONAL_HALT:
        return (
            "Incomplete",
            "Execution halted intentionally with work remaining.",
            "This execution stopped with work remaining. Processing continues on the next run.",
        )
    return (
        "Failed",
        "Execution encountered an error.",
        "This execution failed. Check the timeline for details.",
    )


def _counters_statement(counters: PipelineCounters) -> str:
    return (
        f"Before stopping: {counters.orgs_sourced} organizations sourced, "
        f"{counters.contacts_discovered} contacts discovered, "
        f"{counters.contacts_evaluated} contacts evaluated, "
        f"{counters.leads_promoted} leads promoted."
    )


def derive_execution_state(
    snapshot: RunSnapshot | None,
    no_runs: bool,
    now: datetime | None = None,
) -> ExecutionState:
    """从 run 快照派生完整执行状态"""
    confidence = resolve_execution_confidence(snapshot, no_runs, now)
    timeline = project_timeline(snapshot, no_runs, now)

    if confidence == ExecutionConfidence.NOT_EXECUTED:
        return ExecutionState(
            confidence=confidence,
            confidence_label="Not Yet Executed",
            confidence_description="This campaign has not been executed yet.",
            outcome_statement="No execution has been requested for this campaign.",
            timeline=timeline,
        )

    if confidence == ExecutionConfidence.QUEUED:
        return ExecutionState(
            confidence=confidence,
            confidence_label="Queued",
            confidence_description="Execution has been requested and is awaiting worker pickup.",
            outcome_statement="This campaign is queued for execution. The worker will process it shortly.",
            timeline=timeline,
        )

    if confidence == ExecutionConfidence.STALE:
        threshold_minutes = int(RUN_STALE_THRESHOLD.total_seconds() // 60)
        return ExecutionState(
            confidence=confidence,
            confidence_label="Stale",
            confidence_description=(
                "A previous execution did not complete and is being cleaned up by the system."
            ),
            outcome_statement=(
                f"This execution has been running for over {threshold_minutes} minutes "
                "and is considered stale. The system watchdog will clean it up automatically."
            ),
            timeline=timeline,
            next_step_recommendation=(
                "This run will be marked as failed by the system watchdog. "
                "A new execution can be requested after cleanup."
            ),
        )

    if confidence == ExecutionConfidence.IN_PROGRESS:
        return ExecutionState(
            confidence=confidence,
            confidence_label="In Progress",
            confidence_description="Execution is actively running.",
            outcome_statement="This campaign is currently being executed by the worker.",
            timeline=timeline,
        )

    if confidence == ExecutionConfidence.FAILED:
        termination = classify_termination(snapshot.termination_reason if snapshot else None)
        label, description, outcome = _failed_texts(termination.category)
        counters = None
        if snapshot is not None and termination.counters_valid:
            counters = snapshot.observed_counters()
        if counters is not None:
            outcome = f"{outcome} {_counters_statement(counters)}"
        return ExecutionState(
            confidence=confidence,
            confidence_label=label,
            confidence_description=description,
            outcome_statement=outcome,
            timeline=timeline,
            next_step_recommendation=termination.recommendation,
            termination=termination,
            counters=counters,
        )

    if confidence == ExecutionConfidence.COMPLETED and is_partial(snapshot):
        return ExecutionState(
            confidence=confidence,
            confidence_label="Partially Completed",
            confidence_description="Execution finished with some steps incomplete.",
            outcome_statement="This execution partially completed. Some steps may not have finished.",
            timeline=timeline,
            next_step_recommendation="Review the timeline to see which steps completed.",
        )

    if confidence == ExecutionConfidence.COMPLETED:
        return ExecutionState(
            confidence=confidence,
            confidence_label="Completed",
            confidence_description="Execution finished.",
            outcome_statement=(
                "This execution completed. Check the pipeline funnel for detailed results."
            ),
            timeline=timeline,
            counters=snapshot.observed_counters(),
        )

    if confidence == ExecutionConfidence.COMPLETED_NO_STEPS_OBSERVED:
        return ExecutionState(
            confidence=confidence,
            confidence_label="Completed",
            confidence_description=(
                "Execution finished. No execution steps were observed in the available data."
            ),
            outcome_statement=(
                "This execution completed, but no execution steps were observed. "
                "Check the pipeline funnel to verify whether any results were produced."
            ),
            timeline=timeline,
            next_step_recommendation=(
                "Review the pipeline funnel for results. If empty, consider reviewing "
                "ICP criteria or sourcing parameters."
            ),
            counters=snapshot.observed_counters(),
        )

    status = snapshot.status if snapshot else None
    return ExecutionState(
        confidence=ExecutionConfidence.UNKNOWN,
        confidence_label="Unknown",
        confidence_description="Unable to determine execution state.",
        outcome_statement=f"Status: {status or 'Unknown'}",
        timeline=timeline,
    )


# 执行术语说明（仅覆盖可显式观察到的术语）
EXECUTION_TOOLTIPS: dict[str, str] = {
    "awaiting_pickup": (
        "Awaiting pickup means the run has been accepted and is waiting for the "
        "background executor to start it."
    ),
    "completed": (
        "Completed means the execution finished. "
        "Check the pipeline funnel for detailed results about what was processed."
    ),
    "no_steps_observed": (
        "No execution steps were observed in the available data. "
        "The run completed but intermediate step details are not visible here."
    ),
    "failed": (
        "Failed means the execution encountered an error. "
        "Check the run history for details about what went wrong."
    ),
    "paused": (
        "Paused means the execution stopped on a time or batch limit. "
        "Counters collected before the pause remain valid and the next run continues the work."
    ),
    "stale": (
        "A stale run was marked as running but has not completed within the staleness "
        "threshold. The system watchdog will mark it as failed."
    ),
}
