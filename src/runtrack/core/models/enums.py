"""枚举定义

包含 EventType 事件词表、PipelineStage 流水线状态机、ExecutionConfidence 置信度、
TimelineEntryType、TerminationCategory、CanonicalState 枚举，
以及 PIPELINE_STAGES 固定阶段顺序和 VALID_STAGE_TRANSITIONS 合法流转映射。
"""

from enum import StrEnum


class EventType(StrEnum):
    """事件类型 -- 固定词表，可扩展但不得复用为其他含义"""

    RUN_STARTED = "run.started"
    RUN_RUNNING = "run.running"
    STAGE_STARTED = "stage.started"
    STAGE_COMPLETED = "stage.completed"
    RUN_COMPLETED = "run.completed"
    RUN_FAILED = "run.failed"


# 标识 run 到达终态的事件
TERMINAL_EVENT_TYPES: set[EventType] = {
    EventType.RUN_COMPLETED,
    EventType.RUN_FAILED,
}


class PipelineStage(StrEnum):
    """流水线状态机"""

    SOURCING = "sourcing"
    DISCOVERY = "discovery"
    EVALUATION = "evaluation"
    PROMOTION = "promotion"

    # 终态
    COMPLETED = "completed"
    FAILED = "failed"


# 固定执行顺序（仅工作阶段）
PIPELINE_STAGES: tuple[PipelineStage, ...] = (
    PipelineStage.SOURCING,
    PipelineStage.DISCOVERY,
    PipelineStage.EVALUATION,
    PipelineStage.PROMOTION,
)

VALID_STAGE_TRANSITIONS: dict[PipelineStage, set[PipelineStage]] = {
    PipelineStage.SOURCING: {PipelineStage.DISCOVERY, PipelineStage.FAILED},
    PipelineStage.DISCOVERY: {PipelineStage.EVALUATION, PipelineStage.FAILED},
    PipelineStage.EVALUATION: {PipelineStage.PROMOTION, PipelineStage.FAILED},
    PipelineStage.PROMOTION: {PipelineStage.COMPLETED, PipelineStage.FAILED},
    # 终态不可再流转
    PipelineStage.COMPLETED: set(),
    PipelineStage.FAILED: set(),
}

TERMINAL_STAGES: set[PipelineStage] = {
    PipelineStage.COMPLETED,
    PipelineStage.FAILED,
}


class TriggerSource(StrEnum):
    """run 触发来源"""

    PLATFORM_SHELL = "platform-shell"
    SCHEDULER = "scheduler"
    MANUAL = "manual"


class ExecutionConfidence(StrEnum):
    """面向用户的执行置信度 -- 仅由显式信号推导"""

    NOT_EXECUTED = "not_executed"
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    STALE = "stale"
    COMPLETED = "completed"
    COMPLETED_NO_STEPS_OBSERVED = "completed_no_steps_observed"
    FAILED = "failed"
    UNKNOWN = "unknown"


class TimelineEntryType(StrEnum):
    """时间线条目类型"""

    SUCCESS = "success"
    WARNING = "warning"
    INFO = "info"
    ERROR = "error"


class TerminationCategory(StrEnum):
    """终止原因分类"""

    HARD_FAILURE = "hard_failure"
    TIMEOUT_PAUSE = "timeout_pause"
    INTENTIONAL_HALT = "intentional_halt"
    UNCLASSIFIED = "unclassified"


class CanonicalState(StrEnum):
    """规范 run 状态（固定消息矩阵）"""

    IDLE = "idle"
    QUEUED = "queued"
    RUNNING = "running"
    STALLED = "stalled"
    FAILED = "failed"
    INVARIANT_VIOLATION = "invariant_violation"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class StatusGroup(StrEnum):
    """后端 status 原始取值的已知分组，未识别的取值归入 UNRECOGNIZED"""

    QUEUED = "queued"
    RUNNING = "running"
    FAILED = "failed"
    COMPLETED = "completed"
    PARTIAL = "partial"
    UNRECOGNIZED = "unrecognized"


# 后端 status 原始取值分组（归一化为小写后比较）
QUEUED_STATUSES: frozenset[str] = frozenset({"queued", "run_requested", "pending"})
RUNNING_STATUSES: frozenset[str] = frozenset({"running", "in_progress"})
FAILED_STATUSES: frozenset[str] = frozenset({"failed", "error"})
COMPLETED_STATUSES: frozenset[str] = frozenset({"completed", "success", "succeeded"})
PARTIAL_STATUSES: frozenset[str] = frozenset({"partial", "partial_success"})
TERMINAL_STATUSES: frozenset[str] = frozenset(
    {"completed", "failed", "skipped", "partial"}
)


def validate_stage_transition(
    from_stage: PipelineStage, to_stage: PipelineStage
) -> bool:
    """验证阶段流转是否合法

    Args:
        from_stage: 当前阶段
        to_stage: 目标阶段

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_STAGE_TRANSITIONS.get(from_stage, set())
    return to_stage in allowed
