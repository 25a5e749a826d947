"""Runtrack Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import (
    COMPLETED_STATUSES,
    FAILED_STATUSES,
    PARTIAL_STATUSES,
    PIPELINE_STAGES,
    QUEUED_STATUSES,
    RUNNING_STATUSES,
    TERMINAL_EVENT_TYPES,
    TERMINAL_STAGES,
    TERMINAL_STATUSES,
    VALID_STAGE_TRANSITIONS,
    CanonicalState,
    EventType,
    ExecutionConfidence,
    PipelineStage,
    StatusGroup,
    TerminationCategory,
    TimelineEntryType,
    TriggerSource,
    validate_stage_transition,
)
from .event import RunEvent
from .execution import (
    CanonicalRunState,
    ExecutionState,
    RunResolution,
    StalenessInfo,
    TerminationClassification,
    TimelineEntry,
)
from .payloads import (
    RunCompletedPayload,
    RunFailedPayload,
    RunRunningPayload,
    RunStartedPayload,
    StageCompletedPayload,
    StageStartedPayload,
)
from .run import STEP_DATA_FIELDS, PipelineContext, PipelineCounters, RunSnapshot

__all__ = [
    # 枚举
    "EventType",
    "PipelineStage",
    "TriggerSource",
    "ExecutionConfidence",
    "TimelineEntryType",
    "TerminationCategory",
    "CanonicalState",
    "StatusGroup",
    # 状态机
    "PIPELINE_STAGES",
    "VALID_STAGE_TRANSITIONS",
    "TERMINAL_STAGES",
    "TERMINAL_EVENT_TYPES",
    "validate_stage_transition",
    # status 分组
    "QUEUED_STATUSES",
    "RUNNING_STATUSES",
    "FAILED_STATUSES",
    "COMPLETED_STATUSES",
    "PARTIAL_STATUSES",
    "TERMINAL_STATUSES",
    # Event
    "RunEvent",
    # Run
    "PipelineContext",
    "PipelineCounters",
    "RunSnapshot",
    "STEP_DATA_FIELDS",
    # 读侧模型
    "TimelineEntry",
    "TerminationClassification",
    "ExecutionState",
    "StalenessInfo",
    "RunResolution",
    "CanonicalRunState",
    # Payloads
    "RunStartedPayload",
    "RunRunningPayload",
    "StageStartedPayload",
    "StageCompletedPayload",
    "RunCompletedPayload",
    "RunFailedPayload",
]
