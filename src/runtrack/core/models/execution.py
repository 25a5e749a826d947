"""读侧派生模型

所有模型每次读取时重新计算，不缓存、不持久化。
"""

from typing import Literal

from pydantic import BaseModel, Field

from .enums import (
    CanonicalState,
    ExecutionConfidence,
    TerminationCategory,
    TimelineEntryType,
)
from .run import PipelineCounters, RunSnapshot


class TimelineEntry(BaseModel):
    """时间线条目"""

    id: str
    type: TimelineEntryType
    label: str
    timestamp: str | None = None
    is_completed: bool


class TerminationClassification(BaseModel):
    """终止原因分类结果"""

    category: TerminationCategory
    reason: str | None = Field(default=None, description="归一化后的原始原因")
    display_label: str = Field(description="展示标签：Failed / Timeout / Incomplete")
    is_error: bool = Field(description="是否按错误展示")
    counters_valid: bool = Field(description="此前累计的计数器是否仍然有效")
    will_resume: bool = Field(default=False, description="后续 run 是否会继续处理")
    recommendation: str | None = None


class ExecutionState(BaseModel):
    """完整执行状态 -- 仅包含可由显式信号推导的字段"""

    confidence: ExecutionConfidence
    confidence_label: str
    confidence_description: str
    outcome_statement: str
    timeline: list[TimelineEntry]
    next_step_recommendation: str | None = None
    termination: TerminationClassification | None = None
    counters: PipelineCounters | None = Field(
        default=None, description="终止前累计的计数器（仅在计数器仍然有效时给出）"
    )


class StalenessInfo(BaseModel):
    """过期信息"""

    is_stale: bool
    stale_minutes: int
    threshold_minutes: int


class RunResolution(BaseModel):
    """活跃 run 解析结果"""

    active_run: RunSnapshot | None
    is_stale: bool
    resolution_reason: Literal["queued", "running", "stale_running", "terminal", "none"]


class CanonicalRunState(BaseModel):
    """规范 run 状态"""

    state: CanonicalState
    raw_status: str | None
    timestamp: str | None
    is_active: bool
    message: str
