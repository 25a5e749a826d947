"""Event Payload 子类型

各事件类型的事件特有字段定义。campaign_id / run_id 由 EventLogWriter 合并写入，
此处不重复声明。
"""

from typing import Any

from pydantic import BaseModel, Field

from .enums import PipelineStage


class RunStartedPayload(BaseModel):
    """run.started 事件 payload"""

    triggered_by: str
    started_at: str = Field(description="触发时间（ISO 8601）")


class RunRunningPayload(BaseModel):
    """run.running 事件 payload"""

    stage: PipelineStage = Field(description="即将开始的第一个阶段")
    triggered_by: str


class StageStartedPayload(BaseModel):
    """stage.started 事件 payload"""

    stage: PipelineStage
    params: dict[str, Any] = Field(default_factory=dict, description="阶段输入参数")


class StageCompletedPayload(BaseModel):
    """stage.completed 事件 payload

    counters 仅包含该阶段产出的计数器。
    """

    stage: PipelineStage
    counters: dict[str, int] = Field(default_factory=dict)


class RunCompletedPayload(BaseModel):
    """run.completed 事件 payload"""

    completed_at: str
    orgs_sourced: int = 0
    contacts_discovered: int = 0
    contacts_evaluated: int = 0
    leads_promoted: int = 0


class RunFailedPayload(BaseModel):
    """run.failed 事件 payload

    携带失败前已累计的计数器：超时暂停与主动停止时这些计数器仍然有效。
    """

    error: str = Field(description="错误信息（截断到 ERROR_MESSAGE_MAX_LENGTH）")
    failed_at: str
    last_stage: str = Field(description="失败时的 current_stage")
    termination_reason: str | None = Field(default=None, description="终止原因分类标签")
    orgs_sourced: int = 0
    contacts_discovered: int = 0
    contacts_evaluated: int = 0
    leads_promoted: int = 0
