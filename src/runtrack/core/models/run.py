"""Run 相关模型

Run 是派生实体，不落库：
- PipelineContext 仅存在于执行器后台任务的内存中，终态后丢弃
- RunSnapshot 是读侧契约（最新可观测的 run 投影），供状态解析与时间线使用
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# 前向兼容钩子：快照若携带以下任一字段（且非空），视为观察到了中间步骤数据
STEP_DATA_FIELDS: tuple[str, ...] = ("steps", "phases", "execution_steps")


class PipelineCounters(BaseModel):
    """流水线计数器"""

    orgs_sourced: int = 0
    contacts_discovered: int = 0
    contacts_evaluated: int = 0
    leads_promoted: int = 0


class PipelineContext(BaseModel):
    """流水线执行上下文 -- 由单个执行器任务独占"""

    run_id: str
    campaign_id: str
    triggered_by: str
    started_at: str = Field(description="触发时间（ISO 8601）")
    current_stage: str = Field(default="initializing", description="当前阶段")
    counters: PipelineCounters = Field(default_factory=PipelineCounters)
    params: dict[str, Any] = Field(default_factory=dict, description="阶段输入参数")


class RunSnapshot(BaseModel):
    """Run 快照 -- 读侧契约

    时间戳保持为原始字符串，解析失败不影响构造（解析器必须是全函数）。
    未声明的额外字段原样保留，用于步骤数据的前向兼容检测。
    """

    model_config = ConfigDict(extra="allow")

    run_id: str
    campaign_id: str | None = None
    status: str | None = None
    execution_mode: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    started_at: str | None = None
    completed_at: str | None = None
    termination_reason: str | None = None
    error_message: str | None = None

    def has_observable_steps(self) -> bool:
        """快照中是否存在中间步骤数据"""
        extra = self.model_extra or {}
        return any(bool(extra.get(name)) for name in STEP_DATA_FIELDS)

    def observed_counters(self) -> PipelineCounters | None:
        """终态事件投影出的计数器，快照未携带任何计数器时返回 None"""
        extra = self.model_extra or {}
        present = {
            name: extra[name] for name in PipelineCounters.model_fields if name in extra
        }
        if not present:
            return None
        return PipelineCounters(**present)
