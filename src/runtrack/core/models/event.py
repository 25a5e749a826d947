"""Event Domain Model

事件表 append-only，不允许更新或删除。
event_id 使用 ULID 格式，时间有序；seq 与 created_at 均由存储层在写入时分配。
campaign_id / run_id 位于 payload 内，事件表与 run / campaign 之间没有外键。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import TERMINAL_EVENT_TYPES, EventType


class RunEvent(BaseModel):
    """RunEvent 数据模型 -- 唯一持久化的事实

    事件表 append-only，不允许更新或删除。
    同一 (campaign_id, run_id) 的事件序列是该 run 历史的唯一来源。
    """

    event_id: str = Field(description="唯一标识，ULID 格式，时间有序")
    seq: int = Field(description="全局写入序号，严格单调递增")
    event_type: EventType = Field(description="事件类型")
    payload: dict[str, Any] = Field(default_factory=dict, description="非结构化 payload")
    created_at: datetime = Field(description="存储层写入时间")

    @property
    def campaign_id(self) -> str:
        return str(self.payload.get("campaign_id", ""))

    @property
    def run_id(self) -> str:
        return str(self.payload.get("run_id", ""))

    @property
    def is_terminal(self) -> bool:
        """是否为 run 的终态事件（run.completed / run.failed）"""
        return self.event_type in TERMINAL_EVENT_TYPES
