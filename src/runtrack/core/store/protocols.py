"""Store Protocol 接口定义

定义 EventStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from typing import Any, Protocol

from ..models.enums import EventType
from ..models.event import RunEvent


class EventStore(Protocol):
    """Event 存储接口

    事件表 append-only：只允许插入，不允许更新或删除。
    单行插入需为原子操作，且支持多个执行器并发写入。
    """

    async def append_event(
        self,
        event_type: EventType,
        payload: dict[str, Any],
    ) -> RunEvent:
        """追加事件（append-only），返回带存储层字段的事件"""
        ...

    async def get_events_for_run(self, run_id: str) -> list[RunEvent]:
        """查询指定 run 的所有事件"""
        ...

    async def get_events_for_campaign(self, campaign_id: str) -> list[RunEvent]:
        """查询指定 campaign 的所有事件"""
        ...

    async def get_events_after(
        self,
        run_id: str,
        after_event_id: str,
    ) -> list[RunEvent]:
        """查询指定事件之后的增量事件（用于 SSE 断线重连）"""
        ...
