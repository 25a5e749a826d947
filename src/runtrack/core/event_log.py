"""EventLogWriter -- run 事件的唯一写入口

将 campaign_id / run_id 合并进事件特有字段形成 payload，并以单行插入追加到事件日志。
请求路径（同步触发）与后台执行器共用同一个 writer。

写入保证：
- 单行插入，无读-改-写
- 不重试，写入失败直接抛给调用方（吞掉失败会悄悄破坏整个读侧模型）
- 写入成功后通知订阅者（如 SSEHub），订阅者不参与写入成败判定
"""

from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import structlog

from .models.enums import EventType
from .models.event import RunEvent
from .store.protocols import EventStore

log = structlog.get_logger()

EventListener = Callable[[RunEvent], Awaitable[None]]


class EventLogWriter:
    """事件日志写入器"""

    def __init__(
        self,
        event_store: EventStore,
        listeners: list[EventListener] | None = None,
    ) -> None:
        self._event_store = event_store
        self._listeners: list[EventListener] = list(listeners or [])

    def add_listener(self, listener: EventListener) -> None:
        """注册写入成功后的事件监听器"""
        self._listeners.append(listener)

    async def append(
        self,
        event_type: EventType,
        campaign_id: str,
        run_id: str,
        extra: Mapping[str, Any] | None = None,
    ) -> RunEvent:
        """追加一条 run 事件

        Args:
            event_type: 事件类型
            campaign_id: campaign 标识
            run_id: run 标识
            extra: 事件特有字段

        Returns:
            带 event_id / seq / created_at 的已落盘事件

        Raises:
            Exception: 存储层写入失败时原样抛出
        """
        payload = {**(extra or {}), "campaign_id": campaign_id, "run_id": run_id}
        event = await self._event_store.append_event(event_type, payload)

        log.debug(
            "run_event_appended",
            event_type=event_type.value,
            campaign_id=campaign_id,
            run_id=run_id,
            seq=event.seq,
        )

        # 监听器失败只记录日志，事件已落盘
        for listener in self._listeners:
            try:
                await listener(event)
            except Exception as e:
                log.warning(
                    "run_event_listener_failed",
                    event_type=event_type.value,
                    run_id=run_id,
                    seq=event.seq,
                    error_type=type(e).__name__,
                    error=str(e),
                )
        return event
