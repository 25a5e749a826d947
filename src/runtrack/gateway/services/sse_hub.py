"""SSEHub -- 内存中 run 事件广播器

每个订阅者持有一个 asyncio.Queue，支持 subscribe/unsubscribe/broadcast。
作为 EventLogWriter 的监听器注册：事件落盘成功后才会被广播。
"""

import asyncio
from collections import defaultdict

from runtrack.core.models.event import RunEvent


class SSEHub:
    """SSE 事件广播器 -- 基于 asyncio.Queue 的发布/订阅模式"""

    def __init__(self, queue_maxsize: int = 100) -> None:
        # run_id -> set of asyncio.Queue
        self._subscribers: dict[str, set[asyncio.Queue]] = defaultdict(set)
        self._queue_maxsize = queue_maxsize

    async def subscribe(self, run_id: str) -> asyncio.Queue:
        """订阅指定 run 的事件流

        Args:
            run_id: 要订阅的 run ID

        Returns:
            asyncio.Queue 实例，新事件会被推送到此队列
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_maxsize)
        self._subscribers[run_id].add(queue)
        return queue

    async def unsubscribe(self, run_id: str, queue: asyncio.Queue) -> None:
        """取消订阅"""
        self._subscribers[run_id].discard(queue)
        if not self._subscribers[run_id]:
            del self._subscribers[run_id]

    async def broadcast(self, run_id: str, event: RunEvent) -> None:
        """向指定 run 的所有订阅者广播事件

        队列已满的订阅者会被移除（慢消费者断开后可通过 Last-Event-ID 重连补齐）。
        """
        dead_queues = []
        for queue in self._subscribers.get(run_id, set()):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                dead_queues.append(queue)

        # 清理已满的队列
        for q in dead_queues:
            self._subscribers[run_id].discard(q)
        if run_id in self._subscribers and not self._subscribers[run_id]:
            del self._subscribers[run_id]

    async def publish(self, event: RunEvent) -> None:
        """EventLogWriter 监听器入口：按事件 payload 中的 run_id 广播"""
        await self.broadcast(event.run_id, event)

    def subscriber_count(self, run_id: str) -> int:
        return len(self._subscribers.get(run_id, ()))
