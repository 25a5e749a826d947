"""EventStore SQLite 实现

run_events 表 append-only：只允许插入，不允许更新或删除。
event_id / seq / created_at 均在写入时由存储层分配，调用方不提供。
"""

import json
from datetime import UTC, datetime
from typing import Any

import aiosqlite
from ulid import ULID

from ..models.enums import EventType
from ..models.event import RunEvent

_SELECT_COLUMNS = "seq, event_id, event_type, payload, created_at"


class SqliteEventStore:
    """EventStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append_event(
        self,
        event_type: EventType,
        payload: dict[str, Any],
    ) -> RunEvent:
        """追加事件（append-only，单行插入）

        写入失败直接抛出，不重试、不吞异常。
        """
        event_id = str(ULID())
        created_at = datetime.now(UTC)
        cursor = await self._conn.execute(
            """
            INSERT INTO run_events (event_id, event_type, payload, created_at)
            VALUES (?, ?, ?, ?)
            """,
            (
                event_id,
                event_type.value,
                json.dumps(payload, ensure_ascii=False),
                created_at.isoformat(),
            ),
        )
        seq = cursor.lastrowid
        await self._conn.commit()
        return RunEvent(
            event_id=event_id,
            seq=seq,
            event_type=event_type,
            payload=payload,
            created_at=created_at,
        )

    async def get_events_for_run(self, run_id: str) -> list[RunEvent]:
        """查询指定 run 的所有事件，按写入顺序"""
        cursor = await self._conn.execute(
            f"""
            SELECT {_SELECT_COLUMNS} FROM run_events
            WHERE json_extract(payload, '$.run_id') = ?
            ORDER BY seq ASC
            """,
            (run_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    async def get_events_for_campaign(self, campaign_id: str) -> list[RunEvent]:
        """查询指定 campaign 下所有 run 的事件，按写入顺序"""
        cursor = await self._conn.execute(
            f"""
            SELECT {_SELECT_COLUMNS} FROM run_events
            WHERE json_extract(payload, '$.campaign_id') = ?
            ORDER BY seq ASC
            """,
            (campaign_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    async def get_events_after(
        self,
        run_id: str,
        after_event_id: str,
    ) -> list[RunEvent]:
        """查询指定事件之后的增量事件（用于 SSE 断线重连）

        以 after_event_id 对应的 seq 为界（同一毫秒内的 ULID 不保证有序），
        after_event_id 不存在时返回该 run 的全部事件。
        """
        cursor = await self._conn.execute(
            f"""
            SELECT {_SELECT_COLUMNS} FROM run_events
            WHERE json_extract(payload, '$.run_id') = ?
              AND seq > COALESCE(
                  (SELECT seq FROM run_events WHERE event_id = ?), 0
              )
            ORDER BY seq ASC
            """,
            (run_id, after_event_id),
        )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    @staticmethod
    def _row_to_event(row: aiosqlite.Row) -> RunEvent:
        """将数据库行转换为 RunEvent 模型"""
        payload = json.loads(row[3]) if row[3] else {}
        return RunEvent(
            seq=row[0],
            event_id=row[1],
            event_type=EventType(row[2]),
            payload=payload,
            created_at=datetime.fromisoformat(row[4]),
        )
