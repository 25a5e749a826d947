"""Runtrack Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

from pathlib import Path

import aiosqlite

from .event_store import SqliteEventStore
from .protocols import EventStore
from .sqlite_init import init_db


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接"""

    def __init__(self, conn: aiosqlite.Connection, db_path: str = ":memory:") -> None:
        self.conn = conn
        self.db_path = db_path
        self.event_store = SqliteEventStore(conn)


async def create_store_group(db_path: str) -> StoreGroup:
    """创建 Store 实例组

    连接使用 autocommit 模式（isolation_level=None），每次单行插入即一个独立事务，
    多个后台执行器并发写入时无需额外加锁。

    Args:
        db_path: SQLite 数据库文件路径

    Returns:
        StoreGroup 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path, isolation_level=None)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)

    return StoreGroup(conn=conn, db_path=db_path)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "EventStore",
    "SqliteEventStore",
    "init_db",
]
