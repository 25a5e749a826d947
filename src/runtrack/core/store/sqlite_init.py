"""SQLite 数据库初始化

PRAGMA 配置 + run_events 表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# run_events 表 DDL
# campaign_id / run_id 只存在于 payload JSON 中，不设物理列与外键
_RUN_EVENTS_DDL = """
CREATE TABLE IF NOT EXISTS run_events (
    seq         INTEGER PRIMARY KEY AUTOINCREMENT,
    event_id    TEXT NOT NULL UNIQUE,
    event_type  TEXT NOT NULL,
    payload     TEXT NOT NULL DEFAULT '{}',
    created_at  TEXT NOT NULL
);
"""

_RUN_EVENTS_INDEXES = [
    # 按 payload 内的身份字段查询（表达式索引）
    (
        "CREATE INDEX IF NOT EXISTS idx_run_events_run_id "
        "ON run_events(json_extract(payload, '$.run_id'), seq);"
    ),
    (
        "CREATE INDEX IF NOT EXISTS idx_run_events_campaign_id "
        "ON run_events(json_extract(payload, '$.campaign_id'), seq);"
    ),
    "CREATE INDEX IF NOT EXISTS idx_run_events_type ON run_events(event_type);",
]

# append-only：拒绝任何更新或删除
_RUN_EVENTS_TRIGGERS = [
    """
    CREATE TRIGGER IF NOT EXISTS trg_run_events_no_update
    BEFORE UPDATE ON run_events
    BEGIN
        SELECT RAISE(ABORT, 'run_events is append-only');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_run_events_no_delete
    BEFORE DELETE ON run_events
    BEGIN
        SELECT RAISE(ABORT, 'run_events is append-only');
    END;
    """,
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引和触发器

    Args:
        conn: aiosqlite 数据库连接
    """
    # 设置 PRAGMA
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    # 创建表
    await conn.execute(_RUN_EVENTS_DDL)

    # 创建索引和触发器
    for sql in _RUN_EVENTS_INDEXES + _RUN_EVENTS_TRIGGERS:
        await conn.execute(sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
