"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、run 过期阈值、SSE 心跳间隔、错误信息截断长度等可配置常量。
"""

import os
from datetime import timedelta
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("RUNTRACK_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "RUNTRACK_DB_PATH",
        str(_get_base_dir() / "sqlite" / "runtrack.db"),
    )


def get_run_stale_threshold() -> timedelta:
    """获取 running 状态的过期阈值（默认 30 分钟，与后台 watchdog 语义一致）"""
    minutes = int(os.environ.get("RUNTRACK_RUN_STALE_THRESHOLD_MINUTES", "30"))
    return timedelta(minutes=minutes)


# SSE 心跳间隔（秒）
SSE_HEARTBEAT_INTERVAL: int = int(
    os.environ.get("RUNTRACK_SSE_HEARTBEAT_INTERVAL", "15")
)

# run.failed 事件中 error 字段的最大长度
ERROR_MESSAGE_MAX_LENGTH: int = int(
    os.environ.get("RUNTRACK_ERROR_MESSAGE_MAX_LENGTH", "500")
)
