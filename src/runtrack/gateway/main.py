"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭 + 事件写入器 / SSEHub / RunService 装配 + 路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from runtrack.core.config import get_db_path
from runtrack.core.event_log import EventLogWriter
from runtrack.core.store import create_store_group

from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import campaigns, health, runs, stream
from .services.run_service import RunService
from .services.sse_hub import SSEHub

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 DB 与写入器，关闭时清理连接"""
    db_path = get_db_path()
    store_group = await create_store_group(db_path)
    app.state.store_group = store_group

    # 事件落盘后推送给 SSE 订阅者
    sse_hub = SSEHub()
    app.state.sse_hub = sse_hub
    writer = EventLogWriter(store_group.event_store, listeners=[sse_hub.publish])
    app.state.event_writer = writer

    app.state.run_service = RunService(
        store_group,
        writer=writer,
        executor_factory=getattr(app.state, "executor_factory", None),
    )
    log.info("gateway_started", db_path=db_path)

    yield

    if hasattr(app.state, "store_group") and app.state.store_group:
        await app.state.store_group.conn.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="Runtrack Gateway",
        version="0.1.0",
        description="Campaign run 触发与执行状态 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    setup_logging()
    setup_logfire()

    app.include_router(runs.router, tags=["runs"])
    app.include_router(campaigns.router, tags=["campaigns"])
    app.include_router(stream.router, tags=["stream"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
