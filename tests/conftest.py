"""runtrack 测试配置 -- 临时 SQLite + FastAPI app fixture"""

import asyncio
import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from runtrack.core.event_log import EventLogWriter
from runtrack.core.models import EventType, RunEvent
from runtrack.core.store import StoreGroup, create_store_group


@pytest_asyncio.fixture
async def store_group(tmp_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """已初始化的临时数据库"""
    group = await create_store_group(str(tmp_path / "sqlite" / "test.db"))
    yield group
    await group.conn.close()


@pytest_asyncio.fixture
async def writer(store_group: StoreGroup) -> EventLogWriter:
    return EventLogWriter(store_group.event_store)


@pytest_asyncio.fixture
async def gateway_app(tmp_path: Path):
    """测试用 FastAPI app，手动初始化 lifespan 状态（ASGITransport 不触发 lifespan）"""
    os.environ["RUNTRACK_DB_PATH"] = str(tmp_path / "gateway.db")
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from runtrack.gateway.main import create_app
    from runtrack.gateway.services.run_service import RunService
    from runtrack.gateway.services.sse_hub import SSEHub

    app = create_app()

    group = await create_store_group(str(tmp_path / "gateway.db"))
    sse_hub = SSEHub()
    writer = EventLogWriter(group.event_store, listeners=[sse_hub.publish])
    app.state.store_group = group
    app.state.sse_hub = sse_hub
    app.state.event_writer = writer
    app.state.run_service = RunService(group, writer=writer)

    yield app

    # 等待残留的后台执行结束，避免关闭连接后仍有写入
    await _wait_for_background_runs()
    await group.conn.close()
    os.environ.pop("RUNTRACK_DB_PATH", None)
    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def client(gateway_app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient"""
    async with AsyncClient(
        transport=ASGITransport(app=gateway_app),
        base_url="http://test",
    ) as ac:
        yield ac


async def _wait_for_background_runs(timeout: float = 5.0) -> None:
    """等待 RunService 调度的后台执行全部结束"""
    from runtrack.gateway.services.run_service import RunService

    tasks = list(RunService._background_tasks)
    if tasks:
        await asyncio.wait(tasks, timeout=timeout)


async def _wait_for_terminal_event(
    store_group: StoreGroup, run_id: str, timeout: float = 5.0
) -> list[RunEvent]:
    """轮询事件日志，直到 run 出现终态事件"""
    deadline = asyncio.get_running_loop().time() + timeout
    while True:
        events = await store_group.event_store.get_events_for_run(run_id)
        if any(e.event_type in (EventType.RUN_COMPLETED, EventType.RUN_FAILED) for e in events):
            return events
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError(f"run {run_id} 未在 {timeout}s 内到达终态")
        await asyncio.sleep(0.01)


@pytest_asyncio.fixture
async def wait_terminal():
    """返回轮询 run 终态事件的协程函数"""
    return _wait_for_terminal_event
