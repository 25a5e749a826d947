"""CLI 入口模块 -- python -m runtrack.core <command>

支持的命令：
  show-runs <campaign_id>  从事件日志投影 campaign 下所有 run 的快照与执行置信度
  show-events <run_id>     按写入顺序打印指定 run 的事件
"""

import asyncio
import json
import sys

from .config import get_db_path

_USAGE = [
    "用法: python -m runtrack.core <command> [args]",
    "命令:",
    "  show-runs <campaign_id>  查看 campaign 下所有 run 的状态",
    "  show-events <run_id>     查看指定 run 的事件日志",
]


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 3:
        print("\n".join(_USAGE))
        sys.exit(1)

    command, target = sys.argv[1], sys.argv[2]

    if command == "show-runs":
        asyncio.run(show_runs(target))
    elif command == "show-events":
        asyncio.run(show_events(target))
    else:
        print(f"未知命令: {command}")
        print("可用命令: show-runs, show-events")
        sys.exit(1)


async def show_runs(campaign_id: str) -> None:
    """打印 campaign 下所有 run 的快照与执行置信度"""
    from .projection import build_run_snapshots
    from .resolver import resolve_execution_confidence
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        events = await store_group.event_store.get_events_for_campaign(campaign_id)
        runs = build_run_snapshots(events)
        if not runs:
            print(f"campaign {campaign_id} 没有任何 run")
            return
        for run in runs:
            confidence = resolve_execution_confidence(run, no_runs=False)
            print(
                f"{run.run_id}  status={run.status}  confidence={confidence.value}  "
                f"created_at={run.created_at}  updated_at={run.updated_at}"
            )
    finally:
        await store_group.conn.close()


async def show_events(run_id: str) -> None:
    """打印指定 run 的事件日志"""
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        events = await store_group.event_store.get_events_for_run(run_id)
        if not events:
            print(f"run {run_id} 没有任何事件")
            return
        for event in events:
            print(
                f"{event.seq:>6}  {event.created_at.isoformat()}  "
                f"{event.event_type.value:<16}  "
                f"{json.dumps(event.payload, ensure_ascii=False)}"
            )
    finally:
        await store_group.conn.close()


if __name__ == "__main__":
    main()
