"""TraceMiddleware -- 为 run 相关请求绑定 trace_id

trace_id = trace-<run_id>，从 /api/runs/{run_id} 或 /api/stream/run/{run_id} 路径中提取，
贯穿该请求内的所有日志。
"""

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response


def extract_run_id(path: str) -> str | None:
    """从请求路径中提取 run_id（必须是合法 UUID）"""
    parts = path.split("/")
    for i, part in enumerate(parts):
        if part in ("runs", "run") and i + 1 < len(parts):
            candidate = parts[i + 1]
            try:
                uuid.UUID(candidate)
            except ValueError:
                # 排除 /runs/latest 等子路由
                continue
            return candidate
    return None


class TraceMiddleware(BaseHTTPMiddleware):
    """run 级追踪中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        run_id = extract_run_id(request.url.path)
        if run_id:
            structlog.contextvars.bind_contextvars(trace_id=f"trace-{run_id}")

        return await call_next(request)
