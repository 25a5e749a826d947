"""Runtrack 异常体系"""


class RunTrackError(Exception):
    """Runtrack 基础异常"""


class StageExecutionError(RunTrackError):
    """阶段执行失败

    阶段实现可以抛出此异常以携带 termination_reason，
    执行器会将其写入 run.failed 事件，供读侧进行终止原因分类。
    """

    def __init__(
        self,
        stage: str,
        message: str,
        termination_reason: str | None = None,
    ) -> None:
        """
        Args:
            stage: 失败的阶段名称
            message: 错误描述
            termination_reason: 终止原因（如 execution_timeout / batch_limit_reached）
        """
        super().__init__(message)
        self.stage = stage
        self.termination_reason = termination_reason


class RunNotFoundError(RunTrackError):
    """事件日志中不存在指定 run"""

    def __init__(self, run_id: str) -> None:
        super().__init__(f"Run with id {run_id} does not exist")
        self.run_id = run_id
