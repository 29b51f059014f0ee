from .types import (
    ExecutionError,
    ReadyTimeoutError,
    RunnerError,
    SessionCreateError,
    SessionState,
    SessionTask,
    StatusEvent,
    StuckRequestedError,
    UserLookupError,
    UserRunResult,
    Workload,
)
from .runner import SessionRunner

__all__ = [
    "SessionRunner",
    "SessionState",
    "SessionTask",
    "StatusEvent",
    "UserRunResult",
    "Workload",
    "RunnerError",
    "UserLookupError",
    "SessionCreateError",
    "ReadyTimeoutError",
    "StuckRequestedError",
    "ExecutionError",
]
