from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class SessionState(Enum):
    PENDING = "Starting"
    REQUESTING = "Requesting"
    WAITING = "Waiting"
    EXECUTING = "Executing"
    COMPLETED = "Completed"
    FAILED = "Failed"

    @property
    def terminal(self) -> bool:
        return self in (SessionState.COMPLETED, SessionState.FAILED)


class Workload(Enum):
    CPU = "cpu"
    NETWORK = "network"
    ALL = "all"


@dataclass(frozen=True)
class StatusEvent:
    username: str
    session_index: int
    state: SessionState
    elapsed: float

    @property
    def key(self) -> tuple[str, int]:
        return (self.username, self.session_index)


@dataclass
class SessionTask:
    index: int
    session_id: str | None = None
    requested_at: float = 0.0
    ready_at: float | None = None
    state: SessionState = SessionState.PENDING
    execution_error: str = ""
    attempts: int = 0

    @property
    def number(self) -> int:
        return self.index + 1

    @property
    def time_to_ready(self) -> float:
        if self.ready_at is None:
            return 0.0
        return max(self.ready_at - self.requested_at, 0.0)

    @property
    def successful(self) -> bool:
        return self.state is SessionState.COMPLETED and not self.execution_error


@dataclass
class UserRunResult:
    username: str
    total_sessions: int
    user_id: str = ""
    successful: int = 0
    failed: int = 0
    tasks: list[SessionTask] = field(default_factory=list)
    total_time_to_ready: float = 0.0
    average_time_to_ready: float = 0.0
    total_duration: float = 0.0
    errors: list[str] = field(default_factory=list)

    def record(self, task: SessionTask) -> None:
        self.tasks.append(task)
        self.total_time_to_ready += task.time_to_ready
        if task.successful:
            self.successful += 1
        else:
            self.failed += 1
            self.errors.append(f"Session {task.number}: {task.execution_error}")

    def finalize(self, duration: float) -> None:
        self.total_duration = duration
        if self.total_sessions > 0:
            self.average_time_to_ready = self.total_time_to_ready / self.total_sessions


class RunnerError(Exception):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class UserLookupError(RunnerError):
    def __init__(self, username: str, reason: object):
        super().__init__(f"Failed to get user info for {username}: {reason}")
        self.username = username


class SessionCreateError(RunnerError):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class ReadyTimeoutError(RunnerError):
    def __init__(self, session_id: str, waited: float, last_state: str):
        super().__init__(
            f"Timeout waiting for session {session_id} to be ready "
            f"after {waited:.0f}s (last state: {last_state or 'unknown'})"
        )
        self.session_id = session_id
        self.waited = waited


class StuckRequestedError(RunnerError):
    def __init__(self, session_id: str, waited: float):
        super().__init__(
            f"Session {session_id} stuck in 'requested' state for {waited:.0f}s"
        )
        self.session_id = session_id
        self.waited = waited


class ExecutionError(RunnerError):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)
