from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable

from sessionstress.client import ServiceError, SessionServiceClient, User
from sessionstress.config import Config

from .types import (
    ExecutionError,
    ReadyTimeoutError,
    SessionCreateError,
    SessionState,
    SessionTask,
    StatusEvent,
    StuckRequestedError,
    UserLookupError,
    UserRunResult,
    Workload,
)

if TYPE_CHECKING:
    from sessionstress.status.channel import StatusChannel

LOGGER = logging.getLogger("sessionstress.runner")


class SessionRunner:
    """Runs one user's sessions one after another: request, wait, execute."""

    def __init__(
        self,
        client: SessionServiceClient,
        config: Config,
        username: str,
        *,
        image_id: str,
        workload: Workload = Workload.ALL,
        channel: StatusChannel | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.config = config
        self.username = username
        self.image_id = image_id
        self.workload = workload
        self.channel = channel
        self.user: User | None = None
        self.destroy_roster: list[str] = []
        self._sleep = sleep
        self._clock = clock

    def run(self, session_count: int) -> UserRunResult:
        started = self._clock()
        result = UserRunResult(username=self.username, total_sessions=session_count)

        for index in range(session_count):
            self._emit(index, SessionState.PENDING, 0.0)

        try:
            self.user = self._resolve_user()
        except UserLookupError as exc:
            LOGGER.error("%s", exc)
            result.errors.append(str(exc))
            result.failed = session_count
            for index in range(session_count):
                self._emit(index, SessionState.FAILED, 0.0)
            result.finalize(self._clock() - started)
            return result

        result.user_id = self.user.user_id
        for index in range(session_count):
            task = self._run_session(index, self.user)
            result.record(task)

        result.finalize(self._clock() - started)
        return result

    def _resolve_user(self) -> User:
        try:
            return self.client.lookup_user(self.username)
        except ServiceError as exc:
            raise UserLookupError(self.username, exc) from exc

    def _run_session(self, index: int, user: User) -> SessionTask:
        task = SessionTask(index=index)
        LOGGER.info("Starting session %d for user %s", task.number, self.username)

        while True:
            task.attempts += 1
            task.requested_at = self._clock()
            task.session_id = None

            try:
                task.session_id = self._request(task, user)
                self.destroy_roster.append(task.session_id)
                self._wait_until_ready(task, user)
            except SessionCreateError as exc:
                return self._fail(task, exc)
            except ReadyTimeoutError as exc:
                return self._fail(task, exc)
            except StuckRequestedError as exc:
                if task.attempts > self.config.stuck_retries:
                    return self._fail(task, exc)
                self._recover_stuck(task, user)
                continue
            break

        task.ready_at = self._clock()
        self._execute(task, user)

        task.state = SessionState.COMPLETED
        self._emit_task(task)
        LOGGER.info(
            "Completed session %d for user %s (ready in %.1fs)",
            task.number,
            self.username,
            task.time_to_ready,
        )
        return task

    def _request(self, task: SessionTask, user: User) -> str:
        task.state = SessionState.REQUESTING
        self._emit_task(task)
        try:
            session_id = self.client.create_session(user.user_id, self.image_id)
        except ServiceError as exc:
            raise SessionCreateError(f"Failed to request session: {exc}") from exc

        if not session_id:
            raise SessionCreateError("received empty id from service")
        return session_id

    def _wait_until_ready(self, task: SessionTask, user: User) -> None:
        session_id = task.session_id or ""
        started = self._clock()
        requested_since: float | None = None
        last_state = ""
        task.state = SessionState.WAITING

        while True:
            self._emit_task(task)
            try:
                status = self.client.poll_status(session_id, user.user_id)
            except ServiceError as exc:
                LOGGER.warning("Polling session %s failed: %s", session_id, exc)
                status = None

            now = self._clock()
            if status is not None:
                if status.is_running:
                    return
                last_state = status.state
                if status.is_requested:
                    if requested_since is None:
                        requested_since = now
                    if now - requested_since >= self.config.stuck_requested_seconds:
                        raise StuckRequestedError(session_id, now - requested_since)
                else:
                    requested_since = None
                LOGGER.info(
                    "Session %s status: %s (%s%%). Waiting... (%.0fs)",
                    session_id,
                    status.state or "unknown",
                    status.progress if status.progress is not None else "-",
                    now - started,
                )

            if now - started >= self.config.ready_timeout_seconds:
                raise ReadyTimeoutError(session_id, now - started, last_state)

            self._sleep(self.config.poll_interval_seconds)

    def _recover_stuck(self, task: SessionTask, user: User) -> None:
        session_id = task.session_id or ""
        LOGGER.error(
            "Session %s stuck in 'requested' state, destroying and retrying session %d",
            session_id,
            task.number,
        )
        try:
            self.client.destroy(session_id, user.user_id)
        except ServiceError as exc:
            LOGGER.error("Failed to destroy stuck session %s: %s", session_id, exc)
        else:
            self.destroy_roster.remove(session_id)
        task.session_id = None

        LOGGER.info(
            "Waiting %.0fs for the session pool to recover", self.config.stuck_cooldown_seconds
        )
        self._sleep(self.config.stuck_cooldown_seconds)

    def _execute(self, task: SessionTask, user: User) -> None:
        task.state = SessionState.EXECUTING
        errors: list[str] = []

        for label, command in self._commands():
            self._emit_task(task)
            try:
                self._exec_one(task.session_id or "", user, label, command)
            except ExecutionError as exc:
                LOGGER.error("%s", exc)
                errors.append(str(exc))
            else:
                LOGGER.info("%s command executed on session %s", label, task.session_id)

        task.execution_error = " ".join(errors)

    def _exec_one(self, session_id: str, user: User, label: str, command: str) -> None:
        try:
            self.client.exec_command(session_id, user.user_id, command)
        except ServiceError as exc:
            raise ExecutionError(f"Failed to execute {label} command: {exc}") from exc

    def _commands(self) -> list[tuple[str, str]]:
        match self.workload:
            case Workload.CPU:
                return [("CPU", self.config.cpu_command)]
            case Workload.NETWORK:
                return [("Network", self.config.network_command)]
            case Workload.ALL:
                return [
                    ("CPU", self.config.cpu_command),
                    ("Network", self.config.network_command),
                ]

    def _fail(self, task: SessionTask, exc: Exception) -> SessionTask:
        LOGGER.error("Session %d for user %s failed: %s", task.number, self.username, exc)
        task.state = SessionState.FAILED
        task.execution_error = str(exc)
        self._emit_task(task)
        return task

    def _emit_task(self, task: SessionTask) -> None:
        self._emit(task.index, task.state, self._clock() - task.requested_at)

    def _emit(self, index: int, state: SessionState, elapsed: float) -> None:
        if self.channel is None:
            return
        self.channel.publish(StatusEvent(self.username, index, state, elapsed))
