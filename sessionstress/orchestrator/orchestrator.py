from __future__ import annotations

import logging
import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterable

from sessionstress.client import DestroyError, ServiceError, SessionServiceClient
from sessionstress.config import Config
from sessionstress.runner import SessionRunner, UserRunResult, Workload
from sessionstress.status.channel import StatusChannel

from .types import SessionCount

LOGGER = logging.getLogger("sessionstress.orchestrator")


class Orchestrator:
    """
    Fans a SessionRunner out per user and tears the created sessions down.

    Runners share the client and the status channel; the only other shared
    state is the result list, appended to under a lock.
    """

    def __init__(
        self,
        client: SessionServiceClient,
        config: Config,
        *,
        image_id: str,
        channel: StatusChannel | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
    ) -> None:
        self.client = client
        self.config = config
        self.image_id = image_id
        self.channel = channel
        self.runners: list[SessionRunner] = []
        self._sleep = sleep
        self._clock = clock
        self._rng = rng or random.Random()
        self._results: list[UserRunResult] = []
        self._results_lock = threading.Lock()

    def run_all(
        self,
        usernames: Iterable[str],
        sessions: int | SessionCount,
        workload: Workload = Workload.ALL,
    ) -> list[UserRunResult]:
        if isinstance(sessions, int):
            sessions = SessionCount(sessions, sessions)

        planned: list[tuple[SessionRunner, int]] = []
        for username in usernames:
            runner = SessionRunner(
                self.client,
                self.config,
                username,
                image_id=self.image_id,
                workload=workload,
                channel=self.channel,
                sleep=self._sleep,
                clock=self._clock,
            )
            planned.append((runner, sessions.pick(self._rng)))
        self.runners.extend(runner for runner, _ in planned)

        if not planned:
            return []

        LOGGER.info(
            "Starting run for %d user(s), %s session(s) each, workload=%s",
            len(planned),
            sessions,
            workload.value,
        )
        with ThreadPoolExecutor(
            max_workers=len(planned), thread_name_prefix="session-runner"
        ) as pool:
            futures = [pool.submit(self._run_one, runner, count) for runner, count in planned]
            for future in as_completed(futures):
                future.result()

        LOGGER.info("Run complete for %d user(s)", len(self._results))
        return list(self._results)

    def _run_one(self, runner: SessionRunner, session_count: int) -> None:
        try:
            result = runner.run(session_count)
        except Exception as exc:
            # Sessions created before the crash stay in the runner's roster.
            LOGGER.exception("Run for user %s crashed", runner.username)
            result = UserRunResult(
                username=runner.username,
                total_sessions=session_count,
                user_id=runner.user.user_id if runner.user else "",
                failed=session_count,
                errors=[f"Run crashed: {type(exc).__name__}: {exc}"],
            )
        with self._results_lock:
            self._results.append(result)

    def session_ids(self) -> list[str]:
        return [sid for runner in self.runners for sid in runner.destroy_roster]

    def destroy_all(self) -> list[DestroyError]:
        errors: list[DestroyError] = []
        seen: set[str] = set()

        for runner in self.runners:
            roster, runner.destroy_roster = runner.destroy_roster, []
            if runner.user is None:
                continue
            for session_id in roster:
                if session_id in seen:
                    continue
                seen.add(session_id)
                try:
                    self.client.destroy(session_id, runner.user.user_id)
                except DestroyError as exc:
                    LOGGER.error("%s", exc)
                    errors.append(exc)
                except ServiceError as exc:
                    LOGGER.error("Failed to destroy session %s: %s", session_id, exc)
                    errors.append(DestroyError(session_id, str(exc)))

        LOGGER.info(
            "Teardown finished: %d destroyed, %d failed", len(seen) - len(errors), len(errors)
        )
        return errors
