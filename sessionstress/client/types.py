from dataclasses import dataclass

RUNNING_STATE = "running"
REQUESTED_STATE = "requested"
REQUESTED_MARKER = "currently requested"


@dataclass(frozen=True)
class User:
    username: str
    user_id: str


@dataclass(frozen=True)
class Image:
    image_id: str
    friendly_name: str


@dataclass(frozen=True)
class SessionStatus:
    state: str
    progress: int | None = None
    message: str = ""

    @property
    def is_running(self) -> bool:
        return self.state == RUNNING_STATE

    @property
    def is_requested(self) -> bool:
        return self.state == REQUESTED_STATE or REQUESTED_MARKER in self.message


class ServiceError(Exception):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class DestroyError(ServiceError):
    def __init__(self, session_id: str, reason: str):
        super().__init__(f"Failed to destroy session {session_id}: {reason}")
        self.session_id = session_id
        self.reason = reason
