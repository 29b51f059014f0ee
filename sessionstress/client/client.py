from __future__ import annotations

import logging
import time
from typing import Any, Callable

import httpx

from sessionstress.config import Config

from .types import (
    REQUESTED_MARKER,
    REQUESTED_STATE,
    DestroyError,
    Image,
    ServiceError,
    SessionStatus,
    User,
)

LOGGER = logging.getLogger("sessionstress.client")


class SessionServiceClient:
    """
    JSON-over-HTTP client for the session provisioning API.

    Every call is a POST carrying the API key pair next to the operation
    payload. A response holding a non-empty ``error_message`` is a failure.

    Example:
        >>> with SessionServiceClient(config) as client:
        ...     user = client.lookup_user("alice")
        ...     session_id = client.create_session(user.user_id, config.default_image_id)
        ...     client.poll_status(session_id, user.user_id).is_running
    """

    def __init__(
        self,
        config: Config,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._sleep = sleep
        self._http = httpx.Client(
            base_url=config.api_host.rstrip("/") + "/",
            timeout=float(config.timeout_seconds),
            transport=transport,
        )

    def __enter__(self) -> SessionServiceClient:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def lookup_user(self, username: str) -> User:
        body = self._call("get_user", {"target_user": {"username": username}})
        user = body.get("user") or {}
        user_id = user.get("user_id") or ""
        if not user_id:
            raise ServiceError(f"user {username!r} not found")
        return User(username=user.get("username") or username, user_id=user_id)

    def get_images(self) -> list[Image]:
        body = self._call("get_images", {})
        return [
            Image(
                image_id=item.get("image_id", ""),
                friendly_name=item.get("friendly_name", ""),
            )
            for item in body.get("images") or []
        ]

    def create_session(self, user_id: str, image_id: str) -> str:
        """Request a new session. An empty string means the service returned no id."""
        body = self._call(
            "request_session",
            {"user_id": user_id, "image_id": image_id, "enable_sharing": False},
        )
        session_id = body.get("session_id") or ""
        if session_id:
            LOGGER.info("Created session %s for user %s", session_id, user_id)
        return session_id

    def poll_status(self, session_id: str, user_id: str) -> SessionStatus:
        payload = self._parse(
            self._send(
                "get_session_status", {"session_id": session_id, "user_id": user_id}
            )
        )
        error = payload.get("error_message")
        if error:
            # The service reports a session still being provisioned as an error.
            if REQUESTED_MARKER in error:
                return SessionStatus(state=REQUESTED_STATE, message=error)
            raise ServiceError(error)

        session = payload.get("session") or {}
        return SessionStatus(
            state=session.get("operational_status") or "",
            progress=session.get("operational_progress"),
            message=session.get("operational_message") or "",
        )

    def exec_command(self, session_id: str, user_id: str, command: str) -> None:
        self._call(
            "exec_command_session",
            {
                "session_id": session_id,
                "user_id": user_id,
                "exec_config": {"cmd": command},
            },
        )

    def destroy(self, session_id: str, user_id: str) -> None:
        attempts = self._config.destroy_attempts
        payload = {"session_id": session_id, "user_id": user_id}

        for attempt in range(1, attempts + 1):
            try:
                response = self._send("destroy_session", payload)
            except ServiceError as exc:
                LOGGER.error(
                    "Attempt %d to destroy session %s failed: %s", attempt, session_id, exc
                )
                if attempt < attempts:
                    self._sleep(float(attempt))
                continue

            if not response.content.strip() or response.content.strip() == b"{}":
                LOGGER.info("Destroyed session %s", session_id)
                return

            try:
                body = self._parse(response)
            except ServiceError as exc:
                raise DestroyError(session_id, str(exc)) from exc

            error = body.get("error_message")
            if error:
                raise DestroyError(session_id, error)
            LOGGER.info("Destroyed session %s", session_id)
            return

        raise DestroyError(session_id, f"gave up after {attempts} attempts")

    def _call(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        body = self._parse(self._send(endpoint, payload))
        error = body.get("error_message")
        if error:
            raise ServiceError(f"{endpoint}: {error}")
        return body

    def _send(self, endpoint: str, payload: dict[str, Any]) -> httpx.Response:
        request_body = {
            "api_key": self._config.api_key,
            "api_key_secret": self._config.api_secret,
            **payload,
        }
        try:
            response = self._http.post(endpoint.lstrip("/"), json=request_body)
        except httpx.HTTPError as exc:
            raise ServiceError(f"{endpoint}: error sending request: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            raise ServiceError(
                f"{endpoint}: request failed with status {response.status_code}: {response.text}"
            )
        return response

    def _parse(self, response: httpx.Response) -> dict[str, Any]:
        if not response.content.strip():
            return {}
        try:
            body = response.json()
        except ValueError as exc:
            raise ServiceError(f"invalid JSON response: {response.text[:200]}") from exc
        if not isinstance(body, dict):
            raise ServiceError(f"unexpected response shape: {type(body)}")
        return body
