import json
import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Mapping

import yaml

from .types import Config, ConfigError, UnsupportedConfigFormatError

LOGGER = logging.getLogger("sessionstress.config")

DEFAULT_CONFIG_PATH = Path("~/.session-stress.json")

ENV_PREFIX = "SESSION_STRESS_"

_STR_FIELDS = {
    "api_key",
    "api_secret",
    "api_host",
    "default_image_id",
    "log_level",
    "log_file",
    "cpu_command",
    "network_command",
}
_INT_FIELDS = {"timeout_seconds", "stuck_retries", "destroy_attempts"}
_FLOAT_FIELDS = {
    "poll_interval_seconds",
    "ready_timeout_seconds",
    "stuck_requested_seconds",
    "stuck_cooldown_seconds",
    "status_tick_seconds",
}

_ENV_OVERRIDES = {
    "API_KEY": "api_key",
    "API_SECRET": "api_secret",
    "API_HOST": "api_host",
    "DEFAULT_IMAGE_ID": "default_image_id",
    "LOG_LEVEL": "log_level",
    "TIMEOUT": "timeout_seconds",
}

_LOG_LEVELS = {"debug", "info", "warning", "error", "critical"}


def load_config(
    path: str | Path | None = None, environ: Mapping[str, str] | None = None
) -> Config:
    if environ is None:
        environ = os.environ

    raw: dict[str, Any] = {}
    if path is None:
        default_path = DEFAULT_CONFIG_PATH.expanduser()
        if default_path.is_file():
            raw.update(_read_file(default_path))
        else:
            LOGGER.warning("Config file %s not found, using environment only", default_path)
    else:
        raw.update(_read_file(path))

    fields = _validate_fields(raw)
    fields.update(_env_overrides(environ))
    return _build_config(fields)


def _read_file(path: str | Path) -> Mapping[str, Any]:
    pure_path = Path(path).expanduser().resolve()

    if not pure_path.exists():
        raise ConfigError(f"Config file not found: {pure_path}")

    if not pure_path.is_file():
        raise ConfigError(f"Config path is not a file: {pure_path}")

    fmt = _detect_format(pure_path)
    return _parse_file(pure_path, fmt)


def _detect_format(path: Path) -> str:
    fmt = path.suffix
    match fmt:
        case ".yaml" | ".yml":
            return "yaml"
        case ".toml":
            return "toml"
        case ".json":
            return "json"
        case _:
            raise UnsupportedConfigFormatError(
                f"Non supported file extension: {fmt}\n Expected format: .yml/.yaml, .toml, .json"
            )


def _parse_file(path: Path, fmt: str) -> Mapping[str, Any]:
    text = path.read_text(encoding="utf-8")
    match fmt:
        case "yaml":
            try:
                raw_file = yaml.safe_load(text)
            except yaml.YAMLError as exc:
                raise ConfigError(f"{path}: invalid YAML") from exc
        case "toml":
            try:
                raw_file = tomllib.loads(text)
            except tomllib.TOMLDecodeError as exc:
                raise ConfigError(f"{path}: invalid TOML") from exc
        case "json":
            try:
                raw_file = json.loads(text)
            except json.JSONDecodeError as exc:
                raise ConfigError(f"{path}: invalid JSON") from exc
        case _:
            raise AssertionError("Unreachable")

    if not isinstance(raw_file, Mapping):
        raise ConfigError(
            f"{path}: parsed succesfully but top-level value is not an object: {type(raw_file)}"
        )

    return raw_file


def _validate_fields(raw: Mapping[str, Any]) -> dict[str, Any]:
    fields: dict[str, Any] = {}

    for key, value in raw.items():
        if not isinstance(key, str):
            raise ConfigError(f"Config key must be a string, got {type(key)}")

        if key in _STR_FIELDS:
            if not isinstance(value, str):
                raise ConfigError(f"'{key}' should be a string")
            fields[key] = value.strip()
        elif key in _INT_FIELDS:
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"'{key}' should be an integer")
            fields[key] = value
        elif key in _FLOAT_FIELDS:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"'{key}' should be a number")
            fields[key] = float(value)
        else:
            raise ConfigError(f"Can't process: {key}")

    return fields


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}

    for suffix, field in _ENV_OVERRIDES.items():
        value = environ.get(ENV_PREFIX + suffix, "").strip()
        if not value:
            continue

        if field in _INT_FIELDS:
            try:
                overrides[field] = int(value)
            except ValueError as exc:
                raise ConfigError(
                    f"{ENV_PREFIX + suffix} should be an integer, got {value!r}"
                ) from exc
        else:
            overrides[field] = value

    return overrides


def _build_config(fields: dict[str, Any]) -> Config:
    for required in ("api_key", "api_secret", "api_host"):
        if not fields.get(required):
            raise ConfigError(f"Missing '{required}'")

    level = fields.get("log_level", "info").lower()
    if level not in _LOG_LEVELS:
        raise ConfigError(f"Unknown log_level: {level}")
    fields["log_level"] = level

    for key in _INT_FIELDS | _FLOAT_FIELDS:
        if key in fields and fields[key] < 0:
            raise ConfigError(f"'{key}' can't be negative")

    if fields.get("timeout_seconds") == 0:
        raise ConfigError("'timeout_seconds' must be positive")

    if fields.get("destroy_attempts") == 0:
        raise ConfigError("'destroy_attempts' must be at least 1")

    return Config(**fields)
