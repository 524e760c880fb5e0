"""Pydantic-based configuration for the on-call incident reporter.

Settings are read once at start-up from a YAML file and a handful of
environment variable overrides, validated, and then passed explicitly to
every component that needs them.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Iterable, List, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

DEFAULT_CONFIG_FILE = "config.yaml"
DEFAULT_PORT = 8080
DEFAULT_SHUTDOWN_TIMEOUT = 10.0
DEFAULT_READ_TIMEOUT = 5.0
DEFAULT_WRITE_TIMEOUT = 10.0
DEFAULT_IDLE_TIMEOUT = 120.0

CONFIG_FILE_ENV = "CONFIG_FILE"
SLACK_TOKEN_ENV = "SLACK_TOKEN"
SLACK_SIGNING_SECRET_ENV = "SLACK_SIGNING_SECRET"
SLACK_CHANNEL_ENV = "SLACK_CHANNEL_ID"
LOG_LEVEL_ENV = "LOG_LEVEL"
DEBUG_ENV = "DEBUG"
LOCAL_ENV = "LOCAL"
PORT_ENV = "PORT"
SHUTDOWN_TIMEOUT_ENV = "SHUTDOWN_TIMEOUT"
READ_TIMEOUT_ENV = "READ_TIMEOUT"
WRITE_TIMEOUT_ENV = "WRITE_TIMEOUT"
IDLE_TIMEOUT_ENV = "IDLE_TIMEOUT"

_TRUTHY = {"1", "true", "yes", "on"}


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Metadata(_Frozen):
    service: str
    environment: str
    team: str


class SlackConfig(_Frozen):
    slack_token: str = Field(..., min_length=1)
    slack_signing_secret: str = Field(..., min_length=1)
    channel_id: str = ""
    message_format: str = ""
    # Seconds; 0 disables the replay check.
    request_max_age: int = 0

    @field_validator("slack_token", "slack_signing_secret")
    @classmethod
    def _ensure_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("request_max_age")
    @classmethod
    def _ensure_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("request_max_age must be zero or greater")
        return value


class Endpoints(_Frozen):
    slack_command: str
    slack_modal_parser: str

    @field_validator("slack_command", "slack_modal_parser")
    @classmethod
    def _ensure_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("endpoint paths must start with '/'")
        return value

    def routes(self) -> tuple[str, str]:
        return (self.slack_command, self.slack_modal_parser)


class Option(_Frozen):
    text: str


class ModalInput(_Frozen):
    key: str
    label: str
    placeholder: str = ""
    required: bool = False
    type: str = Field("text", description="Input type: text or select")
    options: List[Option] = Field(default_factory=list)

    def option_labels(self) -> list[str]:
        return [option.text for option in self.options]


class ModalConfig(_Frozen):
    title: str
    inputs: List[ModalInput] = Field(default_factory=list)


class LocalConfig(_Frozen):
    enabled: bool = False
    port: int = DEFAULT_PORT
    shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT
    # Socket timeouts in seconds; 0 disables.
    read_timeout: float = DEFAULT_READ_TIMEOUT
    write_timeout: float = DEFAULT_WRITE_TIMEOUT
    idle_timeout: float = DEFAULT_IDLE_TIMEOUT

    @field_validator("shutdown_timeout", "read_timeout", "write_timeout", "idle_timeout")
    @classmethod
    def _ensure_non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("timeouts must be zero or greater")
        return value


class AppSettings(_Frozen):
    """Complete, validated application configuration."""

    metadata: Metadata
    slack_config: SlackConfig
    endpoints: Endpoints
    modal: ModalConfig
    local: LocalConfig = Field(default_factory=LocalConfig)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _normalise_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"


def _format_invalid(fields: Iterable[str]) -> str:
    """Return a human-friendly comma-separated list of invalid settings."""

    unique: List[str] = []
    for field in fields:
        if field not in unique:
            unique.append(field)
    return ", ".join(unique)


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp)
    except FileNotFoundError as exc:
        raise RuntimeError(f"Configuration file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise RuntimeError(f"Configuration file {path} is not valid YAML") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise RuntimeError(f"Configuration file {path} must contain a mapping")
    return data


def _apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    merged = dict(data)
    slack = dict(merged.get("slack_config") or {})
    local = dict(merged.get("local") or {})

    if environ.get(SLACK_TOKEN_ENV):
        slack["slack_token"] = environ[SLACK_TOKEN_ENV]
    if environ.get(SLACK_SIGNING_SECRET_ENV):
        slack["slack_signing_secret"] = environ[SLACK_SIGNING_SECRET_ENV]
    if environ.get(SLACK_CHANNEL_ENV):
        slack["channel_id"] = environ[SLACK_CHANNEL_ENV]

    if LOCAL_ENV in environ:
        local["enabled"] = environ[LOCAL_ENV].strip().lower() in _TRUTHY
    if environ.get(PORT_ENV):
        local["port"] = environ[PORT_ENV]
    if environ.get(SHUTDOWN_TIMEOUT_ENV):
        local["shutdown_timeout"] = environ[SHUTDOWN_TIMEOUT_ENV]
    for env_name, key in (
        (READ_TIMEOUT_ENV, "read_timeout"),
        (WRITE_TIMEOUT_ENV, "write_timeout"),
        (IDLE_TIMEOUT_ENV, "idle_timeout"),
    ):
        if environ.get(env_name):
            local[key] = environ[env_name]

    if environ.get(LOG_LEVEL_ENV):
        merged["log_level"] = environ[LOG_LEVEL_ENV]
    elif environ.get(DEBUG_ENV, "").strip().lower() in _TRUTHY:
        merged["log_level"] = "DEBUG"

    merged["slack_config"] = slack
    merged["local"] = local
    return merged


def load_settings(
    path: str | Path | None = None, environ: Mapping[str, str] | None = None
) -> AppSettings:
    """Load settings from the YAML config file and environment overrides."""

    env = os.environ if environ is None else environ
    config_path = Path(path or env.get(CONFIG_FILE_ENV) or DEFAULT_CONFIG_FILE)
    data = _apply_env_overrides(_read_config_file(config_path), env)

    try:
        return AppSettings.model_validate(data)
    except ValidationError as exc:
        invalid = [".".join(str(part) for part in error["loc"]) for error in exc.errors()]
        message = f"Invalid configuration in {config_path}: {_format_invalid(invalid)}"
        raise RuntimeError(message) from exc
