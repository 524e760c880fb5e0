"""Structlog configuration helpers for structured logging."""

from __future__ import annotations

import logging
import re
from typing import Any, MutableMapping

import structlog

_REDACTED = "[REDACTED]"

_SENSITIVE_PATTERNS = [
    re.compile(r"(?i)Bearer\s+[\w.-]+"),
    re.compile(r"(?i)password\s*[=:]\s*[\"']?[\w.-]+[\"']?"),
    re.compile(r"(?i)token\s*[=:]\s*[\"']?[\w.-]+[\"']?"),
    re.compile(r"xox[abposr]-[0-9A-Za-z-]+"),
    re.compile(r"(?i)\"(access_token|refresh_token|signing_secret|slack_signing_secret)\"\s*:\s*\"[^\"]*\""),
    re.compile(r"(?i)\"X-Slack-Signature\"\s*:\s*\"[^\"]*\""),
]

_SENSITIVE_KEYS = {"slack_token", "slack_signing_secret", "signature", "authorization"}


def redact_sensitive_info(message: str) -> str:
    """Mask tokens, secrets and signatures embedded in *message*."""

    for pattern in _SENSITIVE_PATTERNS:
        message = pattern.sub(_REDACTED, message)
    return message


def _redact_value(key: str, value: Any) -> Any:
    if key.lower() in _SENSITIVE_KEYS:
        return _REDACTED
    if isinstance(value, str):
        return redact_sensitive_info(value)
    if isinstance(value, bytes):
        return redact_sensitive_info(value.decode("utf-8", errors="replace"))
    if isinstance(value, dict):
        return {k: _redact_value(str(k), v) for k, v in value.items()}
    if isinstance(value, list):
        return [_redact_value("", item) for item in value]
    if isinstance(value, tuple):
        return tuple(_redact_value("", item) for item in value)
    return value


def redact_processor(
    _logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Structlog processor masking secrets in every value, keeping nested structure."""

    for key, value in list(event_dict.items()):
        event_dict[key] = _redact_value(key, value)
    return event_dict


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog to emit JSON-formatted, redacted logs."""

    timestamper = structlog.processors.TimeStamper(fmt="iso")
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            timestamper,
            structlog.processors.format_exc_info,
            redact_processor,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=numeric_level, format="%(message)s")
    logging.getLogger().setLevel(numeric_level)
