"""Application entry point for the on-call incident reporter."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

import structlog
from flask import Flask, jsonify

from oncall_incident_reporter.config import AppSettings, load_settings
from oncall_incident_reporter.handlers import (
    COMMAND_ENDPOINT,
    LOCAL_EVENT_SOURCE,
    MODAL_ENDPOINT,
    IncidentHandler,
    register_routes,
)
from oncall_incident_reporter.lambda_adapter import LambdaAdapter
from oncall_incident_reporter.logging_config import configure_logging
from oncall_incident_reporter.middleware import (
    register_error_handlers,
    register_request_logging,
    register_signature_verification,
)
from oncall_incident_reporter.monitoring import DatadogEventClient, EventClient
from oncall_incident_reporter.server import LocalServer, serve
from oncall_incident_reporter.slack_client import ChatClient, SlackClient

LAMBDA_FUNCTION_NAME_ENV = "AWS_LAMBDA_FUNCTION_NAME"

_LOGGING_CONFIGURED = False
_LAMBDA_ADAPTER: LambdaAdapter | None = None


def _load_version() -> str:
    version_file = Path(__file__).resolve().parent / "oncall_incident_reporter" / "VERSION"
    if version_file.exists():
        return version_file.read_text(encoding="utf-8").strip()
    return "unknown"


def _event_source(settings: AppSettings) -> str:
    if settings.local.enabled:
        return LOCAL_EVENT_SOURCE
    return os.environ.get(LAMBDA_FUNCTION_NAME_ENV, "")


def _ensure_logging(settings: AppSettings) -> None:
    global _LOGGING_CONFIGURED
    if not _LOGGING_CONFIGURED:
        configure_logging(settings.log_level)
        _LOGGING_CONFIGURED = True


def create_app(
    settings: AppSettings | None = None,
    *,
    chat_client: ChatClient | None = None,
    event_client: EventClient | None = None,
) -> Flask:
    """Create and configure the Flask application."""

    settings = settings or load_settings()
    _ensure_logging(settings)

    handler = IncidentHandler(
        settings,
        chat_client or SlackClient(token=settings.slack_config.slack_token),
        event_client or DatadogEventClient(),
        event_source=_event_source(settings),
    )

    flask_app = Flask(__name__)
    flask_app.config["APP_VERSION"] = _load_version()
    flask_app.config["SETTINGS"] = settings
    flask_app.logger.setLevel(settings.log_level)

    # Order matters: trace id binding runs before signature verification.
    register_request_logging(flask_app)
    register_signature_verification(flask_app, settings, (COMMAND_ENDPOINT, MODAL_ENDPOINT))
    register_error_handlers(flask_app)
    register_routes(flask_app, handler, settings)

    @flask_app.route("/healthz", methods=["GET"])
    def healthz():
        metadata = settings.metadata
        return jsonify(
            {
                "ok": True,
                "version": flask_app.config.get("APP_VERSION", "unknown"),
                "service": metadata.service,
                "environment": metadata.environment,
            }
        ), 200

    return flask_app


def create_lambda_adapter(settings: AppSettings | None = None, **clients: Any) -> LambdaAdapter:
    settings = settings or load_settings()
    return LambdaAdapter(create_app(settings, **clients), settings.endpoints)


def lambda_handler(event: dict, context: object) -> dict:
    """AWS Lambda entry point; the app is built once per execution environment."""

    global _LAMBDA_ADAPTER
    if _LAMBDA_ADAPTER is None:
        _LAMBDA_ADAPTER = create_lambda_adapter()
    return _LAMBDA_ADAPTER(event, context)


def main() -> int:
    try:
        settings = load_settings()
    except RuntimeError as exc:
        configure_logging()
        structlog.get_logger().error("configuration_load_failed", error=str(exc))
        return 1

    _ensure_logging(settings)
    log = structlog.get_logger()

    if not settings.local.enabled:
        log.error(
            "local_mode_disabled",
            hint="set LOCAL=true to run the standalone server; Lambda invokes app.lambda_handler",
        )
        return 1

    try:
        server = LocalServer(
            create_app(settings),
            port=settings.local.port,
            shutdown_timeout=settings.local.shutdown_timeout,
            read_timeout=settings.local.read_timeout,
            write_timeout=settings.local.write_timeout,
            idle_timeout=settings.local.idle_timeout,
        )
        serve(server)
    except (OSError, RuntimeError) as exc:
        log.error("local_server_failed", error=str(exc))
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - manual execution helper
    sys.exit(main())
