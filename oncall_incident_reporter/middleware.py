"""Request middleware: recovery, request logging and Slack signature checks."""

from __future__ import annotations

import time
from typing import Iterable
from uuid import uuid4

import structlog
from flask import Flask, g, jsonify, request
from structlog.contextvars import bind_contextvars, clear_contextvars
from werkzeug.exceptions import ClientDisconnected, HTTPException

from .config import AppSettings
from .errors import AppError, bad_request, internal_error
from .security import SLACK_SIGNATURE_HEADER, SLACK_TIMESTAMP_HEADER, verify_slack_signature


def _read_body() -> bytes:
    # Cached so form parsing further down the chain can re-read the body.
    try:
        return request.get_data(cache=True)
    except (ClientDisconnected, OSError) as exc:
        raise bad_request("Invalid request", exc) from exc


def register_request_logging(flask_app: Flask) -> None:
    """Bind a trace id per request and log a summary once it completes."""

    @flask_app.before_request
    def start_request():
        clear_contextvars()
        g.trace_id = str(uuid4())
        g.request_started = time.perf_counter()
        bind_contextvars(trace_id=g.trace_id)

    @flask_app.after_request
    def log_request(response):
        started = g.get("request_started")
        duration_ms = None
        if started is not None:
            duration_ms = round((time.perf_counter() - started) * 1000, 3)
        structlog.get_logger().info(
            "request_processed",
            method=request.method,
            path=request.path,
            status=response.status_code,
            duration_ms=duration_ms,
            remote_addr=request.remote_addr,
            user_agent=request.user_agent.string,
        )
        return response

    @flask_app.teardown_request
    def end_request(_error=None):
        clear_contextvars()


def register_signature_verification(
    flask_app: Flask, settings: AppSettings, protected_endpoints: Iterable[str]
) -> None:
    """Reject requests to *protected_endpoints* that Slack did not sign."""

    protected = frozenset(protected_endpoints)
    slack_config = settings.slack_config

    @flask_app.before_request
    def validate_slack_signature():
        if request.endpoint not in protected:
            return None

        body = _read_body()
        verify_slack_signature(
            signing_secret=slack_config.slack_signing_secret,
            timestamp=request.headers.get(SLACK_TIMESTAMP_HEADER),
            signature=request.headers.get(SLACK_SIGNATURE_HEADER),
            body=body,
            max_age=slack_config.request_max_age,
        )
        structlog.get_logger().debug("slack_signature_valid", path=request.path)
        return None


def register_error_handlers(flask_app: Flask) -> None:
    """Map errors to JSON responses; the only place errors get logged."""

    @flask_app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        log = structlog.get_logger().bind(
            path=request.path,
            method=request.method,
            status=error.code,
            category=error.category,
        )
        cause = repr(error.cause) if error.cause is not None else None
        if error.is_client_error:
            log.warning(error.message, cause=cause)
        else:
            log.error(error.message, cause=cause)
        return jsonify({"error": error.message}), error.code

    @flask_app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):  # type: ignore[override]
        if isinstance(error, HTTPException):
            return error

        trace_id = g.get("trace_id") or str(uuid4())
        app_error = internal_error(cause=error)
        structlog.get_logger().error(
            "unhandled_application_error",
            trace_id=trace_id,
            path=request.path,
            method=request.method,
            exc_info=error,
        )
        response = jsonify({"error": app_error.message, "trace_id": trace_id})
        response.status_code = app_error.code
        return response
