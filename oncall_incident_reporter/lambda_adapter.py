"""Bridge between API Gateway proxy events and the Flask application.

Both the standalone server and the Lambda runtime dispatch through the same
WSGI app; this module only translates the event shape to a WSGI request and
the WSGI response back to the proxy response shape.
"""

from __future__ import annotations

import base64
import binascii
import json
from http import HTTPStatus
from typing import Any, Dict, Mapping

import structlog
from werkzeug.datastructures import Headers
from werkzeug.test import EnvironBuilder, run_wsgi_app

from .config import Endpoints
from .errors import AppError, bad_request

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"
# Length is recomputed from the decoded body; type is forced to form encoding.
_DROPPED_REQUEST_HEADERS = frozenset({"content-length", "content-type"})

logger = structlog.get_logger(__name__)


def _proxy_response(status_code: int, body: str, headers: Mapping[str, str] | None = None) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": dict(headers or {}),
        "body": body,
        "isBase64Encoded": False,
    }


def _error_response(status_code: int, message: str) -> Dict[str, Any]:
    return _proxy_response(
        status_code, json.dumps({"error": message}), {"Content-Type": JSON_CONTENT_TYPE}
    )


def decode_body(event: Mapping[str, Any]) -> bytes:
    """Return the raw request body, decoding it when flagged as base64."""

    body = event.get("body") or ""
    if not event.get("isBase64Encoded"):
        return body.encode("utf-8")

    try:
        return base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise bad_request("Invalid request body encoding", exc) from exc


def _request_headers(event: Mapping[str, Any]) -> Headers:
    headers = Headers()
    for key, value in (event.get("headers") or {}).items():
        if value is None or key.lower() in _DROPPED_REQUEST_HEADERS:
            continue
        headers[key] = value
    headers["Content-Type"] = FORM_CONTENT_TYPE
    return headers


class LambdaAdapter:
    """Callable Lambda handler wrapping a WSGI application."""

    def __init__(self, wsgi_app, endpoints: Endpoints) -> None:
        self._app = wsgi_app
        self._routes = frozenset(endpoints.routes())

    def is_valid_endpoint(self, resource: str | None) -> bool:
        return resource in self._routes

    def __call__(self, event: Mapping[str, Any], context: Any = None) -> Dict[str, Any]:
        resource = event.get("resource")
        method = event.get("httpMethod") or "POST"
        log = logger.bind(resource=resource, method=method, path=event.get("path"))
        log.debug("lambda_event_received", is_base64=bool(event.get("isBase64Encoded")))

        if not self.is_valid_endpoint(resource):
            log.info("lambda_endpoint_not_found")
            return _error_response(int(HTTPStatus.NOT_FOUND), "Endpoint not found")

        try:
            body = decode_body(event)
        except AppError as exc:
            log.warning(exc.message, cause=repr(exc.cause))
            return _error_response(exc.code, exc.message)

        builder = EnvironBuilder(
            path=resource,
            method=method,
            headers=_request_headers(event),
            data=body,
            query_string=event.get("queryStringParameters") or None,
        )
        try:
            environ = builder.get_environ()
        finally:
            builder.close()

        app_iter, status, response_headers = run_wsgi_app(self._app, environ, buffered=True)
        try:
            payload = b"".join(app_iter)
        finally:
            close = getattr(app_iter, "close", None)
            if close is not None:
                close()

        headers: Dict[str, str] = {}
        for key, value in response_headers.items():
            headers.setdefault(key, value)
        headers["Content-Type"] = JSON_CONTENT_TYPE
        status_code = int(status.split(" ", 1)[0])

        log.info("lambda_response", status=status_code)
        return _proxy_response(status_code, payload.decode("utf-8"), headers)
