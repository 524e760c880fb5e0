"""Utilities for validating Slack request signatures."""

from __future__ import annotations

import hmac
import time
from hashlib import sha256

from .errors import AppError, bad_request, unauthorized

SLACK_SIGNATURE_HEADER = "X-Slack-Signature"
SLACK_TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"
VERSION = "v0"


def compute_signature(signing_secret: str, timestamp: str, body: str | bytes) -> str:
    """Return Slack-compatible signature for the provided payload."""

    if isinstance(body, str):
        body = body.encode("utf-8")
    basestring = f"{VERSION}:{timestamp}:".encode("utf-8") + body
    secret = signing_secret.encode("utf-8")
    digest = hmac.new(secret, basestring, sha256).hexdigest()
    return f"{VERSION}={digest}"


def _is_stale(timestamp: str, max_age: int) -> bool:
    try:
        request_ts = int(timestamp)
    except (TypeError, ValueError):
        return True
    return abs(int(time.time()) - request_ts) > max_age


def verify_slack_signature(
    *,
    signing_secret: str,
    timestamp: str | None,
    signature: str | None,
    body: str | bytes | None,
    max_age: int = 0,
) -> None:
    """Raise :class:`AppError` unless *signature* authenticates *body*.

    Missing headers or an unreadable body are a bad request; a wrong or
    replayed signature is unauthorized. When *max_age* is zero the
    timestamp is not checked for freshness.
    """

    if not timestamp or not signature:
        raise bad_request("Invalid request")
    if body is None:
        raise bad_request("Invalid request")

    expected = compute_signature(signing_secret, timestamp, body)
    matches = hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))

    if not matches:
        raise unauthorized("Invalid signature")
    if max_age > 0 and _is_stale(timestamp, max_age):
        raise unauthorized("Invalid signature")


def is_valid_slack_request(
    *, signing_secret: str, timestamp: str, body: str, signature: str, max_age: int = 0
) -> bool:
    """Boolean form of :func:`verify_slack_signature`."""

    try:
        verify_slack_signature(
            signing_secret=signing_secret,
            timestamp=timestamp,
            signature=signature,
            body=body,
            max_age=max_age,
        )
    except AppError:
        return False
    return True
