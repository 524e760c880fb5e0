"""Slash command and modal submission handling."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Callable, Dict, Mapping

import structlog
from flask import Flask, jsonify, request
from slack_sdk.errors import SlackClientError

from .config import AppSettings
from .errors import bad_request, internal_error
from .messages import render_incident_message
from .modal import Modal, ModalSubmission, build_modal
from .monitoring import EventClient, MonitoringEvent
from .slack_client import ChatClient

EVENT_TITLE = "New on-call alert from slack slash command"
TEXT_BLOCK_START = "%%% \n"
TEXT_BLOCK_END = "\n %%%"
LOCAL_EVENT_SOURCE = "local_execution"

COMMAND_ENDPOINT = "slack_command"
MODAL_ENDPOINT = "slack_modal_parser"

CLEAR_RESPONSE: Dict[str, str] = {"response_action": "clear"}


def _utcnow() -> datetime:
    return datetime.now(UTC)


class IncidentHandler:
    """Turn Slack slash commands into modals and submissions into incidents."""

    def __init__(
        self,
        settings: AppSettings,
        chat_client: ChatClient,
        event_client: EventClient,
        *,
        event_source: str = "",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._settings = settings
        self._chat = chat_client
        self._events = event_client
        self._event_source = event_source
        self._clock = clock

    def create_modal(self, trigger_id: str) -> Modal:
        modal_config = self._settings.modal
        return build_modal(modal_config.title, trigger_id, modal_config.inputs)

    def handle_command(self, form: Mapping[str, str]) -> None:
        trigger_id = (form.get("trigger_id") or "").strip()
        log = structlog.get_logger().bind(command=form.get("command"), trigger_id=trigger_id)
        log.info("slash_command_received")

        if not trigger_id:
            raise bad_request("Missing trigger_id")

        modal = self.create_modal(trigger_id)
        modal.send(self._chat)
        log.info("modal_opened", block_count=len(modal.blocks))

    def handle_modal_submission(self, form: Mapping[str, str]) -> Dict[str, str]:
        log = structlog.get_logger()
        log.debug("modal_submission_received")

        submission = ModalSubmission.parse(form.get("payload"))
        fields = submission.parse_all_fields()
        username = submission.username
        log = log.bind(username=username, fields=sorted(fields))

        message = render_incident_message(
            self._settings.slack_config.message_format, fields, username
        )

        channel_id = self._settings.slack_config.channel_id
        if channel_id:
            self._post_message(channel_id, message)
            log.info("incident_message_posted", channel=channel_id)

        event = self.build_event(message, fields)
        result = self._create_event(event)
        log.info(
            "incident_event_created",
            status=result.get("status"),
            url=(result.get("event") or {}).get("url"),
        )
        return dict(CLEAR_RESPONSE)

    def build_event(self, message: str, fields: Mapping[str, str]) -> MonitoringEvent:
        emitted_at = self._clock().isoformat()
        enriched = f"{message}\nEvent emitted by {self._event_source} at {emitted_at}"
        return MonitoringEvent(
            title=EVENT_TITLE,
            text=TEXT_BLOCK_START + enriched + TEXT_BLOCK_END,
            tags=self.build_tags(fields),
            priority="normal",
            alert_type="error",
            source_type_name="slack",
            aggregation_key=self.aggregation_key,
        )

    def build_tags(self, fields: Mapping[str, str]) -> list[str]:
        metadata = self._settings.metadata
        return [
            f"env:{metadata.environment}",
            f"team:{metadata.team}",
            f"service:{metadata.service}",
            f"severity:{fields.get('input_severity', '')}",
            f"domain:{fields.get('input_domains_affected', '')}",
        ]

    @property
    def aggregation_key(self) -> str:
        metadata = self._settings.metadata
        return f"{metadata.environment}-{metadata.service}"

    def _post_message(self, channel: str, text: str) -> None:
        try:
            self._chat.post_message(channel=channel, text=text)
        except (SlackClientError, OSError) as exc:
            raise internal_error("Failed to send message to Slack", exc) from exc

    def _create_event(self, event: MonitoringEvent) -> Mapping[str, Any]:
        try:
            result = self._events.create_event(event)
        except Exception as exc:
            raise internal_error("Failed to create Datadog event", exc) from exc

        if not isinstance(result, Mapping):
            cause = TypeError(f"unexpected response type: {type(result).__name__}")
            raise internal_error("Failed to create Datadog event", cause)

        status = result.get("status")
        if status != "ok":
            cause = RuntimeError(f"status not expected: {status}")
            raise internal_error("Failed to create Datadog event", cause)
        return result


def register_routes(flask_app: Flask, handler: IncidentHandler, settings: AppSettings) -> None:
    """Expose the handler on the two configured Slack endpoints."""

    endpoints = settings.endpoints

    @flask_app.route(endpoints.slack_command, methods=["POST"], endpoint=COMMAND_ENDPOINT)
    def slack_command():
        handler.handle_command(request.form)
        return "", 200

    @flask_app.route(endpoints.slack_modal_parser, methods=["POST"], endpoint=MODAL_ENDPOINT)
    def slack_modal_parser():
        return jsonify(handler.handle_modal_submission(request.form)), 200
