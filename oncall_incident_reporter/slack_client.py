"""Thin wrapper utilities around the Slack WebClient."""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from slack_sdk import WebClient


class ChatClient(Protocol):
    """Chat platform calls used by the incident handler."""

    def open_view(self, *, trigger_id: str, view: Mapping[str, Any]) -> Mapping[str, Any]:
        ...

    def post_message(self, *, channel: str, text: str) -> Mapping[str, Any]:
        ...


class SlackClient:
    """Encapsulate Slack WebClient interactions for easier testing."""

    def __init__(self, *, token: str | None = None, client: WebClient | None = None) -> None:
        if client is None and token is None:
            raise ValueError("Either an instantiated client or a bot token must be provided.")

        self._client = client or WebClient(token=token)

    @property
    def client(self) -> WebClient:
        """Expose the underlying WebClient for advanced use cases."""

        return self._client

    def open_view(self, *, trigger_id: str, view: Mapping[str, Any]) -> Mapping[str, Any]:
        """Open a modal view using a short-lived trigger id."""

        return self._client.views_open(trigger_id=trigger_id, view=dict(view))

    def post_message(self, *, channel: str, text: str) -> Mapping[str, Any]:
        """Post a plain text message to a Slack channel."""

        return self._client.chat_postMessage(channel=channel, text=text)
