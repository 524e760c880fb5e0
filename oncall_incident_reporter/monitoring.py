"""Datadog event publishing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Protocol

from datadog_api_client import ApiClient, Configuration
from datadog_api_client.v1.api.events_api import EventsApi
from datadog_api_client.v1.model.event_alert_type import EventAlertType
from datadog_api_client.v1.model.event_create_request import EventCreateRequest
from datadog_api_client.v1.model.event_priority import EventPriority


@dataclass(frozen=True)
class MonitoringEvent:
    title: str
    text: str
    tags: List[str] = field(default_factory=list)
    priority: str = "normal"
    alert_type: str = "error"
    source_type_name: str = "slack"
    aggregation_key: str | None = None


class EventClient(Protocol):
    """Monitoring platform calls used by the incident handler."""

    def create_event(self, event: MonitoringEvent) -> Mapping[str, Any]:
        ...


def to_event_request(event: MonitoringEvent) -> EventCreateRequest:
    """Translate a :class:`MonitoringEvent` into the Datadog API model."""

    kwargs: dict[str, Any] = {
        "title": event.title,
        "text": event.text,
        "tags": list(event.tags),
        "priority": EventPriority(event.priority),
        "alert_type": EventAlertType(event.alert_type),
        "source_type_name": event.source_type_name,
    }
    if event.aggregation_key:
        kwargs["aggregation_key"] = event.aggregation_key
    return EventCreateRequest(**kwargs)


class DatadogEventClient:
    """Pass-through to the Datadog v1 Events API.

    Credentials and site come from ``DD_API_KEY``, ``DD_APP_KEY`` and
    ``DD_SITE`` through :class:`datadog_api_client.Configuration`.
    """

    def __init__(self, *, configuration: Configuration | None = None, api: EventsApi | None = None) -> None:
        self._configuration = configuration or Configuration()
        self._api = api

    def create_event(self, event: MonitoringEvent) -> Mapping[str, Any]:
        body = to_event_request(event)
        if self._api is not None:
            return self._api.create_event(body=body).to_dict()

        with ApiClient(self._configuration) as api_client:
            response = EventsApi(api_client).create_event(body=body)
        return response.to_dict()
