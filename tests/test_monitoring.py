"""Tests for the Datadog event publisher."""

from types import SimpleNamespace

from oncall_incident_reporter.monitoring import DatadogEventClient, MonitoringEvent, to_event_request


def _event(**overrides):
    data = {
        "title": "New on-call alert from slack slash command",
        "text": "%%% \nSeverity: High\n %%%",
        "tags": ["env:staging", "severity:High"],
        "aggregation_key": "staging-payments-api",
    }
    data.update(overrides)
    return MonitoringEvent(**data)


def test_to_event_request_maps_all_fields():
    request = to_event_request(_event())

    assert request.title == "New on-call alert from slack slash command"
    assert request.text == "%%% \nSeverity: High\n %%%"
    assert request.tags == ["env:staging", "severity:High"]
    assert request.priority.value == "normal"
    assert request.alert_type.value == "error"
    assert request.source_type_name == "slack"
    assert request.aggregation_key == "staging-payments-api"


class DummyEventsApi:
    def __init__(self):
        self.bodies = []

    def create_event(self, body):
        self.bodies.append(body)
        return SimpleNamespace(to_dict=lambda: {"status": "ok", "event": {"id": 1}})


def test_create_event_passes_request_to_api():
    api = DummyEventsApi()
    client = DatadogEventClient(api=api)

    result = client.create_event(_event())

    assert result == {"status": "ok", "event": {"id": 1}}
    assert api.bodies[0].title == "New on-call alert from slack slash command"
