"""Tests for the application factory and entry points."""

import yaml

import app as app_module
from conftest import settings_data


def test_healthz_is_not_signature_protected(settings, chat_client, event_client):
    flask_app = app_module.create_app(settings, chat_client=chat_client, event_client=event_client)

    response = flask_app.test_client().get("/healthz")

    assert response.status_code == 200
    body = response.get_json()
    assert body["ok"] is True
    assert body["service"] == "payments-api"
    assert body["environment"] == "staging"
    assert body["version"]


def test_create_app_registers_configured_routes(settings, chat_client, event_client):
    flask_app = app_module.create_app(settings, chat_client=chat_client, event_client=event_client)

    rules = {rule.rule for rule in flask_app.url_map.iter_rules()}

    assert {"/slack/command", "/slack/modal", "/healthz"} <= rules


def test_create_app_loads_settings_from_config_file(monkeypatch, tmp_path, chat_client, event_client):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(settings_data()), encoding="utf-8")
    monkeypatch.setenv("CONFIG_FILE", str(path))

    flask_app = app_module.create_app(chat_client=chat_client, event_client=event_client)

    assert flask_app.config["SETTINGS"].endpoints.slack_command == "/slack/command"


def test_event_source_depends_on_local_mode(monkeypatch):
    monkeypatch.setenv("AWS_LAMBDA_FUNCTION_NAME", "incident-reporter")
    lambda_settings = app_module.AppSettings.model_validate(settings_data())
    local_data = settings_data()
    local_data["local"] = {"enabled": True}
    local_settings = app_module.AppSettings.model_validate(local_data)

    assert app_module._event_source(lambda_settings) == "incident-reporter"
    assert app_module._event_source(local_settings) == "local_execution"


def test_main_fails_on_invalid_configuration(monkeypatch, tmp_path):
    monkeypatch.setenv("CONFIG_FILE", str(tmp_path / "missing.yaml"))

    assert app_module.main() == 1


def test_main_requires_local_mode(monkeypatch, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(settings_data()), encoding="utf-8")
    monkeypatch.setenv("CONFIG_FILE", str(path))
    monkeypatch.setenv("LOCAL", "false")

    assert app_module.main() == 1


def test_lambda_handler_builds_adapter_once(monkeypatch):
    built = []

    def fake_adapter(event, context):
        return {"statusCode": 204, "event": event}

    def fake_create():
        built.append(True)
        return fake_adapter

    monkeypatch.setattr(app_module, "_LAMBDA_ADAPTER", None)
    monkeypatch.setattr(app_module, "create_lambda_adapter", fake_create)

    first = app_module.lambda_handler({"resource": "/x"}, None)
    second = app_module.lambda_handler({"resource": "/y"}, None)

    assert first["statusCode"] == 204
    assert second["event"] == {"resource": "/y"}
    assert built == [True]
