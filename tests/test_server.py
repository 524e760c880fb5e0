"""Tests for the local standalone server."""

import socket
import threading
import time
import urllib.request

from flask import Flask

from oncall_incident_reporter.server import ActiveRequests, LocalServer, build_request_handler


def _app(slow_seconds=0.0, entered=None):
    flask_app = Flask(__name__)

    @flask_app.route("/ping")
    def ping():
        return "pong"

    @flask_app.route("/slow")
    def slow():
        if entered is not None:
            entered.set()
        time.sleep(slow_seconds)
        return "done"

    return flask_app


def _get(server, path, results):
    with urllib.request.urlopen(f"http://127.0.0.1:{server.server_port}{path}", timeout=10) as response:
        results.append(response.read())


def test_local_server_serves_and_shuts_down():
    server = LocalServer(_app(), host="127.0.0.1", port=0, shutdown_timeout=5)
    server.start()
    try:
        with urllib.request.urlopen(f"http://127.0.0.1:{server.server_port}/ping", timeout=5) as response:
            assert response.read() == b"pong"
    finally:
        assert server.shutdown() is True

    assert server.stopped.is_set()


def test_shutdown_waits_for_in_flight_request():
    entered = threading.Event()
    server = LocalServer(_app(slow_seconds=1.0, entered=entered), host="127.0.0.1", port=0, shutdown_timeout=5)
    server.start()
    results = []
    client = threading.Thread(target=_get, args=(server, "/slow", results))
    client.start()
    assert entered.wait(5)

    drained = server.shutdown()

    assert drained is True
    assert server.active_requests == 0
    client.join(5)
    assert results == [b"done"]


def test_shutdown_reports_requests_still_running_at_deadline():
    entered = threading.Event()
    server = LocalServer(_app(slow_seconds=1.5, entered=entered), host="127.0.0.1", port=0, shutdown_timeout=0.2)
    server.start()
    client = threading.Thread(target=_get, args=(server, "/slow", []), daemon=True)
    client.start()
    assert entered.wait(5)

    assert server.shutdown() is False
    client.join(5)


def test_read_timeout_closes_silent_connection():
    server = LocalServer(_app(), host="127.0.0.1", port=0, shutdown_timeout=5, read_timeout=0.2)
    server.start()
    try:
        with socket.create_connection(("127.0.0.1", server.server_port), timeout=5) as conn:
            started = time.monotonic()
            assert conn.recv(1024) == b""
            assert time.monotonic() - started < 4
    finally:
        server.shutdown()


def test_request_handler_applies_configured_timeouts():
    handler = build_request_handler(ActiveRequests(), read_timeout=5.0, write_timeout=10.0, idle_timeout=120.0)
    disabled = build_request_handler(ActiveRequests(), read_timeout=0)

    assert handler.timeout == 5.0
    assert disabled.timeout is None


def test_active_requests_wait_idle():
    active = ActiveRequests()

    with active:
        assert active.count == 1
        assert active.wait_idle(0.05) is False

    assert active.count == 0
    assert active.wait_idle(0) is True


def test_wait_returns_after_shutdown():
    server = LocalServer(_app(), host="127.0.0.1", port=0, shutdown_timeout=5)
    server.start()
    threading.Timer(0.1, server.shutdown).start()

    server.wait()

    assert server.stopped.is_set()
