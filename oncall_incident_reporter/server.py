"""Standalone HTTP serving for local mode."""

from __future__ import annotations

import signal
import threading
import time
from typing import Iterable, Type

import structlog
from werkzeug.serving import BaseWSGIServer, WSGIRequestHandler, make_server

logger = structlog.get_logger(__name__)

_SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _socket_timeout(seconds: float | None) -> float | None:
    if not seconds or seconds <= 0:
        return None
    return seconds


class ActiveRequests:
    """Count of WSGI requests currently being processed."""

    def __init__(self) -> None:
        self._condition = threading.Condition()
        self._count = 0

    @property
    def count(self) -> int:
        with self._condition:
            return self._count

    def __enter__(self) -> ActiveRequests:
        with self._condition:
            self._count += 1
        return self

    def __exit__(self, *_exc_info) -> None:
        with self._condition:
            self._count -= 1
            if self._count == 0:
                self._condition.notify_all()

    def wait_idle(self, timeout: float) -> bool:
        """Block until no request is running; False if *timeout* passed first."""

        with self._condition:
            return self._condition.wait_for(lambda: self._count == 0, timeout=max(timeout, 0))


def build_request_handler(
    active: ActiveRequests,
    *,
    read_timeout: float | None = None,
    write_timeout: float | None = None,
    idle_timeout: float | None = None,
) -> Type[WSGIRequestHandler]:
    """Return a request handler class applying socket timeouts per phase.

    The read timeout covers the request line and headers, the write timeout
    covers running the app and sending the response, and the idle timeout
    covers waiting for the next request on a kept-alive connection.
    """

    class LocalRequestHandler(WSGIRequestHandler):
        timeout = _socket_timeout(read_timeout)

        def run_wsgi(self) -> None:
            self.connection.settimeout(_socket_timeout(write_timeout))
            with active:
                super().run_wsgi()

        def handle_one_request(self) -> None:
            super().handle_one_request()
            if not self.close_connection:
                self.connection.settimeout(_socket_timeout(idle_timeout))

    return LocalRequestHandler


class LocalServer:
    """Threaded WSGI server that drains in-flight requests on shutdown."""

    def __init__(
        self,
        wsgi_app,
        *,
        host: str = "0.0.0.0",
        port: int = 8080,
        shutdown_timeout: float = 10.0,
        read_timeout: float | None = 5.0,
        write_timeout: float | None = 10.0,
        idle_timeout: float | None = 120.0,
    ) -> None:
        self.host = host
        self.port = port
        self.shutdown_timeout = shutdown_timeout
        self._active = ActiveRequests()
        handler = build_request_handler(
            self._active,
            read_timeout=read_timeout,
            write_timeout=write_timeout,
            idle_timeout=idle_timeout,
        )
        self._server: BaseWSGIServer = make_server(
            host, port, wsgi_app, threaded=True, request_handler=handler
        )
        self._thread = threading.Thread(target=self._serve, name="local-server", daemon=True)
        self._stopped = threading.Event()
        self._error: BaseException | None = None

    @property
    def stopped(self) -> threading.Event:
        return self._stopped

    @property
    def server_port(self) -> int:
        return self._server.server_port

    @property
    def active_requests(self) -> int:
        return self._active.count

    def _serve(self) -> None:
        try:
            self._server.serve_forever()
        except BaseException as exc:  # noqa: BLE001 - re-raised from wait()
            self._error = exc
        finally:
            self._stopped.set()

    def start(self) -> None:
        logger.info("local_server_starting", host=self.host, port=self.server_port)
        self._thread.start()

    def shutdown(self) -> bool:
        """Stop accepting, wait for running requests, then close the listener.

        Returns False when requests were still running at the deadline.
        """

        deadline = time.monotonic() + self.shutdown_timeout

        def remaining() -> float:
            return max(deadline - time.monotonic(), 0)

        stopper = threading.Thread(target=self._server.shutdown, daemon=True)
        stopper.start()
        stopper.join(remaining())
        self._thread.join(remaining())

        drained = self._active.wait_idle(remaining()) and not self._thread.is_alive()
        if not drained:
            logger.warning("local_server_drain_timeout", active_requests=self._active.count)
        self._server.server_close()
        return drained

    def wait(self) -> None:
        """Block until the server stops, re-raising any listener error."""

        self._stopped.wait()
        if self._error is not None:
            raise RuntimeError("server error") from self._error


def serve(server: LocalServer, signals: Iterable[int] = _SHUTDOWN_SIGNALS) -> None:
    """Run *server* until a shutdown signal arrives or the listener fails."""

    requested = threading.Event()

    def _request_shutdown(signum, _frame):
        logger.info("local_server_shutdown_requested", signal=signal.Signals(signum).name)
        requested.set()

    for signum in signals:
        signal.signal(signum, _request_shutdown)

    server.start()
    while not requested.is_set():
        if server.stopped.wait(0.5):
            server.wait()
            return

    if not server.shutdown():
        raise RuntimeError(
            f"graceful shutdown failed: requests still running after {server.shutdown_timeout}s"
        )
    logger.info("local_server_stopped")
