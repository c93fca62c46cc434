"""Local HTTP server that receives the authorization redirect."""

from __future__ import annotations

import dataclasses
import logging
import queue
import socket
import threading
import time
from concurrent.futures import CancelledError
from dataclasses import dataclass
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable, Optional
from urllib.parse import parse_qs, urlsplit

import jinja2

DEFAULT_TIMEOUT = 300.0
READ_TIMEOUT = 10.0
_POLL_INTERVAL = 0.05

_SUCCESS_PAGE = (
    "<!DOCTYPE html><html><body><h1>Authorization complete</h1>"
    "<p>You can close this window and return to the terminal.</p></body></html>"
)
_ERROR_PAGE = (
    "<!DOCTYPE html><html><body><h1>Authorization failed</h1>"
    "<p>{{ error_msg }} - {{ error_description }}</p></body></html>"
)


@dataclass
class CallbackResponse:
    """Parameters delivered to the redirect URI."""

    code: str = ""
    state: str = ""
    error_msg: str = ""
    error_description: str = ""


class CallbackTimeoutError(TimeoutError):
    """Raised when no callback arrives in time."""


def _tcp_listen(address: str) -> socket.socket:
    host, _, port = address.rpartition(":")
    host = host.strip("[]")
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    return socket.create_server((host, int(port or 0)), family=family)


class CallbackServer:
    """Serves the redirect URI and hands over the first callback received."""

    def __init__(
        self,
        callback_uri: str,
        logger: Optional[logging.Logger] = None,
        *,
        success_template: Optional[str] = None,
        error_template: Optional[str] = None,
    ) -> None:
        try:
            parts = urlsplit(callback_uri)
            parts.port  # noqa: B018 - validates the port
        except ValueError as exc:
            raise ValueError(f"invalid callback URI: {exc}") from exc

        env = jinja2.Environment(autoescape=True, undefined=jinja2.StrictUndefined)
        try:
            self.success_template = env.from_string(success_template or _SUCCESS_PAGE)
        except jinja2.TemplateSyntaxError as exc:
            raise ValueError(f"failed to parse success template: {exc}") from exc
        try:
            self.error_template = env.from_string(error_template or _ERROR_PAGE)
        except jinja2.TemplateSyntaxError as exc:
            raise ValueError(f"failed to parse error template: {exc}") from exc

        self.host = parts.netloc
        self.path = parts.path or "/"
        self.logger = logger or logging.getLogger(__name__)
        self.responses: queue.Queue[CallbackResponse] = queue.Queue(maxsize=1)
        self.listen: Callable[[str], socket.socket] = _tcp_listen

    def start(self, stop: threading.Event) -> None:
        """Serve callbacks until ``stop`` is set, then shut down."""
        try:
            listener = self.listen(self.host)
        except (OSError, ValueError) as exc:
            raise OSError(f"failed to listen on {self.host}: {exc}") from exc

        server = ThreadingHTTPServer(
            listener.getsockname()[:2], self._handler_class(), bind_and_activate=False
        )
        server.socket.close()
        server.socket = listener
        server.daemon_threads = True

        thread = threading.Thread(
            target=server.serve_forever,
            kwargs={"poll_interval": _POLL_INTERVAL},
            name="callback-server",
            daemon=True,
        )
        thread.start()
        try:
            stop.wait()
        finally:
            server.shutdown()
            thread.join()
            server.server_close()

    def wait_for_callback(
        self,
        cancel: Optional[threading.Event] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> CallbackResponse:
        """Return the next callback, unless cancelled or timed out first."""
        deadline = time.monotonic() + timeout
        while True:
            try:
                return self.responses.get_nowait()
            except queue.Empty:
                pass
            if cancel is not None and cancel.is_set():
                raise CancelledError("waiting for callback was cancelled")
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise CallbackTimeoutError("timeout waiting for callback")
            try:
                return self.responses.get(timeout=min(remaining, _POLL_INTERVAL))
            except queue.Empty:
                continue

    def handle_callback(self, query: str) -> tuple[int, str]:
        """Process a callback query string; return the HTTP status and body."""
        params = parse_qs(query, keep_blank_values=True)

        def first(name: str) -> str:
            return params.get(name, [""])[0]

        response = CallbackResponse(
            code=first("code"),
            state=first("state"),
            error_msg=first("error"),
            error_description=first("error_description"),
        )
        if response.code:
            template, status = self.success_template, HTTPStatus.OK
        else:
            template, status = self.error_template, HTTPStatus.BAD_REQUEST

        try:
            body = template.render(**dataclasses.asdict(response))
        except jinja2.TemplateError as exc:
            self.logger.error("failed to execute template: %s", exc)
            return HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error\n"

        try:
            self.responses.put_nowait(response)
        except queue.Full:
            self.logger.error("callback response channel is full, dropping response")
        return status, body

    def _handler_class(self) -> type[BaseHTTPRequestHandler]:
        callback = self

        class _Handler(BaseHTTPRequestHandler):
            timeout = READ_TIMEOUT

            def do_GET(self) -> None:
                target = urlsplit(self.path)
                if target.path != callback.path:
                    self.send_error(HTTPStatus.NOT_FOUND)
                    return
                status, body = callback.handle_callback(target.query)
                data = body.encode("utf-8")
                try:
                    self.send_response(status)
                    self.send_header("Content-Type", "text/html; charset=utf-8")
                    self.send_header("Content-Length", str(len(data)))
                    self.end_headers()
                    self.wfile.write(data)
                except OSError as exc:
                    callback.logger.error("failed to write response: %s", exc)

            def log_message(self, format: str, *args: object) -> None:
                callback.logger.debug("callback server: " + format, *args)

        return _Handler