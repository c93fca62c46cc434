import logging
import socket
import threading
import urllib.error
import urllib.request
from concurrent.futures import CancelledError

import pytest

from oidcflow.callback import CallbackResponse, CallbackServer, CallbackTimeoutError

URI = "http://localhost:8080/callback"
SUCCESS = "<p>Success: {{ code }}</p>"
ERROR = "<p>Error: {{ error_msg }} - {{ error_description }}</p>"


def _serve(server):
    listener = socket.create_server(("127.0.0.1", 0))
    addresses = []

    def listen(address):
        addresses.append(address)
        return listener

    server.listen = listen
    stop = threading.Event()
    errors = []

    def run():
        try:
            server.start(stop)
        except Exception as exc:
            errors.append(exc)

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return listener, addresses, stop, thread, errors


def test_new_callback_server():
    server = CallbackServer(URI)
    assert server.host == "localhost:8080"
    assert server.path == "/callback"
    assert server.responses.empty()
    assert callable(server.listen)


def test_invalid_callback_uri():
    with pytest.raises(ValueError, match="invalid callback URI"):
        CallbackServer("http://[::1")


def test_invalid_template():
    with pytest.raises(ValueError, match="failed to parse success template"):
        CallbackServer(URI, success_template="{% if %}")


def test_start_serves_and_stops():
    server = CallbackServer(URI)
    listener, addresses, stop, thread, errors = _serve(server)
    port = listener.getsockname()[1]

    with urllib.request.urlopen(
        f"http://127.0.0.1:{port}/callback?code=abc123&state=xyz", timeout=5
    ) as reply:
        assert reply.status == 200
        assert "Authorization complete" in reply.read().decode()

    assert server.wait_for_callback(timeout=5) == CallbackResponse(code="abc123", state="xyz")

    stop.set()
    thread.join(5)
    assert not thread.is_alive()
    assert errors == []
    assert addresses == ["localhost:8080"]
    assert listener.fileno() == -1


def test_start_error_and_unknown_path_responses():
    server = CallbackServer(URI)
    listener, _addresses, stop, thread, _errors = _serve(server)
    port = listener.getsockname()[1]
    try:
        with pytest.raises(urllib.error.HTTPError) as bad:
            urllib.request.urlopen(
                f"http://127.0.0.1:{port}/callback?error=access_denied", timeout=5
            )
        assert bad.value.code == 400
        with pytest.raises(urllib.error.HTTPError) as missing:
            urllib.request.urlopen(f"http://127.0.0.1:{port}/other", timeout=5)
        assert missing.value.code == 404
    finally:
        stop.set()
        thread.join(5)
    assert server.responses.get_nowait().error_msg == "access_denied"


def test_start_returns_when_already_stopped():
    server = CallbackServer(URI)
    listener = socket.create_server(("127.0.0.1", 0))
    server.listen = lambda _address: listener
    stop = threading.Event()
    stop.set()
    assert server.start(stop) is None
    assert listener.fileno() == -1


def test_start_listen_error():
    server = CallbackServer(URI)

    def listen(_address):
        raise OSError("port unavailable")

    server.listen = listen
    with pytest.raises(OSError, match="port unavailable"):
        server.start(threading.Event())


def test_wait_for_callback_returns_response():
    server = CallbackServer(URI)
    response = CallbackResponse(code="abc123")
    threading.Thread(target=server.responses.put, args=(response,)).start()
    assert server.wait_for_callback(timeout=5) is response


def test_wait_for_callback_cancelled():
    server = CallbackServer(URI)
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(CancelledError):
        server.wait_for_callback(cancel)


def test_wait_for_callback_timeout():
    server = CallbackServer(URI)
    with pytest.raises(CallbackTimeoutError, match="timeout waiting for callback"):
        server.wait_for_callback(timeout=0.05)


@pytest.mark.parametrize(
    "query, status, body, expected",
    [
        ("code=abc123", 200, "<p>Success: abc123</p>", CallbackResponse(code="abc123")),
        (
            "code=abc123&state=test-state-123",
            200,
            "<p>Success: abc123</p>",
            CallbackResponse(code="abc123", state="test-state-123"),
        ),
        (
            "error=invalid_grant&error_description=Bad+request",
            400,
            "<p>Error: invalid_grant - Bad request</p>",
            CallbackResponse(error_msg="invalid_grant", error_description="Bad request"),
        ),
    ],
)
def test_handle_callback(query, status, body, expected):
    server = CallbackServer(URI, success_template=SUCCESS, error_template=ERROR)
    assert server.handle_callback(query) == (status, body)
    assert server.responses.get_nowait() == expected


def test_handle_callback_template_error(caplog):
    server = CallbackServer(
        URI,
        logging.getLogger("test.callback"),
        success_template="<p>Success: {{ invalid_field }}</p>",
        error_template="<p>Error: {{ error_msg }}</p>",
    )
    with caplog.at_level(logging.ERROR):
        result = server.handle_callback("code=abc123")
    assert result == (500, "Internal Server Error\n")
    assert "failed to execute template" in caplog.text
    assert server.responses.empty()


def test_handle_callback_channel_full(caplog):
    server = CallbackServer(
        URI,
        logging.getLogger("test.callback"),
        success_template=SUCCESS,
        error_template="<p>Error: {{ error_msg }}</p>",
    )
    server.responses.put(CallbackResponse(code="dummy"))
    with caplog.at_level(logging.ERROR):
        result = server.handle_callback("code=abc123")
    assert result == (200, "<p>Success: abc123</p>")
    assert "callback response channel is full" in caplog.text
    assert server.responses.get_nowait().code == "dummy"


def test_default_error_page_escapes_input():
    server = CallbackServer(URI)
    status, body = server.handle_callback("error=%3Cscript%3E")
    assert status == 400
    assert "&lt;script&gt;" in body
    assert "<script>" not in body