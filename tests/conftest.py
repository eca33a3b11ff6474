"""Pytest configuration and shared fixtures."""

import socket
import threading
from collections.abc import Callable, Iterator
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from packages.core.monitor.types import MonitorConfig

# ============================================================================
# Monitor configuration
# ============================================================================


@pytest.fixture
def make_config() -> Callable[..., MonitorConfig]:
    """Build a MonitorConfig with test-friendly defaults (no timer noise, fast reload check)."""

    def make(**overrides) -> MonitorConfig:
        values = {
            "port": 3000,
            "poll_interval_ms": 60_000,
            "failure_threshold": 3,
            "reload_check_delay_ms": 50,
            "ownership_check_enabled": False,
        }
        values.update(overrides)
        return MonitorConfig(**values)

    return make


# ============================================================================
# Loopback HTTP servers for probe tests
# ============================================================================


def _handler_for(status: int) -> type[BaseHTTPRequestHandler]:
    class Handler(BaseHTTPRequestHandler):
        seen: list[tuple[str, str]] = []

        def do_HEAD(self) -> None:
            Handler.seen.append((self.command, self.path))
            self.send_response(status)
            self.send_header("Content-Length", "0")
            self.end_headers()

        def log_message(self, format: str, *args) -> None:
            pass

    return Handler


@pytest.fixture
def http_server() -> Iterator[Callable[[int], tuple[int, type]]]:
    """Start loopback servers answering HEAD with a fixed status. Yields a factory."""
    servers: list[ThreadingHTTPServer] = []

    def start(status: int = 200) -> tuple[int, type]:
        handler = _handler_for(status)
        server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
        threading.Thread(target=server.serve_forever, daemon=True).start()
        servers.append(server)
        return server.server_address[1], handler

    yield start

    for server in servers:
        server.shutdown()
        server.server_close()


@pytest.fixture
def closed_port() -> int:
    """A loopback port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def silent_port() -> Iterator[int]:
    """A loopback port that accepts connections but never answers."""
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    s.listen(8)
    yield s.getsockname()[1]
    s.close()


@pytest.fixture
def dripping_port() -> Iterator[int]:
    """A loopback port that starts a response, then sends one header byte every 100ms forever."""
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.bind(("127.0.0.1", 0))
    srv.listen(8)
    stop = threading.Event()

    def serve() -> None:
        try:
            conn, _ = srv.accept()
        except OSError:
            return
        with conn:
            try:
                conn.recv(4096)
                conn.sendall(b"HTTP/1.1 200 OK\r\nX-Pad: ")
                while not stop.wait(0.1):
                    conn.sendall(b"a")
            except OSError:
                # client gave up and closed the socket
                return

    threading.Thread(target=serve, daemon=True).start()
    yield srv.getsockname()[1]
    stop.set()
    srv.close()
