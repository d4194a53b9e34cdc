"""
Pytest fixtures and configuration.

Fixtures defined here are available to all tests automatically.
"""

import socket
import threading
from dataclasses import dataclass, field
from typing import Dict, Generator, List, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from twotter import TwotterServer, ServerConfig
from twotter.config import DEFAULT_ASSETS_DIR
from twotter.dispatcher import Dispatcher
from twotter.handlers import StaticFileHandler
from twotter.http import ResponseWriter, RequestParser
from twotter.session import Session
from twotter.storage import SQLitePortal
from twotter.templates import TemplateRenderer


class BufferConnection:
    """
    In-memory stand-in for Connection.

    Serves the given lines from read_line() (then None, like a closed
    peer) and collects everything sent.
    """

    def __init__(self, lines: Optional[List[str]] = None):
        self._lines = list(lines or [])
        self.sent = bytearray()
        self.closed = False
        self.id = "buffer"
        self.client_ip = "127.0.0.1"

    def read_line(self) -> Optional[str]:
        if not self._lines:
            return None
        return self._lines.pop(0)

    def send(self, data: bytes) -> None:
        self.sent += data

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


@dataclass
class ParsedResponse:
    """A response split back into its parts."""

    status: int
    reason: str
    headers: Dict[str, str] = field(default_factory=dict)
    header_names: List[str] = field(default_factory=list)
    body: bytes = b""

    @property
    def cookie(self) -> Optional[str]:
        value = self.headers.get("Set-Cookie")
        if value is None:
            return None
        return value.partition("=")[2]


def parse_response(raw: bytes) -> ParsedResponse:
    """Split raw response bytes into status, headers and body."""
    head, _, body = bytes(raw).partition(b"\r\n\r\n")
    lines = head.decode("utf-8").split("\r\n")
    _, code, reason = lines[0].split(" ", 2)

    response = ParsedResponse(status=int(code), reason=reason, body=body)
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        response.headers[name] = value
        response.header_names.append(name)
    return response


@pytest.fixture
def assets_dir() -> Path:
    """The bundled templates and static files."""
    return Path(DEFAULT_ASSETS_DIR)


@pytest.fixture
def portal() -> Generator[SQLitePortal, None, None]:
    """A fresh in-memory portal."""
    p = SQLitePortal(":memory:")
    yield p
    p.close()


@pytest.fixture
def renderer(assets_dir: Path) -> TemplateRenderer:
    return TemplateRenderer(assets_dir)


@pytest.fixture
def dispatcher(portal: SQLitePortal, renderer: TemplateRenderer, assets_dir: Path) -> Dispatcher:
    return Dispatcher(portal, renderer, StaticFileHandler(assets_dir))


@pytest.fixture
def make_account(portal: SQLitePortal):
    """
    Create an account and return its session.

        alice = make_account("alice")
    """
    def _make(username: str, password: str = "secret", **fields) -> Session:
        assert portal.create_account(
            username,
            fields.get("description", f"I am {username}"),
            fields.get("email", f"{username}@example.com"),
            fields.get("picture", "/default.png"),
            password,
            fields.get("display_name", username.title()),
        )
        return Session(token=portal.session_token_for(username), username=username)

    return _make


@pytest.fixture
def request_as(dispatcher: Dispatcher):
    """
    Dispatch a target as the given session.

        response, session = request_as("/home", alice)
    """
    parser = RequestParser()

    def _request(target: str, session: Optional[Session] = None):
        conn = BufferConnection()
        writer = ResponseWriter(conn)
        request = parser.parse_target(target)
        new_session = dispatcher.dispatch(request, session or Session.anonymous(), writer)
        return parse_response(conn.sent), new_session

    return _request


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: TwotterServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.port

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_listening(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def get(self, target: str, cookie: Optional[str] = None) -> ParsedResponse:
        """Send one GET and read the response until the server closes."""
        raw = f"GET {target} HTTP/1.1\r\nHost: localhost\r\n"
        if cookie is not None:
            raw += f"Cookie: session={cookie}\r\n"
        raw += "\r\n"
        return parse_response(self.send_raw(raw.encode()))

    def send_raw(self, data: bytes) -> bytes:
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as s:
            s.sendall(data)
            chunks = []
            while True:
                chunk = s.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)


@pytest.fixture
def test_server(free_port: int, portal: SQLitePortal) -> Generator[TestServer, None, None]:
    """A running server on a free port, sharing the in-memory portal."""
    server = TwotterServer(
        ServerConfig(
            host="127.0.0.1",
            port_range_start=free_port,
            port_range_end=free_port + 50,
            log_level="WARNING",
        ),
        portal=portal,
    )

    test_srv = TestServer(server)
    test_srv.start()

    yield test_srv

    test_srv.stop()
