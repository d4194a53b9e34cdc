"""
=============================================================================
HTTP RESPONSE WRITER
=============================================================================

Frames responses and writes them to the Connection. Two shapes exist:

    ┌─ NORMAL (body known up front) ──────────────────────────────────────┐
    │  HTTP/1.1 200 OK\r\n                                                 │
    │  Content-Length: 1234\r\n                                            │
    │  Content-Type: text/html\r\n                                         │
    │  Set-Cookie: session=qwertyuiopasdfghjklz\r\n   ← optional           │
    │  \r\n                                                                │
    │  <html>...                                                           │
    └──────────────────────────────────────────────────────────────────────┘

    ┌─ HEADER-ONLY (body streamed afterwards) ────────────────────────────┐
    │  HTTP/1.1 200 OK\r\n                                                 │
    │  Connection: close\r\n              ← length unknown, so the end of  │
    │  Content-Type: image/png\r\n          the body is the end of stream  │
    │  Set-Cookie: session=...\r\n        ← optional                       │
    │  \r\n                                                                │
    │  ...chunks written with write()...                                   │
    └──────────────────────────────────────────────────────────────────────┘

The Set-Cookie header is sent exactly when the session value has just
been created (signup, login) or cleared (logout).

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from ..core.connection import Connection
from .status_codes import HTTPStatus


SESSION_COOKIE = "session"

INVALID_REQUEST_BODY = b"<html><body>Error - invalid Request</body></html>"
NOT_FOUND_BODY = b"<html><body>404 - Not Found</body></html>"


@dataclass
class HTTPResponse:
    """
    Represents the head (and optionally the body) of an HTTP response.

    Headers keep insertion order, which is the order they go out on the
    wire.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Example: "HTTP/1.1 200 OK"
        """
        return f"{self.version} {self.status.value} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a response header. Returns self for chaining."""
        self.headers[name] = value
        return self

    def set_cookie(self, token: Optional[str]) -> "HTTPResponse":
        """Add the session cookie header when a token is given."""
        if token is not None:
            self.set_header("Set-Cookie", f"{SESSION_COOKIE}={token}")
        return self

    def head_bytes(self) -> bytes:
        """
        Serialize status line and headers, up to and including the blank
        line that separates them from the body.
        """
        lines = [self.status_line]
        for name, value in self.headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")
        return "\r\n".join(lines).encode("utf-8") + b"\r\n"

    def to_bytes(self) -> bytes:
        """Serialize the complete response, body included."""
        return self.head_bytes() + self.body


class ResponseWriter:
    """
    Writes responses for one connection.

    Also remembers what it wrote (status, body bytes) so the server can
    emit an access log line once the request is done.

    Usage:
        writer = ResponseWriter(conn)

        # Whole body at once
        writer.send(HTTPStatus.OK, "text/html", page)

        # Streamed body
        writer.send_header(HTTPStatus.OK, "image/png")
        for chunk in chunks:
            writer.write(chunk)
        writer.flush()
    """

    def __init__(self, conn: Connection):
        self._conn = conn
        self.status: Optional[HTTPStatus] = None
        self.body_bytes = 0

    @property
    def started(self) -> bool:
        """True once a status line has gone out."""
        return self.status is not None

    def send(
        self,
        status: HTTPStatus,
        content_type: str,
        body: Union[str, bytes],
        cookie: Optional[str] = None,
    ) -> None:
        """
        Write a complete response with Content-Length.

        Args:
            status: Response status
            content_type: Content-Type header value
            body: Response body (str is UTF-8 encoded)
            cookie: Session token to set, or None to leave the cookie alone
        """
        if isinstance(body, str):
            body = body.encode("utf-8")

        response = HTTPResponse(status=status)
        response.set_header("Content-Length", str(len(body)))
        response.set_header("Content-Type", content_type)
        response.set_cookie(cookie)
        response.body = body

        self.status = status
        self._conn.send(response.to_bytes())
        self.body_bytes += len(body)
        self.flush()

    def send_header(
        self,
        status: HTTPStatus,
        content_type: str,
        cookie: Optional[str] = None,
    ) -> None:
        """
        Write a header-only response. The body follows via write().

        There is no Content-Length since the length is not known yet;
        Connection: close tells the client the body ends with the stream.
        """
        response = HTTPResponse(status=status)
        response.set_header("Connection", "close")
        response.set_header("Content-Type", content_type)
        response.set_cookie(cookie)

        self.status = status
        self._conn.send(response.head_bytes())

    def write(self, chunk: bytes) -> None:
        """Write a chunk of a streamed body."""
        self._conn.send(chunk)
        self.body_bytes += len(chunk)

    def flush(self) -> None:
        """
        Flush pending output.

        Connection.send() uses sendall(), so nothing is buffered on our
        side; kept so callers can mark the end of a body explicitly.
        """

    # =========================================================================
    # CANNED RESPONSES
    # =========================================================================

    def send_invalid_request(self) -> None:
        """The fixed 500 page for malformed request lines."""
        self.send(HTTPStatus.INTERNAL_SERVER_ERROR, "text/html", INVALID_REQUEST_BODY)

    def send_not_found_fallback(self) -> None:
        """A minimal 404 page for when 404.html itself is unavailable."""
        self.send(HTTPStatus.NOT_FOUND, "text/html", NOT_FOUND_BODY)
