"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Reads one request from a Connection and turns it into an HTTPRequest plus
the session token the client presented.

=============================================================================
WHAT WE READ
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /home?post=Hello%2BWorld HTTP/1.1      ← request line          │
    │  Host: localhost:3000                       ← ignored               │
    │  Cookie: session=qwertyuiopasdfghjklz       ← session token         │
    │                                             ← end of headers        │
    └─────────────────────────────────────────────────────────────────────┘

Only GET exists. No request body is ever read; forms submit their fields
in the query string.

The session token is taken from ANY header line whose lower-cased text
contains "session=": everything after the marker becomes the token. When
several lines carry it the last one wins. Absent a cookie, the token is
the anonymous sentinel.

=============================================================================
ORDER OF OPERATIONS
=============================================================================

    1. Read the request line            (None → TransportError)
    2. Read header lines until ""       (EOF  → TransportError)
    3. Validate the request line        (bad  → HTTPParseError, 500)
    4. Split target into path + query pairs

Headers are drained before validating so the error response is written
after the client has finished sending.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from ..core.connection import Connection, TransportError
from ..session import ANONYMOUS_TOKEN


QueryPairs = Tuple[Tuple[str, str], ...]


class HTTPParseError(Exception):
    """
    Raised when the request line is malformed.

    Carries the HTTP status code to answer with. This server answers
    malformed requests with 500 rather than 400.
    """

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class HTTPRequest:
    """
    Represents a parsed HTTP request.

    Attributes:
        method:       Request method as sent ("GET")
        path:         Target up to the first "?"
        query_params: Ordered (key, value) pairs; values still escaped
        raw_target:   Target exactly as sent, query string included
        version:      Protocol version as sent ("HTTP/1.1")
    """

    method: str
    path: str
    query_params: QueryPairs = field(default_factory=tuple)
    raw_target: str = ""
    version: str = "HTTP/1.1"

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get the first value of a query parameter.

        Example:
            # Target: /?follow=bob&follow=eve
            request.get_query("follow")  # Returns "bob"
        """
        for key, value in self.query_params:
            if key == name:
                return value
        return default

    def has_query(self, name: str) -> bool:
        """Check whether a query key is present at all."""
        return any(key == name for key, _ in self.query_params)


class RequestParser:
    """
    Parses a request off a Connection.

    Usage:
        parser = RequestParser()
        request, token = parser.read(conn)
    """

    ACCEPTED_METHOD = "get"
    VERSION_PREFIX = "http/"
    SESSION_MARKER = "session="

    def read(self, conn: Connection) -> tuple[HTTPRequest, str]:
        """
        Read and parse one request.

        Args:
            conn: The client connection.

        Returns:
            Tuple of (request, session token). The token is the anonymous
            sentinel when no cookie was sent.

        Raises:
            TransportError: The peer closed before the headers ended.
            HTTPParseError: The request line is malformed.
        """
        request_line = conn.read_line()
        if request_line is None:
            raise TransportError("Peer closed before sending a request line")

        # ─────────────────────────────────────────────────────────────────
        # HEADERS: only the session cookie is interpreted
        # ─────────────────────────────────────────────────────────────────
        token = ANONYMOUS_TOKEN
        while True:
            line = conn.read_line()
            if line is None:
                raise TransportError("Peer closed before the end of headers")
            if line == "":
                break

            lowered = line.lower()
            marker_at = lowered.find(self.SESSION_MARKER)
            if marker_at != -1:
                token = lowered[marker_at + len(self.SESSION_MARKER):]

        return self.parse_request_line(request_line), token

    def parse_request_line(self, line: str) -> HTTPRequest:
        """
        Parse "METHOD SP TARGET SP VERSION".

        Raises:
            HTTPParseError: Not exactly three fields, method other than
                            GET, or a version not starting with "HTTP/".
        """
        parts = line.split(" ")
        if len(parts) != 3:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = parts

        if method.lower() != self.ACCEPTED_METHOD:
            raise HTTPParseError(f"Unsupported method: {method!r}")

        if not version.lower().startswith(self.VERSION_PREFIX):
            raise HTTPParseError(f"Unsupported protocol: {version!r}")

        return self.parse_target(target, method=method, version=version)

    def parse_target(
        self,
        target: str,
        method: str = "GET",
        version: str = "HTTP/1.1",
    ) -> HTTPRequest:
        """
        Split a request target into path and query pairs.

        =====================================================================
        TARGET SPLITTING
        =====================================================================

            "/EditProfile?name=Al&description=&image=a.png"
             ────┬──────  ─────────────┬────────────────
                path                 query
                                       │
                          split "&" then first "="
                                       │
            (("name", "Al"), ("description", ""), ("image", "a.png"))

        =====================================================================
        """
        path, sep, query = target.partition("?")

        pairs = []
        if sep:
            for piece in query.split("&"):
                key, _, value = piece.partition("=")
                pairs.append((key, value))

        return HTTPRequest(
            method=method,
            path=path,
            query_params=tuple(pairs),
            raw_target=target,
            version=version,
        )
