"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with the small API the request handling
pipeline needs: read a line, send bytes, close.

=============================================================================
ONE CONNECTION, ONE REQUEST
=============================================================================

Every connection carries exactly one request/response cycle:

    ┌──────────┐   accept()   ┌─────────────┐  read_line()  ┌──────────┐
    │ Acceptor │ ───────────► │ Connection  │ ────────────► │  Parser  │
    └──────────┘              │   (NEW)     │               └────┬─────┘
                              └──────┬──────┘                    │
                                     │            send()         ▼
                                     │ ◄─────────────────── ┌──────────┐
                                     │                      │  Writer  │
                                     ▼                      └──────────┘
                              ┌─────────────┐
                              │  close()    │  exactly once, on success
                              │  (CLOSED)   │  or on error
                              └─────────────┘

There is no keep-alive and no read timeout: a peer that stalls keeps its
handling thread blocked until it goes away.

=============================================================================
LINE READING
=============================================================================

TCP delivers bytes in arbitrary chunks. Rather than buffering by hand we
wrap the socket in a buffered binary file (socket.makefile("rb")) and let
readline() find the line boundaries. Lines may end in CRLF or a bare LF;
both are stripped.

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import BinaryIO, Optional


logger = logging.getLogger(__name__)


class TransportError(Exception):
    """
    The peer went away (closed or reset) before a full request was read,
    or while the response was being written.

    No response is attempted; the handling unit just closes the socket.
    """


class ConnectionState(Enum):
    """Connection lifecycle states, used for logging."""
    NEW = "new"                # Just accepted
    READING = "reading"        # Reading request line / headers
    WRITING = "writing"        # Sending response bytes
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    Represents one client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client's (ip, port) tuple.
        id: Short unique identifier for log lines.
        state: Current lifecycle state.
        created_at: Timestamp when the connection was accepted.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    _reader: Optional[BinaryIO] = field(default=None, repr=False)

    def __post_init__(self):
        # Accepted sockets may inherit the listener's accept timeout.
        self.socket.settimeout(None)

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0]

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_line(self) -> Optional[str]:
        """
        Read one line from the peer.

        Returns:
            The line without its terminator, or None if the peer closed
            the stream before sending anything more.

        Raises:
            TransportError: If the connection was reset mid-read.
        """
        self.state = ConnectionState.READING

        if self._reader is None:
            self._reader = self.socket.makefile("rb")

        try:
            raw = self._reader.readline()
        except (ConnectionResetError, BrokenPipeError) as e:
            raise TransportError(f"Connection lost while reading: {e}") from e

        if not raw:
            return None

        return raw.decode("utf-8", errors="replace").rstrip("\r\n")

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> None:
        """
        Send bytes to the client.

        Uses sendall() so every byte is handed to the kernel before
        returning.

        Raises:
            TransportError: If the peer is gone.
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(data)
        except OSError as e:
            raise TransportError(f"Send failed: {e}") from e

    # =========================================================================
    # CLEANUP
    # =========================================================================

    def close(self):
        """
        Close the connection.

        Sends FIN (shutdown SHUT_WR) so the client sees the end of a
        Connection: close response, then releases the descriptor. Safe to
        call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already disconnected

        if self._reader is not None:
            try:
                self._reader.close()
            except OSError:
                pass
            self._reader = None

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        """
        Context manager entry.

            with conn:
                request, token = parser.read(conn)
                ...
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - ensure connection is closed."""
        self.close()
        return False  # Don't suppress exceptions
