"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

Listens for connections and hands each one to a callback. It knows nothing
about HTTP.

=============================================================================
PORT PROBING
=============================================================================

The server has no fixed port. It walks a range and keeps the first port
it can bind:

    3000  bind() ── EADDRINUSE ──► next
    3001  bind() ── EADDRINUSE ──► next
    3002  bind() ── ok ──► listen() ──► "Running on port: 3002"

If the whole range is taken, BindError is raised and the process exits.

=============================================================================
ACCEPT LOOP
=============================================================================

    ┌──────────────────────────────────────────────────────────────────┐
    │   while running:                                                 │
    │       accept()   (1 second timeout, so shutdown() is noticed)    │
    │         │                                                        │
    │         ├── timeout      ──► loop                                │
    │         ├── OSError      ──► log, loop                           │
    │         └── client       ──► Connection(...) ──► callback(conn)  │
    └──────────────────────────────────────────────────────────────────┘

The callback must return quickly; the server spawns a thread inside it.

=============================================================================
"""

import socket
import logging
import threading
from typing import Callable, Optional

from .connection import Connection


logger = logging.getLogger(__name__)


class BindError(OSError):
    """No port in the probed range could be bound."""

    def __init__(self, host: str, start: int, end: int, last_error: Optional[OSError] = None):
        super().__init__(f"No free port on {host} in [{start}, {end}): {last_error}")
        self.host = host
        self.start = start
        self.end = end
        self.last_error = last_error


def bind_first_free(host: str, start: int, end: int, backlog: int = 128) -> socket.socket:
    """
    Bind and listen on the first free port in [start, end).

    Args:
        host: Address to bind to
        start: First port tried
        end: Probing stops before this port
        backlog: Listen queue length

    Returns:
        A listening socket. Its port is sock.getsockname()[1].

    Raises:
        BindError: Every port in the range failed.
    """
    last_error: Optional[OSError] = None

    for port in range(start, end):
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        # Lets a restarted server take back its port while old
        # connections sit in TIME_WAIT. A listening socket still blocks us.
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, port))
            sock.listen(backlog)
        except OSError as e:
            sock.close()
            last_error = e
            logger.debug(f"Port {port} unavailable: {e}")
            continue
        return sock

    raise BindError(host, start, end, last_error)


class SocketServer:
    """
    Low-level TCP socket server.

    Usage:
        def handle_connection(conn: Connection):
            threading.Thread(target=..., args=(conn,), daemon=True).start()

        server = SocketServer("0.0.0.0", 3000, 65000)
        server.start(handle_connection)  # Blocks until shutdown()
    """

    ACCEPT_TIMEOUT = 1.0

    def __init__(self, host: str, port_range_start: int, port_range_end: int, backlog: int = 128):
        self.host = host
        self.port_range_start = port_range_start
        self.port_range_end = port_range_end
        self.backlog = backlog

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._listening = threading.Event()
        self._port: Optional[int] = None

    @property
    def is_running(self) -> bool:
        """Check if server is running."""
        return self._running

    @property
    def port(self) -> Optional[int]:
        """The bound port, or None before start()."""
        return self._port

    def bind(self) -> int:
        """
        Probe the port range and start listening.

        Called by start(); may be called earlier to learn the port.

        Raises:
            BindError: No port in the range is free.
        """
        if self._socket is None:
            self._socket = bind_first_free(
                self.host, self.port_range_start, self.port_range_end, self.backlog
            )
            self._socket.settimeout(self.ACCEPT_TIMEOUT)
            self._port = self._socket.getsockname()[1]
            logger.info(f"Running on port: {self._port}")
        return self._port

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, then accept connections until shutdown() is called.

        Args:
            connection_handler: Called with each accepted Connection.

        Raises:
            BindError: No port in the range is free.
        """
        self.bind()
        self._running = True
        self._listening.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._running:
                    break
                logger.error(f"Accept error: {e}")
                continue

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(socket=client_socket, address=client_address)
            connection_handler(conn)

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the accept loop is running.

        Returns:
            True if listening, False on timeout.
        """
        return self._listening.wait(timeout)

    def shutdown(self):
        """
        Stop the accept loop. Idempotent; the loop exits within
        ACCEPT_TIMEOUT seconds.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        if self._socket is not None:
            self._socket.close()
            self._socket = None
        self._listening.clear()
        logger.info("Socket server stopped")
