"""
=============================================================================
TWOTTER SERVER
=============================================================================

Ties the pieces together. One request per connection, one thread per
connection:

    SocketServer.accept()
         │
         └──► _handle_connection(conn)          (acceptor thread)
                   │
                   └──► Thread(handle_connection, conn).start()
                                 │
                                 ▼                (unit thread)
              ┌──────────────────────────────────────────────┐
              │  RequestParser.read(conn)  → request, token  │
              │  SessionResolver.resolve(token) → Session    │
              │  Dispatcher.dispatch(request, session, ...)  │
              │  access log line                             │
              │  conn.close()                                │
              └──────────────────────────────────────────────┘

=============================================================================
FAILURES INSIDE A UNIT
=============================================================================

    TransportError   peer went away      → close, no response
    HTTPParseError   bad request line    → 500 "Error - invalid Request"
    anything else    bug                 → log with traceback, close

A failure never reaches the acceptor or another unit.

=============================================================================
"""

import logging
import threading
import time
from typing import Optional

from .access_log import log_request
from .config import ServerConfig
from .core import Connection, SocketServer, TransportError
from .dispatcher import Dispatcher
from .handlers import StaticFileHandler
from .http import HTTPParseError, RequestParser, ResponseWriter
from .session import SessionResolver
from .storage import Portal, SQLitePortal
from .templates import TemplateRenderer


logger = logging.getLogger(__name__)


class TwotterServer:
    """
    The Twotter HTTP server.

    Usage:
        server = TwotterServer(ServerConfig.from_env())
        server.run()  # Blocks

    Embedded (tests):
        server = TwotterServer(config, portal=SQLitePortal(":memory:"))
        threading.Thread(target=server.run, daemon=True).start()
        server.wait_until_listening(5)
        ... connect to server.port ...
        server.shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None, portal: Optional[Portal] = None):
        """
        Initialize the server.

        Args:
            config: Server configuration. Defaults if not provided.
            portal: Storage to use. A SQLitePortal on config.database_path
                    is opened (and closed on shutdown) when not provided.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._owns_portal = portal is None
        self.portal = portal if portal is not None else SQLitePortal(self.config.database_path)

        self._socket_server = SocketServer(
            self.config.host,
            self.config.port_range_start,
            self.config.port_range_end,
            self.config.backlog,
        )
        self._parser = RequestParser()
        self._resolver = SessionResolver(self.portal)
        self._dispatcher = Dispatcher(
            self.portal,
            TemplateRenderer(self.config.assets_dir),
            StaticFileHandler(self.config.assets_dir, self.config.chunk_size),
            self._parser,
        )

    @property
    def port(self) -> Optional[int]:
        """The port being listened on, once bound."""
        return self._socket_server.port

    def run(self):
        """
        Bind and serve until shutdown().

        Raises:
            BindError: No free port in the configured range.
        """
        self._setup_logging()
        logger.info(f"Serving assets from {self.config.assets_dir}")

        try:
            self._socket_server.start(self._handle_connection)
        finally:
            if self._owns_portal:
                self.portal.close()
            logger.info("Server stopped")

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """Wait for run() to start accepting."""
        return self._socket_server.wait_until_listening(timeout)

    def shutdown(self):
        """Stop accepting. Units already running finish on their own."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("twotter").setLevel(level)

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Start a unit thread for the connection. Never blocks."""
        thread = threading.Thread(
            target=self.handle_connection,
            args=(conn,),
            name=f"twotter-{conn.id}",
            daemon=True,
        )
        thread.start()

    def handle_connection(self, conn: Connection):
        """
        Handle one request on a connection and close it.

        Runs in the unit thread; callable directly for synchronous use.
        """
        started = time.time()
        writer = ResponseWriter(conn)
        method = target = "-"
        user = None

        with conn:
            try:
                try:
                    request, token = self._parser.read(conn)
                except HTTPParseError as e:
                    logger.debug(f"[{conn.id}] {e}")
                    writer.send_invalid_request()
                    return

                method, target = request.method, request.raw_target
                session = self._resolver.resolve(token)
                user = session.username

                session = self._dispatcher.dispatch(request, session, writer)
                user = session.username

            except TransportError as e:
                logger.debug(f"[{conn.id}] {e}")
                return

            except Exception as e:
                logger.exception(f"[{conn.id}] Unhandled error: {e}")
                return

            finally:
                if writer.started:
                    log_request(
                        conn.id, conn.client_ip, user, method, target,
                        writer.status, writer.body_bytes, started,
                    )
