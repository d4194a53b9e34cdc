"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every knob the server has, in one dataclass.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Priority (highest to lowest):                                     │
    │                                                                     │
    │   1. Environment variables                                          │
    │      └── TWOTTER_PORT_START=8000 python -m twotter                  │
    │                                                                     │
    │   2. Default values (in this dataclass)                             │
    └─────────────────────────────────────────────────────────────────────┘

There is no port option: the server takes the first free port in
[port_range_start, port_range_end) and logs which one it got.

=============================================================================
"""

import os
from dataclasses import dataclass
from pathlib import Path


DEFAULT_ASSETS_DIR = str(Path(__file__).resolve().parent / "assets")


@dataclass
class ServerConfig:
    """
    Configuration for the Twotter server.

    Development:
        ServerConfig(
            host="127.0.0.1",
            database_path=":memory:",
            log_level="DEBUG",
        )
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only
    - "0.0.0.0" - All network interfaces
    """

    port_range_start: int = 3000
    """First port tried when binding."""

    port_range_end: int = 65000
    """Probing stops before this port (exclusive)."""

    backlog: int = 128
    """Maximum number of queued connections."""

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    assets_dir: str = DEFAULT_ASSETS_DIR
    """
    Directory holding the page templates and static files. Both are
    served from the same root.
    """

    chunk_size: int = 1000
    """Bytes per chunk when streaming a static file."""

    # ─────────────────────────────────────────────────────────────────────
    # STORAGE
    # ─────────────────────────────────────────────────────────────────────

    database_path: str = "twotter.db"
    """SQLite database file. ":memory:" keeps everything in RAM."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        TWOTTER_HOST         Bind address (default: 0.0.0.0)
        TWOTTER_PORT_START   First port probed (default: 3000)
        TWOTTER_PORT_END     End of the probed range (default: 65000)
        TWOTTER_ASSETS_DIR   Templates and static files (default: packaged)
        TWOTTER_DATABASE     SQLite file (default: twotter.db)
        TWOTTER_LOG_LEVEL    Logging level (default: INFO)

        =====================================================================
        """
        return cls(
            host=os.getenv("TWOTTER_HOST", "0.0.0.0"),
            port_range_start=int(os.getenv("TWOTTER_PORT_START", "3000")),
            port_range_end=int(os.getenv("TWOTTER_PORT_END", "65000")),
            assets_dir=os.getenv("TWOTTER_ASSETS_DIR", DEFAULT_ASSETS_DIR),
            database_path=os.getenv("TWOTTER_DATABASE", "twotter.db"),
            log_level=os.getenv("TWOTTER_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values. Called once at startup.

        Raises:
            ValueError: On the first invalid value.
        """
        if not 0 < self.port_range_start < 65536:
            raise ValueError(f"Invalid port_range_start: {self.port_range_start}")

        if not self.port_range_start < self.port_range_end <= 65536:
            raise ValueError(
                f"port_range_end must be in ({self.port_range_start}, 65536], "
                f"got {self.port_range_end}"
            )

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

        if not Path(self.assets_dir).is_dir():
            raise ValueError(f"assets_dir is not a directory: {self.assets_dir}")
