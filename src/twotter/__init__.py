"""
=============================================================================
TWOTTER
=============================================================================

A small microblogging site served by a hand-written HTTP/1.1 server.

    ┌──────────────┐     ┌───────────────┐     ┌────────────────────────┐
    │ SocketServer │ ──► │ RequestParser │ ──► │ SessionResolver        │
    └──────────────┘     └───────────────┘     └───────────┬────────────┘
                                                           ▼
    ┌──────────────┐     ┌───────────────┐     ┌────────────────────────┐
    │ResponseWriter│ ◄── │ Templates /   │ ◄── │ Dispatcher ──► Portal  │
    └──────────────┘     │ Static files  │     └────────────────────────┘
                         └───────────────┘

Run it with ``python -m twotter`` or the ``twotter`` command.

=============================================================================
"""

__version__ = "1.0.0"

from .server import TwotterServer
from .config import ServerConfig

__all__ = ["TwotterServer", "ServerConfig", "__version__"]
