"""
Transport layer: the listening socket and per-client connections.
"""

from .connection import Connection, ConnectionState, TransportError
from .socket_server import SocketServer, BindError, bind_first_free


__all__ = [
    "Connection",
    "ConnectionState",
    "TransportError",
    "SocketServer",
    "BindError",
    "bind_first_free",
]
