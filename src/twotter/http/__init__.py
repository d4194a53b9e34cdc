"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

The slice of HTTP/1.1 this server speaks:

    ┌─────────────────────────────────────────────────────────────────────┐
    │   CLIENT                                         SERVER              │
    │      │   GET /home HTTP/1.1                         │                │
    │      │   Cookie: session=qwertyuiopasdfghjklz       │                │
    │      │  ─────────────────────────────────────────►  │                │
    │      │                                              │                │
    │      │               HTTP/1.1 200 OK                │                │
    │      │               Content-Length: 2048           │                │
    │      │               Content-Type: text/html        │                │
    │      │  ◄─────────────────────────────────────────  │                │
    └─────────────────────────────────────────────────────────────────────┘

    request.py       RequestParser, HTTPRequest, HTTPParseError
    response.py      ResponseWriter, HTTPResponse
    decoding.py      Per-call-site percent decoding
    status_codes.py  HTTPStatus
    mime_types.py    Extension → Content-Type

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError
from .response import HTTPResponse, ResponseWriter
from .status_codes import HTTPStatus
from .mime_types import get_content_type
from .decoding import decode, DecodeProfile, PlusMode


__all__ = [
    # Request handling
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",

    # Response handling
    "HTTPResponse",
    "ResponseWriter",

    # Status codes
    "HTTPStatus",

    # Content types
    "get_content_type",

    # Query value decoding
    "decode",
    "DecodeProfile",
    "PlusMode",
]
