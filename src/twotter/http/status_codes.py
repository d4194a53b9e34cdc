"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The handful of status codes this server ever emits.

    ┌───────────┬──────────────────────────────────────────────────────────┐
    │   Code    │  When                                                    │
    ├───────────┼──────────────────────────────────────────────────────────┤
    │  200      │  Every page, asset and action result                     │
    │  404      │  Unknown path, missing asset, missing template           │
    │  500      │  Malformed request line (not 400, for compatibility      │
    │           │  with existing clients)                                  │
    └───────────┴──────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    Extends IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200
    NOT_FOUND = 404
    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line:

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      └── phrase
                      └───────── code
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_error(self) -> bool:
        """Check if this is a 4xx or 5xx status code."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
