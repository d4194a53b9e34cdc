"""
=============================================================================
ACCESS LOG
=============================================================================

One line per handled request, on its own logger so it can be routed or
silenced separately:

    logging.getLogger("twotter.access").setLevel(logging.WARNING)

Line format (Apache combined, trimmed):

    127.0.0.1 - alice [19/Oct/2026:10:01:02 +0000] "GET /home" 200 2048 3.10ms
    ────┬────   ──┬──                                          ─┬─ ──┬─
     client     session user ("-" when anonymous)          status  body bytes

=============================================================================
"""

import time
import logging
from dataclasses import dataclass
from typing import Optional

from .http.status_codes import HTTPStatus


logger = logging.getLogger("twotter.access")


@dataclass
class RequestLog:
    """
    Structured log entry for one request.

    Attributes:
        request_id:     Connection id, for correlating with debug lines
        client_ip:      Client's IP address
        user:           Session username, or None when anonymous
        method:         Request method
        target:         Request target as sent
        status_code:    Status sent, or None if nothing was sent
        content_length: Body bytes written
        duration_ms:    Handling time
        timestamp:      When the request finished
    """

    request_id: str
    client_ip: str
    user: Optional[str]
    method: str
    target: str
    status_code: Optional[int]
    content_length: int
    duration_ms: float
    timestamp: str

    def to_text(self) -> str:
        """Format as a combined-log-style line."""
        status = self.status_code if self.status_code is not None else "-"
        return (
            f'{self.client_ip} - {self.user or "-"} [{self.timestamp}] '
            f'"{self.method} {self.target}" {status} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


def log_request(
    request_id: str,
    client_ip: str,
    user: Optional[str],
    method: str,
    target: str,
    status: Optional[HTTPStatus],
    content_length: int,
    started: float,
) -> RequestLog:
    """
    Build the entry for a finished request and emit it.

    4xx and 5xx responses go out at WARNING, everything else at INFO.

    Args:
        started: time.time() when handling began

    Returns:
        The emitted entry.
    """
    entry = RequestLog(
        request_id=request_id,
        client_ip=client_ip,
        user=user,
        method=method,
        target=target,
        status_code=status.value if status is not None else None,
        content_length=content_length,
        duration_ms=(time.time() - started) * 1000,
        timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
    )
    level = logging.WARNING if status is not None and status.is_error else logging.INFO
    logger.log(level, entry.to_text())
    return entry
