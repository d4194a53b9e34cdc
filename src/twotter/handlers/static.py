"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Serves files (pages, stylesheets, scripts, pictures) from the assets
directory.

=============================================================================
HOW A STATIC REQUEST IS SERVED
=============================================================================

    Request path: /css/site.css
         │
         ├── contains ".."?  ──yes──►  not found (filesystem untouched)
         │
         ├── open <assets_root>/css/site.css
         │        │
         │        └── fails? ──────►  not found
         │
         ├── send header-only response (Connection: close, Content-Type)
         │
         └── stream the file in fixed-size chunks until EOF

=============================================================================
PATH TRAVERSAL
=============================================================================

    GET /../../etc/passwd   →   <root>/../../etc/passwd   →   /etc/passwd

Any path containing ".." is rejected before it is joined with the root.
The check is textual, so even harmless names like "a..b.txt" are refused.

=============================================================================
"""

import logging
from pathlib import Path
from typing import BinaryIO, Optional, Union

from ..http.response import ResponseWriter
from ..http.status_codes import HTTPStatus
from ..http.mime_types import get_content_type


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Handler for serving static files.

    Usage:
        static = StaticFileHandler("/srv/twotter/assets")

        if not static.serve("/style.css", writer):
            ...  # send a not-found response
    """

    def __init__(self, root_dir: Union[str, Path], chunk_size: int = 1000):
        """
        Initialize the static file handler.

        Args:
            root_dir: Directory every served file must live under.
            chunk_size: Bytes read and written per chunk while streaming.
        """
        self.root_dir = Path(root_dir)
        self.chunk_size = chunk_size

    def serve(
        self,
        path: str,
        writer: ResponseWriter,
        status: HTTPStatus = HTTPStatus.OK,
        cookie: Optional[str] = None,
    ) -> bool:
        """
        Stream a file to the client.

        Args:
            path: Request path, e.g. "/Login.html"
            writer: Response writer for this connection
            status: Status to send with the file (404.html goes out as 404)
            cookie: Session token to set along with the file, if any

        Returns:
            True if the file was sent, False if it was not found. Nothing
            has been written when False is returned.
        """
        if ".." in path:
            logger.warning(f"Path traversal attempt: {path}")
            return False

        try:
            stream = self._open(path)
        except (OSError, ValueError) as e:
            logger.debug(f"Static file not found: {path} ({e})")
            return False

        with stream:
            writer.send_header(status, get_content_type(path), cookie=cookie)
            while True:
                chunk = stream.read(self.chunk_size)
                if not chunk:
                    break
                writer.write(chunk)
            writer.flush()

        return True

    def _open(self, path: str) -> BinaryIO:
        """Open a file under the root. Raises OSError or ValueError if it can't."""
        return (self.root_dir / path.lstrip("/")).open("rb")
