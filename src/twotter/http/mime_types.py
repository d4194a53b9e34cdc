"""
=============================================================================
CONTENT TYPE TABLE
=============================================================================

Maps the extension of a requested asset to the Content-Type header sent
with it. The table is deliberately small: it lists exactly what the site
ships (pages, stylesheets, scripts, profile pictures, text files).
Anything else goes out as plain text.

    ┌───────────────┬──────────────────────┐
    │  Extension    │  Content-Type        │
    ├───────────────┼──────────────────────┤
    │  .txt         │  text/plain          │
    │  .html .htm   │  text/html           │
    │  .jpg         │  image/jpeg          │
    │  .gif         │  image/gif           │
    │  .png         │  image/png           │
    │  .css         │  text/css            │
    │  .js          │  text/javascript     │
    │  (other)      │  text/plain          │
    └───────────────┴──────────────────────┘

=============================================================================
"""

from pathlib import PurePosixPath


MIME_TYPES = {
    ".txt": "text/plain",
    ".html": "text/html",
    ".htm": "text/html",
    ".jpg": "image/jpeg",
    ".gif": "image/gif",
    ".png": "image/png",
    ".css": "text/css",
    ".js": "text/javascript",
}

DEFAULT_MIME_TYPE = "text/plain"


def get_content_type(path: str) -> str:
    """
    Get the Content-Type for a request path based on its extension.

    Args:
        path: Request path or file name (e.g. "/style.css")

    Returns:
        The MIME type string

    Examples:
        >>> get_content_type("/Login.html")
        'text/html'

        >>> get_content_type("/pic1.JPG")
        'image/jpeg'

        >>> get_content_type("/README")
        'text/plain'
    """
    extension = PurePosixPath(path).suffix.lower()  # .PNG → .png
    return MIME_TYPES.get(extension, DEFAULT_MIME_TYPE)
