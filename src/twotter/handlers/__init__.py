"""
=============================================================================
REQUEST HANDLERS
=============================================================================

Reusable handlers the dispatcher delegates to.

    StaticFileHandler   Streams files from the assets directory

=============================================================================
"""

from .static import StaticFileHandler


__all__ = [
    "StaticFileHandler",
]
