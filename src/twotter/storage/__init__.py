"""
=============================================================================
STORAGE
=============================================================================

Everything the server persists lives behind the Portal interface.

    base.py            Portal (abstract) and its contract
    models.py          Account, Post records
    sqlite_portal.py   SQLitePortal, the shipped implementation

=============================================================================
"""

from .base import Portal
from .models import Account, Post
from .sqlite_portal import SQLitePortal


__all__ = [
    "Portal",
    "Account",
    "Post",
    "SQLitePortal",
]
