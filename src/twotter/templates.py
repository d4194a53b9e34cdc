"""
=============================================================================
TEMPLATE RENDERER
=============================================================================

Pages are plain HTML files with %marker% placeholders. A page is built by
loading the file and substituting markers in a FIXED order:

    ┌───────────────────────┬─────────────────────┬────────────────────┐
    │  Marker               │  Filled with        │  Occurrences       │
    ├───────────────────────┼─────────────────────┼────────────────────┤
    │  %user%               │  viewing account    │  all               │
    │  %username%           │  viewed account     │  all               │
    │  %userInformation%    │  account fragment   │  first only        │
    │  %posts%              │  post list fragment │  first only        │
    │  %button%             │  follow / unfollow  │  first only        │
    │                       │  / edit / compose   │                    │
    └───────────────────────┴─────────────────────┴────────────────────┘

Page-wide markers go first. Slots are then located in the page before
anything is inserted, so markers inside inserted fragments (which may
carry user-written text) are never expanded. Page-wide values are
HTML-escaped; fragments are inserted as they are.

A missing template raises TemplateNotFoundError; nothing is rendered
partially.

=============================================================================
"""

import html
import logging
from pathlib import Path
from typing import Union


logger = logging.getLogger(__name__)


VIEWER_MARKER = "%user%"
VIEWED_MARKER = "%username%"
USER_INFO_MARKER = "%userInformation%"
POSTS_MARKER = "%posts%"
BUTTON_MARKER = "%button%"


class TemplateNotFoundError(LookupError):
    """A template file could not be read."""

    def __init__(self, name: str):
        super().__init__(f"Template not found: {name}")
        self.name = name


class TemplateRenderer:
    """
    Loads templates from a directory and fills their markers.

    Usage:
        renderer = TemplateRenderer("/srv/twotter/assets")
        page = renderer.render(
            "template.html",
            viewer="alice",
            viewed="bob",
            user_info=account_html,
            posts=posts_html,
            button=renderer.fragment("follow_button.html", "alice", "bob"),
        )
    """

    def __init__(self, template_dir: Union[str, Path]):
        self.template_dir = Path(template_dir)

    def load(self, name: str) -> bytes:
        """
        Load a template's full content.

        Raises:
            TemplateNotFoundError: The file is missing or unreadable.
        """
        name = name.lstrip("/")
        if ".." in name:
            raise TemplateNotFoundError(name)

        try:
            return (self.template_dir / name).read_bytes()
        except OSError as e:
            logger.warning(f"Cannot read template {name}: {e}")
            raise TemplateNotFoundError(name) from e

    def render(
        self,
        name: str,
        viewer: str,
        viewed: str,
        user_info: str = "",
        posts: str = "",
        button: str = "",
    ) -> bytes:
        """
        Render a full page.

        Args:
            name: Template file name
            viewer: Username of the account looking at the page
            viewed: Username (or search term) the page is about
            user_info: Fragment for the single %userInformation% slot
            posts: Fragment for the single %posts% slot
            button: Fragment for the single %button% slot

        Returns:
            The page as UTF-8 bytes
        """
        page = self.load(name).decode("utf-8", errors="replace")
        page = self._fill_page_wide(page, viewer, viewed)
        page = self._fill_slots(page, (
            (USER_INFO_MARKER, user_info),
            (POSTS_MARKER, posts),
            (BUTTON_MARKER, button),
        ))
        return page.encode("utf-8")

    def fragment(self, name: str, viewer: str, viewed: str) -> str:
        """
        Load a fragment (e.g. a button) with its page-wide markers filled.
        """
        text = self.load(name).decode("utf-8", errors="replace")
        return self._fill_page_wide(text, viewer, viewed)

    @staticmethod
    def _fill_page_wide(text: str, viewer: str, viewed: str) -> str:
        text = text.replace(VIEWER_MARKER, html.escape(viewer))
        return text.replace(VIEWED_MARKER, html.escape(viewed))

    @staticmethod
    def _fill_slots(page: str, slots) -> str:
        """Replace the first occurrence of each slot marker in one pass."""
        found = sorted(
            (page.find(marker), marker, value)
            for marker, value in slots
            if marker in page
        )

        pieces = []
        cursor = 0
        for at, marker, value in found:
            pieces.append(page[cursor:at])
            pieces.append(value)
            cursor = at + len(marker)
        pieces.append(page[cursor:])
        return "".join(pieces)
