"""
Unit tests for the template renderer.
"""

import pytest

from twotter.templates import TemplateNotFoundError, TemplateRenderer


@pytest.fixture
def templates(tmp_path):
    (tmp_path / "page.html").write_text(
        "<h1>%user% sees %username%</h1>"
        "<nav>%user%</nav>"
        "%userInformation%|%posts%|%button%|%posts%"
    )
    (tmp_path / "button.html").write_text('<a href="/%username%?follow=%username%">%user%</a>')
    return TemplateRenderer(tmp_path)


class TestRender:
    """Tests for TemplateRenderer.render()."""

    def test_page_wide_markers_replaced_everywhere(self, templates):
        page = templates.render("page.html", viewer="alice", viewed="bob").decode()

        assert page.startswith("<h1>alice sees bob</h1><nav>alice</nav>")
        assert "%user%" not in page
        assert "%username%" not in page

    def test_slots_replaced_once(self, templates):
        """Test each slot marker is filled at its first occurrence only."""
        page = templates.render(
            "page.html", "alice", "bob", user_info="INFO", posts="POSTS", button="BTN"
        ).decode()

        assert page.endswith("INFO|POSTS|BTN|%posts%")

    def test_markers_in_fragments_not_expanded(self, templates):
        """Test user text carrying markers is inserted verbatim."""
        page = templates.render("page.html", "alice", "bob", posts="%user% %button%").decode()

        assert "|%user% %button%|" in page

    def test_viewer_and_viewed_are_escaped(self, templates):
        page = templates.render("page.html", viewer="a<b", viewed="x&y").decode()

        assert "a&lt;b sees x&amp;y" in page

    def test_returns_bytes(self, templates):
        assert isinstance(templates.render("page.html", "a", "b"), bytes)


class TestFragment:

    def test_fragment_fills_page_wide_markers(self, templates):
        assert templates.fragment("button.html", "alice", "bob") == (
            '<a href="/bob?follow=bob">alice</a>'
        )


class TestLoad:
    """Tests for TemplateRenderer.load()."""

    def test_load_leading_slash(self, templates, tmp_path):
        assert templates.load("/button.html") == (tmp_path / "button.html").read_bytes()

    def test_missing_template(self, templates):
        with pytest.raises(TemplateNotFoundError) as exc_info:
            templates.load("nope.html")

        assert exc_info.value.name == "nope.html"

    def test_parent_directory_refused(self, templates):
        with pytest.raises(TemplateNotFoundError):
            templates.load("../page.html")
