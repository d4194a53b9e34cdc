"""
Unit tests for query value decoding.
"""

import pytest

from twotter.http import decoding
from twotter.http.decoding import ESCAPES, decode


class TestDecode:
    """Tests for decode() with each profile."""

    def test_escape_table(self):
        """Test every escape in the table decodes to its character."""
        for escape, char in ESCAPES.items():
            assert decode(f"a{escape}b") == f"a{char}b"

    def test_table_size(self):
        assert len(ESCAPES) == 27

    @pytest.mark.parametrize("value", ["a%20b", "100%25", "x%3Dy", "%2a"])
    def test_unknown_escapes_left_alone(self, value):
        """Test escapes outside the table (and lower-case ones) stay as sent."""
        assert decode(value) == value

    def test_credentials_keep_plus(self):
        assert decode("a+b%40c.org", decoding.CREDENTIALS) == "a+b@c.org"

    def test_raw_does_nothing(self):
        assert decode("bob%2B+x", decoding.RAW) == "bob%2B+x"

    def test_signup_text_plus_before_escapes(self):
        """Test an escaped plus survives at signup."""
        assert decode("C%2B%2B+fan", decoding.SIGNUP_TEXT) == "C++ fan"

    def test_edit_text_plus_after_escapes(self):
        """Test an escaped plus becomes a space on the edit form."""
        assert decode("C%2B%2B+fan", decoding.EDIT_TEXT) == "C   fan"

    def test_post_body(self):
        """Test post text decoding."""
        assert decode("Hello%2BWorld", decoding.POST_BODY) == "Hello World"
        assert decode("Hi+there%21", decoding.POST_BODY) == "Hi there!"

    def test_search_term(self):
        assert decode("bob+smith", decoding.SEARCH_TERM) == "bob smith"

    def test_escaped_ampersand_and_question_mark(self):
        """Test characters with meaning in targets decode normally."""
        assert decode("a%26b%3Fc", decoding.POST_BODY) == "a&b?c"
