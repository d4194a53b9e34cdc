"""
Unit tests for session tokens and resolution.
"""

from twotter.session import (
    ANONYMOUS_TOKEN,
    TOKEN_ALPHABET,
    Session,
    SessionResolver,
    generate_token,
)


class TestGenerateToken:

    def test_length_and_alphabet(self):
        token = generate_token()

        assert len(token) == 20
        assert set(token) <= set(TOKEN_ALPHABET)

    def test_custom_length(self):
        assert len(generate_token(8)) == 8

    def test_tokens_differ(self):
        assert len({generate_token() for _ in range(50)}) == 50


class TestSessionResolver:
    """Tests for SessionResolver.resolve()."""

    def test_sentinel_is_anonymous(self, portal):
        session = SessionResolver(portal).resolve(ANONYMOUS_TOKEN)

        assert session == Session.anonymous()
        assert not session.is_authenticated

    def test_unknown_token_is_anonymous(self, portal):
        assert not SessionResolver(portal).resolve("nosuchtokenxxxxxxxxx").is_authenticated

    def test_empty_token_is_anonymous(self, portal):
        assert not SessionResolver(portal).resolve("").is_authenticated

    def test_token_round_trip(self, portal, make_account):
        """Test the token issued at signup resolves back to the account."""
        alice = make_account("alice")

        session = SessionResolver(portal).resolve(alice.token)

        assert session.is_authenticated
        assert session.username == "alice"
        assert session.token == alice.token

    def test_sentinel_never_resolves(self):
        """Test no account can own the sentinel, even if a portal stored it."""
        class SentinelPortal:
            def account_for_token(self, token):
                return "mallory"

        assert not SessionResolver(SentinelPortal()).resolve(ANONYMOUS_TOKEN).is_authenticated
