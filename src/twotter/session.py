"""
=============================================================================
SESSIONS
=============================================================================

A session token is an opaque, non-expiring bearer string. It is generated
ONCE, when the account is created, stored next to the account, and sent
back by the browser as a cookie on every request:

    signup ──► token = generate_token() ──► stored with the account
                                                  │
    login  ──► portal.session_token_for(user) ◄───┘
                  │
                  ▼
    Set-Cookie: session=<token>  ──►  browser  ──►  Cookie: session=<token>
                                                          │
    resolve(token) ──► portal.account_for_token(token) ◄──┘

Logging out does not invalidate the token; it only makes the browser
forget it by overwriting the cookie with the anonymous sentinel.

The sentinel never resolves to an account. Every other token resolves to
at most one.

=============================================================================
"""

import logging
import secrets
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .storage.base import Portal


logger = logging.getLogger(__name__)


ANONYMOUS_TOKEN = "0" * 20

TOKEN_ALPHABET = "abcdefghijklmnopqrstuvwxyz"
TOKEN_LENGTH = 20


def generate_token(length: int = TOKEN_LENGTH) -> str:
    """
    Generate a new session token from the lowercase alphabet.

    Uses the secrets module (OS CSPRNG). Collisions with existing tokens
    are not checked: 26**20 possibilities.
    """
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


@dataclass(frozen=True)
class Session:
    """
    The caller's identity for one request.

    Threaded explicitly through parse → resolve → dispatch → write; an
    action that logs in or out produces a new Session value.

    Attributes:
        token: The token the client holds (or the anonymous sentinel).
        username: Account the token belongs to, or None when anonymous.
    """

    token: str = ANONYMOUS_TOKEN
    username: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.username is not None

    @classmethod
    def anonymous(cls) -> "Session":
        return cls()


class SessionResolver:
    """
    Maps a session token to the account that owns it.

    Usage:
        resolver = SessionResolver(portal)
        session = resolver.resolve(token)
        if session.is_authenticated:
            ...
    """

    def __init__(self, portal: "Portal"):
        self._portal = portal

    def resolve(self, token: str) -> Session:
        """
        Resolve a token. A miss is an anonymous session, never an error.
        """
        if not token or token == ANONYMOUS_TOKEN:
            return Session.anonymous()

        username = self._portal.account_for_token(token)
        if username is None:
            logger.debug("Unknown session token presented")
            return Session.anonymous()

        return Session(token=token, username=username)
