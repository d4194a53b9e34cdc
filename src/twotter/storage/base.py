"""
=============================================================================
PORTAL INTERFACE
=============================================================================

The request handling loop never talks to a database directly. Everything
it needs about accounts, posts and follows goes through a Portal:

    ┌────────────┐   account_for_token()   ┌──────────────────────────┐
    │  Session   │ ──────────────────────► │                          │
    │  Resolver  │                         │                          │
    └────────────┘                         │         Portal           │
    ┌────────────┐   create_post()         │                          │
    │            │   follow() / unfollow() │   (SQLitePortal ships    │
    │ Dispatcher │   feed_for()            │    with the server)      │
    │            │ ──────────────────────► │                          │
    └────────────┘   render_post_html()    └──────────────────────────┘

=============================================================================
THE PORTAL CONTRACT
=============================================================================

- Portal methods never raise for storage failures. A failed write
  returns False, a failed lookup returns None or an empty list, and the
  caller carries on as if the action were a no-op.
- Lists of posts are newest first.
- Implementations must be safe to call from many handling threads at
  once: one Portal instance is shared by every connection.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from .models import Account, Post


class Portal(ABC):
    """
    Abstract base class for the persistence collaborator.

    Methods taking a ``token`` act on behalf of the account owning that
    session token.
    """

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    @abstractmethod
    def create_account(
        self,
        username: str,
        description: str,
        email: str,
        picture: str,
        password: str,
        display_name: str,
    ) -> bool:
        """
        Create an account and assign its permanent session token.

        Returns:
            True if the account was created.
        """

    @abstractmethod
    def account_exists(self, username: str) -> bool:
        """Check whether a username is registered."""

    @abstractmethod
    def email_taken(self, email: str) -> bool:
        """Check whether an email address is already in use."""

    @abstractmethod
    def get_account(self, username: str) -> Optional[Account]:
        """Fetch an account, or None if there is no such username."""

    @abstractmethod
    def verify_login(self, username: str, password: str) -> bool:
        """Check a username/password pair."""

    @abstractmethod
    def session_token_for(self, username: str) -> Optional[str]:
        """Get the session token assigned to an account."""

    @abstractmethod
    def account_for_token(self, token: str) -> Optional[str]:
        """Get the username owning a session token, or None."""

    # =========================================================================
    # POSTS
    # =========================================================================

    @abstractmethod
    def create_post(self, body: str, author: str) -> bool:
        """Publish a new post."""

    @abstractmethod
    def delete_post(self, post_id: int) -> bool:
        """Delete a post along with all of its reposts."""

    @abstractmethod
    def repost(self, token: str, post_id: int) -> bool:
        """Post an existing post again under the session's account."""

    @abstractmethod
    def feed_for(self, username: str) -> List[Post]:
        """Posts by the account and everyone it follows, newest first."""

    @abstractmethod
    def posts_by(self, username: str) -> List[Post]:
        """Posts and reposts by one account, newest first."""

    # =========================================================================
    # FOLLOWS
    # =========================================================================

    @abstractmethod
    def follow(self, token: str, target: str) -> bool:
        """Make the session's account follow ``target``."""

    @abstractmethod
    def unfollow(self, token: str, target: str) -> bool:
        """Make the session's account stop following ``target``."""

    @abstractmethod
    def is_following(self, follower: str, followee: str) -> bool:
        """Check whether ``follower`` follows ``followee``."""

    @abstractmethod
    def followers_of(self, username: str) -> List[Account]:
        """Accounts following ``username``."""

    @abstractmethod
    def followees_of(self, username: str) -> List[Account]:
        """Accounts ``username`` follows."""

    # =========================================================================
    # SEARCH & PROFILE EDITS
    # =========================================================================

    @abstractmethod
    def search_accounts(self, term: str) -> List[Account]:
        """Accounts whose username or display name contains ``term``."""

    @abstractmethod
    def set_display_name(self, token: str, value: str) -> bool:
        """Change the session account's display name."""

    @abstractmethod
    def set_description(self, token: str, value: str) -> bool:
        """Change the session account's description."""

    @abstractmethod
    def set_picture(self, token: str, value: str) -> bool:
        """Change the session account's picture."""

    # =========================================================================
    # HTML FRAGMENTS
    # =========================================================================

    @abstractmethod
    def render_account_html(self, account: Account) -> str:
        """HTML fragment describing an account."""

    @abstractmethod
    def render_post_html(self, post: Post) -> str:
        """HTML fragment for one post appearance."""

    def close(self) -> None:
        """Release resources. Optional for implementations."""
