"""
Records returned by the portal.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Account:
    """
    A registered account.

    Attributes:
        username: Unique handle, also the profile URL ("/<username>").
        email: Contact address, unique across accounts.
        description: Free-text bio.
        picture: Asset path of the profile picture (e.g. "/pic1.jpg").
        display_name: Name shown on the profile.
    """

    username: str
    email: str = ""
    description: str = ""
    picture: str = ""
    display_name: str = ""


@dataclass(frozen=True)
class Post:
    """
    One appearance of a post in a list.

    A post is written once by its author; every posting (the original and
    each repost) is a separate appearance with its own poster and time.

    Attributes:
        post_id: Identifier of the underlying post.
        author: Username that wrote the text.
        poster: Username this appearance is attributed to. Differs from
                author for reposts.
        timestamp: When this appearance was posted (ISO 8601, UTC).
        message: Post text.
        picture: Author's profile picture.
    """

    post_id: int
    author: str
    poster: str
    timestamp: str
    message: str
    picture: str = ""

    @property
    def is_repost(self) -> bool:
        return self.poster != self.author
