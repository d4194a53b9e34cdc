"""
=============================================================================
SQLITE PORTAL
=============================================================================

The Portal implementation the server ships with: one SQLite database
file, opened once and shared by every handling thread.

=============================================================================
SCHEMA
=============================================================================

    user                              post
    ┌──────────────┬─────────┐        ┌──────────┬─────────┐
    │ username  PK │ text    │        │ post_id PK│ integer │
    │ session_id   │ text UQ │        │ message   │ text    │
    │ password     │ text    │        │ username  │ text    │ ← author
    │ email        │ text UQ │        └──────────┴─────────┘
    │ description  │ text    │
    │ picture      │ text    │        posted (one row per appearance)
    │ name         │ text    │        ┌──────────┬─────────┐
    └──────────────┴─────────┘        │ username  │ text    │ ← poster
                                      │ post_id   │ integer │
    following                         │ timestamp │ text    │
    ┌──────────────┬─────────┐        └──────────┴─────────┘
    │ follower  PK │ text    │
    │ followee  PK │ text    │        A post is written once into `post`
    └──────────────┴─────────┘        and appears once in `posted`; every
                                      repost adds another `posted` row.

=============================================================================
CONCURRENCY
=============================================================================

sqlite3 connections are not meant to be used from several threads at
once. We open ONE connection with check_same_thread=False and serialize
every statement behind a lock:

    thread A ──┐
    thread B ──┼──► with self._lock: conn.execute(...) ──► twotter.db
    thread C ──┘

=============================================================================
FAILURES
=============================================================================

Every public method catches sqlite3.Error, logs it and returns False,
None or [] (the Portal contract). Post ids that overflow an SQLite
integer fail the same way. Constraint violations (duplicate username,
duplicate follow) are expected and logged at DEBUG.

=============================================================================
"""

import hashlib
import hmac
import html
import logging
import os
import sqlite3
import threading
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from ..session import generate_token
from .base import Portal
from .models import Account, Post


logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS user (
    username    TEXT PRIMARY KEY,
    session_id  TEXT NOT NULL UNIQUE,
    password    TEXT NOT NULL,
    email       TEXT NOT NULL UNIQUE,
    description TEXT NOT NULL DEFAULT '',
    picture     TEXT NOT NULL DEFAULT '',
    name        TEXT NOT NULL DEFAULT ''
);
CREATE TABLE IF NOT EXISTS post (
    post_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    message  TEXT NOT NULL,
    username TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS posted (
    username  TEXT NOT NULL,
    post_id   INTEGER NOT NULL,
    timestamp TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS following (
    follower TEXT NOT NULL,
    followee TEXT NOT NULL,
    PRIMARY KEY (follower, followee)
);
"""

_POST_COLUMNS = (
    "post.post_id, post.username, posted.username, posted.timestamp, "
    "post.message, user.picture"
)

GET_USER_POSTS_STATEMENT = (
    f"SELECT {_POST_COLUMNS} FROM posted "
    "JOIN post ON post.post_id = posted.post_id "
    "JOIN user ON user.username = post.username "
    "WHERE posted.username = ? "
    "ORDER BY posted.timestamp DESC, posted.rowid DESC"
)

GET_FEED_STATEMENT = (
    f"SELECT {_POST_COLUMNS} FROM posted "
    "JOIN post ON post.post_id = posted.post_id "
    "JOIN user ON user.username = post.username "
    "WHERE posted.username = ? OR posted.username IN "
    "(SELECT followee FROM following WHERE follower = ?) "
    "ORDER BY posted.timestamp DESC, posted.rowid DESC"
)

_ACCOUNT_COLUMNS = "username, email, description, picture, name"

PBKDF2_ITERATIONS = 100_000


def hash_password(password: str, salt: Optional[bytes] = None) -> str:
    """
    Hash a password as "<salt hex>$<digest hex>" (PBKDF2-SHA256).
    """
    salt = salt if salt is not None else os.urandom(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return f"{salt.hex()}${digest.hex()}"


def check_password(password: str, stored: str) -> bool:
    """Compare a password against a stored hash in constant time."""
    salt_hex, _, _ = stored.partition("$")
    try:
        salt = bytes.fromhex(salt_hex)
    except ValueError:
        return False
    return hmac.compare_digest(hash_password(password, salt), stored)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


class SQLitePortal(Portal):
    """
    Portal backed by a SQLite database file.

    Usage:
        portal = SQLitePortal("twotter.db")
        portal.create_account("alice", "hi", "a@x.org", "/pic1.jpg", "pw", "Alice")
        token = portal.session_token_for("alice")

    Use ":memory:" for a throwaway database (tests).
    """

    def __init__(
        self,
        database: str = "twotter.db",
        token_factory: Callable[[], str] = generate_token,
    ):
        """
        Open (and if needed create) the database.

        Args:
            database: Path of the database file, or ":memory:".
            token_factory: Produces the session token for new accounts.
        """
        self.database = database
        self._token_factory = token_factory
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(database, check_same_thread=False)

        with self._lock, self._conn:
            self._conn.executescript(SCHEMA)

        logger.info(f"Opened portal database {database}")

    # =========================================================================
    # LOW-LEVEL HELPERS
    # =========================================================================

    def _query(self, sql: str, params: Sequence = ()) -> list:
        """Run a SELECT and return all rows."""
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    def _write(self, sql: str, params: Sequence = ()) -> int:
        """Run one write statement in its own transaction. Returns rowcount."""
        with self._lock, self._conn:
            return self._conn.execute(sql, params).rowcount

    def _username_for(self, token: str) -> Optional[str]:
        rows = self._query("SELECT username FROM user WHERE session_id = ?", (token,))
        return rows[0][0] if rows else None

    def _accounts(self, sql: str, params: Sequence = ()) -> List[Account]:
        return [Account(*row) for row in self._query(sql, params)]

    @staticmethod
    def _posts(rows: list) -> List[Post]:
        return [Post(*row) for row in rows]

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def create_account(self, username, description, email, picture, password, display_name) -> bool:
        try:
            self._write(
                "INSERT INTO user VALUES (?, ?, ?, ?, ?, ?, ?)",
                (username, self._token_factory(), hash_password(password),
                 email, description, picture, display_name),
            )
            return True
        except sqlite3.IntegrityError as e:
            logger.debug(f"Account {username!r} not created: {e}")
        except sqlite3.Error as e:
            logger.error(f"create_account({username!r}) failed: {e}")
        return False

    def account_exists(self, username: str) -> bool:
        return self.get_account(username) is not None

    def email_taken(self, email: str) -> bool:
        try:
            return bool(self._query("SELECT 1 FROM user WHERE email = ?", (email,)))
        except sqlite3.Error as e:
            logger.error(f"email_taken failed: {e}")
            return False

    def get_account(self, username: str) -> Optional[Account]:
        try:
            accounts = self._accounts(
                f"SELECT {_ACCOUNT_COLUMNS} FROM user WHERE username = ?", (username,)
            )
        except sqlite3.Error as e:
            logger.error(f"get_account({username!r}) failed: {e}")
            return None
        return accounts[0] if accounts else None

    def verify_login(self, username: str, password: str) -> bool:
        try:
            rows = self._query("SELECT password FROM user WHERE username = ?", (username,))
        except sqlite3.Error as e:
            logger.error(f"verify_login({username!r}) failed: {e}")
            return False
        return bool(rows) and check_password(password, rows[0][0])

    def session_token_for(self, username: str) -> Optional[str]:
        try:
            rows = self._query("SELECT session_id FROM user WHERE username = ?", (username,))
        except sqlite3.Error as e:
            logger.error(f"session_token_for({username!r}) failed: {e}")
            return None
        return rows[0][0] if rows else None

    def account_for_token(self, token: str) -> Optional[str]:
        try:
            return self._username_for(token)
        except sqlite3.Error as e:
            logger.error(f"account_for_token failed: {e}")
            return None

    # =========================================================================
    # POSTS
    # =========================================================================

    def create_post(self, body: str, author: str) -> bool:
        try:
            with self._lock, self._conn:
                cursor = self._conn.execute(
                    "INSERT INTO post (message, username) VALUES (?, ?)", (body, author)
                )
                self._conn.execute(
                    "INSERT INTO posted VALUES (?, ?, ?)", (author, cursor.lastrowid, _now())
                )
            return True
        except sqlite3.Error as e:
            logger.error(f"create_post by {author!r} failed: {e}")
            return False

    def delete_post(self, post_id: int) -> bool:
        try:
            with self._lock, self._conn:
                self._conn.execute("DELETE FROM posted WHERE post_id = ?", (post_id,))
                deleted = self._conn.execute(
                    "DELETE FROM post WHERE post_id = ?", (post_id,)
                ).rowcount
            return deleted > 0
        except (sqlite3.Error, OverflowError) as e:
            logger.error(f"delete_post({post_id}) failed: {e}")
            return False

    def repost(self, token: str, post_id: int) -> bool:
        try:
            username = self._username_for(token)
            if username is None:
                return False
            if not self._query("SELECT 1 FROM post WHERE post_id = ?", (post_id,)):
                return False
            self._write("INSERT INTO posted VALUES (?, ?, ?)", (username, post_id, _now()))
            return True
        except (sqlite3.Error, OverflowError) as e:
            logger.error(f"repost({post_id}) failed: {e}")
            return False

    def feed_for(self, username: str) -> List[Post]:
        try:
            posts = self._posts(self._query(GET_FEED_STATEMENT, (username, username)))
        except sqlite3.Error as e:
            logger.error(f"feed_for({username!r}) failed: {e}")
            return []

        # Each post once, at its most recent appearance.
        seen = set()
        feed = []
        for post in posts:
            if post.post_id not in seen:
                seen.add(post.post_id)
                feed.append(post)
        return feed

    def posts_by(self, username: str) -> List[Post]:
        try:
            return self._posts(self._query(GET_USER_POSTS_STATEMENT, (username,)))
        except sqlite3.Error as e:
            logger.error(f"posts_by({username!r}) failed: {e}")
            return []

    # =========================================================================
    # FOLLOWS
    # =========================================================================

    def follow(self, token: str, target: str) -> bool:
        try:
            follower = self._username_for(token)
            if follower is None or not self.account_exists(target):
                return False
            self._write("INSERT INTO following VALUES (?, ?)", (follower, target))
            return True
        except sqlite3.IntegrityError:
            logger.debug(f"Already following {target!r}")
        except sqlite3.Error as e:
            logger.error(f"follow({target!r}) failed: {e}")
        return False

    def unfollow(self, token: str, target: str) -> bool:
        try:
            follower = self._username_for(token)
            if follower is None:
                return False
            return self._write(
                "DELETE FROM following WHERE follower = ? AND followee = ?", (follower, target)
            ) > 0
        except sqlite3.Error as e:
            logger.error(f"unfollow({target!r}) failed: {e}")
            return False

    def is_following(self, follower: str, followee: str) -> bool:
        try:
            return bool(self._query(
                "SELECT 1 FROM following WHERE follower = ? AND followee = ?",
                (follower, followee),
            ))
        except sqlite3.Error as e:
            logger.error(f"is_following failed: {e}")
            return False

    def followers_of(self, username: str) -> List[Account]:
        try:
            return self._accounts(
                f"SELECT {_ACCOUNT_COLUMNS} FROM user WHERE username IN "
                "(SELECT follower FROM following WHERE followee = ?) ORDER BY username",
                (username,),
            )
        except sqlite3.Error as e:
            logger.error(f"followers_of({username!r}) failed: {e}")
            return []

    def followees_of(self, username: str) -> List[Account]:
        try:
            return self._accounts(
                f"SELECT {_ACCOUNT_COLUMNS} FROM user WHERE username IN "
                "(SELECT followee FROM following WHERE follower = ?) ORDER BY username",
                (username,),
            )
        except sqlite3.Error as e:
            logger.error(f"followees_of({username!r}) failed: {e}")
            return []

    # =========================================================================
    # SEARCH & PROFILE EDITS
    # =========================================================================

    def search_accounts(self, term: str) -> List[Account]:
        try:
            # instr() rather than LIKE so "%" and "_" in the term are literal.
            return self._accounts(
                f"SELECT {_ACCOUNT_COLUMNS} FROM user "
                "WHERE instr(lower(username), lower(?)) > 0 "
                "OR instr(lower(name), lower(?)) > 0 ORDER BY username",
                (term, term),
            )
        except sqlite3.Error as e:
            logger.error(f"search_accounts({term!r}) failed: {e}")
            return []

    def _set_column(self, column: str, token: str, value: str) -> bool:
        try:
            return self._write(
                f"UPDATE user SET {column} = ? WHERE session_id = ?", (value, token)
            ) > 0
        except sqlite3.Error as e:
            logger.error(f"Updating {column} failed: {e}")
            return False

    def set_display_name(self, token: str, value: str) -> bool:
        return self._set_column("name", token, value)

    def set_description(self, token: str, value: str) -> bool:
        return self._set_column("description", token, value)

    def set_picture(self, token: str, value: str) -> bool:
        return self._set_column("picture", token, value)

    # =========================================================================
    # HTML FRAGMENTS
    # =========================================================================

    def render_account_html(self, account: Account) -> str:
        username = html.escape(account.username)
        return (
            '<div class="account">'
            f'<img class="picture" src="{html.escape(account.picture)}" alt="">'
            f'<a class="name" href="/{username}">{html.escape(account.display_name)}</a>'
            f'<span class="handle">@{username}</span>'
            f'<p class="description">{html.escape(account.description)}</p>'
            f'<a class="followers" href="/followers.html?username={username}">Followers</a>'
            f'<a class="following" href="/following.html?username={username}">Following</a>'
            '</div>'
        )

    def render_post_html(self, post: Post) -> str:
        author = html.escape(post.author)
        resqueaked = ""
        if post.is_repost:
            resqueaked = f'<span class="resqueak">resqueaked by {html.escape(post.poster)}</span>'
        return (
            f'<div class="post" id="post-{post.post_id}">'
            f'<img class="picture" src="{html.escape(post.picture)}" alt="">'
            f'<a class="author" href="/{author}">@{author}</a>'
            f'{resqueaked}'
            f'<span class="timestamp">{html.escape(post.timestamp)}</span>'
            f'<p class="message">{html.escape(post.message)}</p>'
            f'<a class="resqueak-link" href="?resqueak={post.post_id}">Resqueak</a>'
            f'<a class="delete-link" href="?delete={post.post_id}">Delete</a>'
            '</div>'
        )

    def close(self) -> None:
        with self._lock:
            self._conn.close()
