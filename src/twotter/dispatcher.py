"""
=============================================================================
REQUEST DISPATCHER
=============================================================================

Decides what a request means and produces its response. There is no
route table: the raw target is tested against an ordered list of
conditions and the FIRST match wins.

=============================================================================
ANONYMOUS VISITORS
=============================================================================

    target == "/makeaprofile"                         → signup form
    target starts "/makeaprofile" + all signup fields → create account
    target contains "."                               → static file
    target contains "username=" and "password="       → log in
    anything else                                     → Login.html

=============================================================================
LOGGED-IN VISITORS
=============================================================================

     1  "/", "/home", "/twotter"                  → feed
     2  "/Logout"                                 → forget cookie, Login.html
     3  "/followers.html" | "/following.html"
        with "username="                          → follow list page
     4  "username=" + "password=", no "image="    → log in again
     5  "delete="                                 → delete, then refresh
     6  "post="                                    → new post, feed
     7  "resqueak="                               → repost, then refresh
     8  "unfollow="                               → unfollow, feed
     9  "follow="                                 → follow, feed
    10  "search="                                 → search results
    11  "/EditProfile" + name/description/image   → edit profile, feed
    12  "/<existing username>"                    → profile
    13  ends .css .js .jpg .html .png             → static file
    14  anything else                             → 404

"unfollow=" contains "follow=", so the order of 8 and 9 matters.

=============================================================================
REFRESH AFTER DELETE / RESQUEAK
=============================================================================

Post links are relative ("?delete=7"), so the target still names the
page the user was on. After the action we show that page again:

    /alice?delete=7          (alice's session)  → alice's profile
    /home?delete=7                              → feed
    /?search=bo&delete=7                        → dispatch "/?search=bo"

The last case cuts the target just before the marker and dispatches the
remainder as a fresh request.

=============================================================================
"""

import logging
import re
from typing import List, Optional

from .handlers.static import StaticFileHandler
from .http import decoding
from .http.decoding import decode
from .http.request import HTTPRequest, RequestParser
from .http.response import ResponseWriter
from .http.status_codes import HTTPStatus
from .session import ANONYMOUS_TOKEN, Session
from .storage.base import Portal
from .storage.models import Account, Post
from .templates import TemplateNotFoundError, TemplateRenderer


logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# ASSET NAMES
# ─────────────────────────────────────────────────────────────────────────────

LOGIN_PAGE = "/Login.html"
LOGIN_ERROR_PAGE = "/LoginError.html"
SIGNUP_PAGE = "/makeAProfile.html"
NOT_FOUND_PAGE = "/404.html"

PAGE_TEMPLATE = "template.html"
PEOPLE_TEMPLATE = "people.html"
NOTHING_HERE = "nothing_here.html"

COMPOSE_BUTTON = "compose_button.html"
EDIT_BUTTON = "edit_button.html"
FOLLOW_BUTTON = "follow_button.html"
UNFOLLOW_BUTTON = "unfollow_button.html"

# ─────────────────────────────────────────────────────────────────────────────
# TARGETS AND MARKERS
# ─────────────────────────────────────────────────────────────────────────────

SIGNUP_PATH = "/makeaprofile"
SIGNUP_FIELDS = ("username=", "password=", "email=", "name=", "description=", "image=")
FEED_TARGETS = ("/", "/home", "/twotter")
LOGOUT_TARGET = "/Logout"
FOLLOW_LIST_PAGES = ("/followers.html", "/following.html")
EDIT_PATH = "/EditProfile"
EDIT_FIELDS = ("name=", "description=", "image=")
NAVIGATION_PREFIXES = ("/home", "/Logout", "/makeAProfile", "/EditProfile")
STATIC_SUFFIXES = (".css", ".js", ".jpg", ".html", ".png")

_INTEGER = re.compile(r"[+-]?\d+")
# Ids outside a 32-bit int are treated as non-numeric.
INT_MIN, INT_MAX = -2**31, 2**31 - 1


class Dispatcher:
    """
    Chooses and performs the action for one request.

    Usage:
        dispatcher = Dispatcher(portal, renderer, static)
        session = dispatcher.dispatch(request, session, writer)

    dispatch() returns the session as it stands after the request: a new
    one after login or signup, the anonymous one after logout.
    """

    def __init__(
        self,
        portal: Portal,
        renderer: TemplateRenderer,
        static: StaticFileHandler,
        parser: Optional[RequestParser] = None,
    ):
        self._portal = portal
        self._renderer = renderer
        self._static = static
        self._parser = parser or RequestParser()

    def dispatch(self, request: HTTPRequest, session: Session, writer: ResponseWriter) -> Session:
        """
        Perform the action for a request and write its response.

        A missing template turns into a 404 as long as nothing has been
        written yet.
        """
        try:
            if session.is_authenticated:
                return self._dispatch_authenticated(request, session, writer)
            return self._dispatch_anonymous(request, session, writer)
        except TemplateNotFoundError as e:
            logger.warning(f"{request.raw_target}: {e}")
            if not writer.started:
                self._not_found(writer)
            return session

    # =========================================================================
    # ANONYMOUS
    # =========================================================================

    def _dispatch_anonymous(self, request: HTTPRequest, session: Session, writer: ResponseWriter) -> Session:
        target = request.raw_target

        if target == SIGNUP_PATH:
            self._serve_file(SIGNUP_PAGE, writer)
            return session

        if target.startswith(SIGNUP_PATH) and all(field in target for field in SIGNUP_FIELDS):
            return self._signup(request, session, writer)

        if "." in target:
            if not self._static.serve(request.path, writer):
                self._not_found(writer)
            return session

        if "username=" in target and "password=" in target:
            return self._login(request, session, writer)

        self._serve_file(LOGIN_PAGE, writer)
        return session

    def _signup(self, request: HTTPRequest, session: Session, writer: ResponseWriter) -> Session:
        """
        Create an account from the signup form and log it in.

        The form is served again when the username or email is taken or
        the account can't be created.
        """
        username = decode(self._value(request, "username"), decoding.CREDENTIALS)
        password = decode(self._value(request, "password"), decoding.CREDENTIALS)
        email = decode(self._value(request, "email"), decoding.CREDENTIALS)
        picture = "/" + decode(self._value(request, "image"), decoding.CREDENTIALS)
        display_name = decode(self._value(request, "name"), decoding.SIGNUP_TEXT)
        description = decode(self._value(request, "description"), decoding.SIGNUP_TEXT)

        if not username or not password:
            logger.info("Signup refused: empty username or password")
            self._serve_file(SIGNUP_PAGE, writer)
            return session

        if self._portal.account_exists(username) or self._portal.email_taken(email):
            logger.info(f"Signup refused: {username!r} or its email is taken")
            self._serve_file(SIGNUP_PAGE, writer)
            return session

        created = self._portal.create_account(
            username, description, email, picture, password, display_name
        )
        token = self._portal.session_token_for(username) if created else None
        if token is None:
            logger.warning(f"Signup failed for {username!r}")
            self._serve_file(SIGNUP_PAGE, writer)
            return session

        logger.info(f"New account {username!r}")
        new_session = Session(token=token, username=username)
        self._render_feed(new_session, writer, cookie=token)
        return new_session

    def _login(self, request: HTTPRequest, session: Session, writer: ResponseWriter) -> Session:
        username = decode(self._value(request, "username"), decoding.CREDENTIALS)
        password = decode(self._value(request, "password"), decoding.CREDENTIALS)

        token = None
        if username and password and self._portal.verify_login(username, password):
            token = self._portal.session_token_for(username)

        if token is None:
            logger.info(f"Failed login for {username!r}")
            self._serve_file(LOGIN_ERROR_PAGE, writer)
            return session

        logger.info(f"{username!r} logged in")
        new_session = Session(token=token, username=username)
        self._render_feed(new_session, writer, cookie=token)
        return new_session

    # =========================================================================
    # AUTHENTICATED
    # =========================================================================

    def _dispatch_authenticated(self, request: HTTPRequest, session: Session, writer: ResponseWriter) -> Session:
        target = request.raw_target
        user = session.username

        if target in FEED_TARGETS:
            self._render_feed(session, writer)
            return session

        if target == LOGOUT_TARGET:
            logger.info(f"{user!r} logged out")
            self._serve_file(LOGIN_PAGE, writer, cookie=ANONYMOUS_TOKEN)
            return Session.anonymous()

        if any(page in target for page in FOLLOW_LIST_PAGES) and "username=" in target:
            self._render_follow_list(request, session, writer)
            return session

        if "username=" in target and "password=" in target and "image=" not in target:
            return self._login(request, session, writer)

        if "delete=" in target:
            post_id = self._int_value(request, "delete")
            if post_id is None:
                self._render_feed(session, writer)
                return session
            self._portal.delete_post(post_id)
            return self._refresh(request, session, writer, "delete=")

        if "post=" in target:
            body = decode(self._value(request, "post"), decoding.POST_BODY)
            self._portal.create_post(body, user)
            self._render_feed(session, writer)
            return session

        if "resqueak=" in target:
            post_id = self._int_value(request, "resqueak")
            if post_id is None:
                self._render_feed(session, writer)
                return session
            self._portal.repost(session.token, post_id)
            return self._refresh(request, session, writer, "resqueak=")

        if "unfollow=" in target:
            self._portal.unfollow(session.token, decode(self._value(request, "unfollow"), decoding.RAW))
            self._render_feed(session, writer)
            return session

        if "follow=" in target:
            self._portal.follow(session.token, decode(self._value(request, "follow"), decoding.RAW))
            self._render_feed(session, writer)
            return session

        if "search=" in target:
            self._render_search(request, session, writer)
            return session

        if target.startswith(EDIT_PATH) and all(field in target for field in EDIT_FIELDS):
            self._edit_profile(request, session)
            self._render_feed(session, writer)
            return session

        if self._portal.account_exists(target[1:]):
            self._render_profile(target[1:], session, writer)
            return session

        if target.endswith(STATIC_SUFFIXES):
            if not self._static.serve(request.path, writer):
                self._not_found(writer)
            return session

        self._not_found(writer)
        return session

    def _refresh(self, request: HTTPRequest, session: Session, writer: ResponseWriter, marker: str) -> Session:
        """Show the page the user acted from again."""
        target = request.raw_target

        if target.startswith("/" + session.username):
            self._render_profile(session.username, session, writer)
            return session

        if target.startswith(NAVIGATION_PREFIXES):
            self._render_feed(session, writer)
            return session

        # Drop the marker and the "?" or "&" before it.
        cut = max(target.index(marker) - 1, 0)
        residual = self._parser.parse_target(target[:cut], request.method, request.version)
        return self.dispatch(residual, session, writer)

    def _edit_profile(self, request: HTTPRequest, session: Session) -> None:
        """Apply the non-empty fields of the edit-profile form."""
        display_name = decode(self._value(request, "name"), decoding.EDIT_TEXT)
        description = decode(self._value(request, "description"), decoding.EDIT_TEXT)
        picture = decode(self._value(request, "image"), decoding.CREDENTIALS)

        if display_name:
            self._portal.set_display_name(session.token, display_name)
        if description:
            self._portal.set_description(session.token, description)
        if picture:
            self._portal.set_picture(session.token, "/" + picture)

    # =========================================================================
    # PAGES
    # =========================================================================

    def _render_feed(self, session: Session, writer: ResponseWriter, cookie: Optional[str] = None) -> None:
        user = session.username
        page = self._renderer.render(
            PAGE_TEMPLATE,
            viewer=user,
            viewed=user,
            user_info=self._account_html(self._portal.get_account(user)),
            posts=self._posts_html(self._portal.feed_for(user)),
            button=self._renderer.fragment(COMPOSE_BUTTON, user, user),
        )
        writer.send(HTTPStatus.OK, "text/html", page, cookie=cookie)

    def _render_profile(self, username: str, session: Session, writer: ResponseWriter) -> None:
        account = self._portal.get_account(username)
        if account is None:
            self._not_found(writer)
            return

        viewer = session.username
        if username == viewer:
            button = EDIT_BUTTON
        elif self._portal.is_following(viewer, username):
            button = UNFOLLOW_BUTTON
        else:
            button = FOLLOW_BUTTON

        page = self._renderer.render(
            PAGE_TEMPLATE,
            viewer=viewer,
            viewed=username,
            user_info=self._account_html(account),
            posts=self._posts_html(self._portal.posts_by(username)),
            button=self._renderer.fragment(button, viewer, username),
        )
        writer.send(HTTPStatus.OK, "text/html", page)

    def _render_follow_list(self, request: HTTPRequest, session: Session, writer: ResponseWriter) -> None:
        """followers.html?username=bob lists bob's followers; following.html whom bob follows."""
        username = decode(self._value(request, "username"), decoding.RAW)
        account = self._portal.get_account(username)
        if account is None:
            self._not_found(writer)
            return

        if FOLLOW_LIST_PAGES[0] in request.raw_target:
            accounts = self._portal.followers_of(username)
        else:
            accounts = self._portal.followees_of(username)

        page = self._renderer.render(
            PEOPLE_TEMPLATE,
            viewer=session.username,
            viewed=username,
            user_info=self._account_html(account),
            posts=self._accounts_html(accounts),
        )
        writer.send(HTTPStatus.OK, "text/html", page)

    def _render_search(self, request: HTTPRequest, session: Session, writer: ResponseWriter) -> None:
        term = decode(self._value(request, "search"), decoding.SEARCH_TERM)
        page = self._renderer.render(
            PEOPLE_TEMPLATE,
            viewer=session.username,
            viewed=term,
            posts=self._accounts_html(self._portal.search_accounts(term)),
        )
        writer.send(HTTPStatus.OK, "text/html", page)

    def _account_html(self, account: Optional[Account]) -> str:
        return self._portal.render_account_html(account) if account is not None else ""

    def _posts_html(self, posts: List[Post]) -> str:
        if not posts:
            return self._nothing_here()
        return "".join(self._portal.render_post_html(post) for post in posts)

    def _accounts_html(self, accounts: List[Account]) -> str:
        if not accounts:
            return self._nothing_here()
        return "".join(self._portal.render_account_html(account) for account in accounts)

    def _nothing_here(self) -> str:
        return self._renderer.load(NOTHING_HERE).decode("utf-8", errors="replace")

    # =========================================================================
    # WHOLE-FILE RESPONSES
    # =========================================================================

    def _serve_file(self, path: str, writer: ResponseWriter, cookie: Optional[str] = None) -> None:
        """Stream an asset as is, or 404 if it is missing."""
        if not self._static.serve(path, writer, cookie=cookie):
            self._not_found(writer)

    def _not_found(self, writer: ResponseWriter) -> None:
        if not self._static.serve(NOT_FOUND_PAGE, writer, status=HTTPStatus.NOT_FOUND):
            writer.send_not_found_fallback()

    # =========================================================================
    # QUERY VALUES
    # =========================================================================

    @staticmethod
    def _value(request: HTTPRequest, key: str) -> str:
        """
        Value of a form field, still escaped.

        Falls back to the raw text after "<key>=" when the marker only
        appears inside another piece of the target.
        """
        if request.has_query(key):
            return request.get_query(key)

        marker = f"{key}="
        _, found, rest = request.raw_target.partition(marker)
        return rest if found else ""

    @classmethod
    def _int_value(cls, request: HTTPRequest, key: str) -> Optional[int]:
        value = cls._value(request, key)
        if _INTEGER.fullmatch(value) is None:
            return None
        number = int(value)
        if not INT_MIN <= number <= INT_MAX:
            return None
        return number
