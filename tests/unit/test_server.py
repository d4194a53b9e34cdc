"""
Integration tests: a real server over real sockets.
"""

import socket

from twotter.http.response import INVALID_REQUEST_BODY
from twotter.server import TwotterServer
from twotter.session import ANONYMOUS_TOKEN

from conftest import BufferConnection, parse_response


class TestOverSockets:
    """Requests sent to a running TwotterServer."""

    def test_login_page(self, test_server, assets_dir):
        response = test_server.get("/Login.html")

        assert response.status == 200
        assert response.headers["Connection"] == "close"
        assert response.body == (assets_dir / "Login.html").read_bytes()

    def test_cookie_round_trip(self, test_server, make_account):
        """Test the cookie set at login authenticates the next request."""
        make_account("alice", password="pw")

        login = test_server.get("/?username=alice&password=pw")
        token = login.cookie

        assert login.status == 200
        assert token is not None

        test_server.get("/?post=Over+the+wire", cookie=token)
        feed = test_server.get("/home", cookie=token)

        assert b"Over the wire" in feed.body

    def test_logout_clears_cookie(self, test_server, make_account):
        alice = make_account("alice")

        response = test_server.get("/Logout", cookie=alice.token)

        assert response.cookie == ANONYMOUS_TOKEN

    def test_unknown_cookie_is_anonymous(self, test_server, assets_dir):
        response = test_server.get("/home", cookie="notarealtokenatall00")

        assert response.body == (assets_dir / "Login.html").read_bytes()

    def test_invalid_request(self, test_server):
        raw = test_server.send_raw(b"DELETE /home HTTP/1.1\r\nHost: x\r\n\r\n")

        response = parse_response(raw)
        assert response.status == 500
        assert response.body == INVALID_REQUEST_BODY

    def test_peer_closes_early(self, test_server):
        """Test a client that hangs up mid-headers gets nothing and the server lives on."""
        with socket.create_connection(("127.0.0.1", test_server.port), timeout=5.0) as s:
            s.sendall(b"GET / HTTP/1.1\r\nHost: x\r\n")
            s.shutdown(socket.SHUT_WR)
            assert s.recv(1024) == b""

        assert test_server.get("/Login.html").status == 200


class TestHandleConnection:
    """handle_connection() driven synchronously with an in-memory connection."""

    def test_closes_connection(self, portal):
        server = TwotterServer(portal=portal)
        conn = BufferConnection(["GET /Login.html HTTP/1.1", ""])

        server.handle_connection(conn)

        assert conn.closed
        assert parse_response(conn.sent).status == 200

    def test_unexpected_error_sends_nothing(self, portal):
        server = TwotterServer(portal=portal)

        def explode(request, session, writer):
            raise RuntimeError("boom")

        server._dispatcher.dispatch = explode
        conn = BufferConnection(["GET / HTTP/1.1", ""])

        server.handle_connection(conn)

        assert conn.closed
        assert conn.sent == b""
