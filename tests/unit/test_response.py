"""
Unit tests for HTTP response building and writing.
"""

from twotter.http.response import (
    HTTPResponse,
    ResponseWriter,
    INVALID_REQUEST_BODY,
    NOT_FOUND_BODY,
)
from twotter.http.status_codes import HTTPStatus

from conftest import BufferConnection, parse_response


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        assert HTTPResponse(status=HTTPStatus.OK).status_line == "HTTP/1.1 200 OK"
        assert HTTPResponse(status=HTTPStatus.NOT_FOUND).status_line == "HTTP/1.1 404 Not Found"

    def test_to_bytes_includes_headers(self):
        """Test serialization keeps header order."""
        response = HTTPResponse(status=HTTPStatus.OK, body=b"hi")
        response.set_header("Content-Length", "2").set_header("Content-Type", "text/plain")

        assert response.to_bytes() == (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Length: 2\r\n"
            b"Content-Type: text/plain\r\n"
            b"\r\n"
            b"hi"
        )

    def test_set_cookie_none_adds_nothing(self):
        """Test that no token means no Set-Cookie."""
        response = HTTPResponse().set_cookie(None)

        assert "Set-Cookie" not in response.headers

    def test_set_cookie(self):
        response = HTTPResponse().set_cookie("abc")

        assert response.headers["Set-Cookie"] == "session=abc"


class TestResponseWriter:
    """Tests for ResponseWriter class."""

    def test_send_normal_response(self):
        """Test a complete response carries Content-Length and Content-Type."""
        conn = BufferConnection()
        writer = ResponseWriter(conn)

        writer.send(HTTPStatus.OK, "text/html", "<p>héllo</p>")

        response = parse_response(conn.sent)
        assert response.status == 200
        assert response.header_names == ["Content-Length", "Content-Type"]
        assert response.headers["Content-Length"] == str(len("<p>héllo</p>".encode()))
        assert response.body == "<p>héllo</p>".encode()
        assert writer.status == HTTPStatus.OK
        assert writer.body_bytes == len(response.body)

    def test_send_with_cookie(self):
        """Test the cookie header follows Content-Type."""
        conn = BufferConnection()
        ResponseWriter(conn).send(HTTPStatus.OK, "text/html", b"x", cookie="qwertyuiopasdfghjklz")

        response = parse_response(conn.sent)
        assert response.header_names == ["Content-Length", "Content-Type", "Set-Cookie"]
        assert response.cookie == "qwertyuiopasdfghjklz"

    def test_header_only_then_stream(self):
        """Test the streamed shape: Connection: close, no Content-Length."""
        conn = BufferConnection()
        writer = ResponseWriter(conn)

        assert not writer.started
        writer.send_header(HTTPStatus.OK, "image/png")
        assert writer.started
        writer.write(b"abc")
        writer.write(b"def")
        writer.flush()

        response = parse_response(conn.sent)
        assert response.header_names == ["Connection", "Content-Type"]
        assert response.headers["Connection"] == "close"
        assert response.body == b"abcdef"
        assert writer.body_bytes == 6

    def test_invalid_request(self):
        """Test the fixed 500 page."""
        conn = BufferConnection()
        ResponseWriter(conn).send_invalid_request()

        response = parse_response(conn.sent)
        assert response.status == 500
        assert response.reason == "Internal Server Error"
        assert response.body == INVALID_REQUEST_BODY
        assert response.body == b"<html><body>Error - invalid Request</body></html>"

    def test_not_found_fallback(self):
        conn = BufferConnection()
        ResponseWriter(conn).send_not_found_fallback()

        response = parse_response(conn.sent)
        assert response.status == 404
        assert response.body == NOT_FOUND_BODY


class TestHTTPStatus:
    """Tests for HTTPStatus enum."""

    def test_status_phrases(self):
        """Test status phrases."""
        assert HTTPStatus.OK.phrase == "OK"
        assert HTTPStatus.NOT_FOUND.phrase == "Not Found"
        assert HTTPStatus.INTERNAL_SERVER_ERROR.phrase == "Internal Server Error"

    def test_status_categories(self):
        """Test status category properties."""
        assert not HTTPStatus.OK.is_error
        assert HTTPStatus.NOT_FOUND.is_error
        assert HTTPStatus.INTERNAL_SERVER_ERROR.is_error
