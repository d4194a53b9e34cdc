"""
Unit tests for the static file handler.
"""

import pytest

from twotter.handlers import StaticFileHandler
from twotter.http import ResponseWriter, HTTPStatus
from twotter.http.mime_types import get_content_type

from conftest import BufferConnection, parse_response


@pytest.fixture
def root(tmp_path):
    (tmp_path / "style.css").write_text("body { color: red; }")
    (tmp_path / "big.png").write_bytes(bytes(range(256)) * 10)
    (tmp_path / "notes").write_text("plain")
    return tmp_path


def serve(handler, path, **kwargs):
    conn = BufferConnection()
    served = handler.serve(path, ResponseWriter(conn), **kwargs)
    return served, conn


class TestServe:
    """Tests for StaticFileHandler.serve()."""

    def test_serves_file(self, root):
        served, conn = serve(StaticFileHandler(root), "/style.css")

        response = parse_response(conn.sent)
        assert served
        assert response.status == 200
        assert response.headers["Content-Type"] == "text/css"
        assert response.headers["Connection"] == "close"
        assert "Content-Length" not in response.headers
        assert response.body == b"body { color: red; }"

    def test_streams_in_chunks(self, root):
        """Test large files are written chunk by chunk."""
        handler = StaticFileHandler(root, chunk_size=1000)
        writes = []

        class RecordingWriter(ResponseWriter):
            def write(self, chunk):
                writes.append(len(chunk))
                super().write(chunk)

        conn = BufferConnection()
        assert handler.serve("/big.png", RecordingWriter(conn))

        assert writes == [1000, 1000, 560]
        assert parse_response(conn.sent).body == (root / "big.png").read_bytes()

    def test_missing_file(self, root):
        """Test nothing is written for a missing file."""
        served, conn = serve(StaticFileHandler(root), "/missing.html")

        assert not served
        assert conn.sent == b""

    def test_status_and_cookie(self, root):
        served, conn = serve(
            StaticFileHandler(root), "/style.css", status=HTTPStatus.NOT_FOUND, cookie="tok"
        )

        response = parse_response(conn.sent)
        assert response.status == 404
        assert response.cookie == "tok"

    def test_unknown_extension_is_plain_text(self, root):
        _, conn = serve(StaticFileHandler(root), "/notes")

        assert parse_response(conn.sent).headers["Content-Type"] == "text/plain"

    @pytest.mark.parametrize("path", ["/../secret", "/a/../../etc/passwd", "/a..b.txt"])
    def test_dotdot_never_touches_filesystem(self, root, path):
        """Test any path with .. is refused before opening anything."""
        opened = []

        class SpyHandler(StaticFileHandler):
            def _open(self, path):
                opened.append(path)
                return super()._open(path)

        served, conn = serve(SpyHandler(root), path)

        assert not served
        assert opened == []
        assert conn.sent == b""

    def test_nul_in_path_is_not_found(self, root):
        """Test a path the filesystem rejects outright is treated as missing."""
        served, conn = serve(StaticFileHandler(root), "/a\x00b.css")

        assert not served
        assert conn.sent == b""


class TestContentTypes:
    """Tests for get_content_type()."""

    @pytest.mark.parametrize("path,expected", [
        ("/a.txt", "text/plain"),
        ("/a.html", "text/html"),
        ("/a.htm", "text/html"),
        ("/a.jpg", "image/jpeg"),
        ("/a.gif", "image/gif"),
        ("/a.png", "image/png"),
        ("/a.css", "text/css"),
        ("/a.js", "text/javascript"),
        ("/a.svg", "text/plain"),
        ("/Makefile", "text/plain"),
    ])
    def test_content_type(self, path, expected):
        assert get_content_type(path) == expected
