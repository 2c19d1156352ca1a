"""
Unit tests for the command-line entry point.
"""

import json
import logging

import pytest

from httpbody.__main__ import build_parser, main, preview
from httpbody.body.parser import BodyParser


@pytest.fixture(autouse=True)
def restore_logging():
    """main() configures the httpbody logger; put it back afterwards."""
    logger = logging.getLogger("httpbody")
    previous = logger.level
    yield
    logger.setLevel(previous)


@pytest.fixture
def write_request(tmp_path):
    def factory(raw: bytes):
        path = tmp_path / "request.http"
        path.write_bytes(raw)
        return str(path)
    return factory


class TestMain:
    """Tests for main()."""

    def test_json_request(self, write_request, capsys):
        """Test that a JSON body is printed as its payload."""
        path = write_request(
            b"POST /users HTTP/1.1\r\n"
            b"Content-Type: application/json\r\n"
            b"Content-Length: 7\r\n"
            b"\r\n"
            b'{"a":1}'
        )

        assert main([path]) == 0

        output = json.loads(capsys.readouterr().out)
        assert output == {
            "method": "POST",
            "path": "/users",
            "content_type": "application/json",
            "kind": "json",
            "payload": {"a": 1},
        }

    def test_bare_newlines(self, write_request, capsys):
        """Test that hand-written files with \\n line endings work."""
        path = write_request(
            b"POST /form HTTP/1.1\n"
            b"Content-Type: application/x-www-form-urlencoded\n"
            b"Content-Length: 7\n"
            b"\n"
            b"a=1&a=2"
        )

        assert main([path]) == 0
        assert json.loads(capsys.readouterr().out)["payload"] == {"a": ["1", "2"]}

    def test_malformed_body(self, write_request, capsys):
        """Test that a rejected body exits 1 with the reason on stderr."""
        path = write_request(
            b"POST / HTTP/1.1\r\n"
            b"Content-Type: application/json\r\n"
            b"Content-Length: 9\r\n"
            b"\r\n"
            b"<not json"
        )

        assert main([path]) == 1

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "400 malformed body" in captured.err

    def test_max_body_size_flag(self, write_request, capsys):
        """Test that --max-body-size overrides the default limit."""
        path = write_request(
            b"POST / HTTP/1.1\r\n"
            b"Content-Type: text/plain\r\n"
            b"Content-Length: 10\r\n"
            b"\r\n"
            b"0123456789"
        )

        assert main([path, "--max-body-size", "5"]) == 1
        assert "413" in capsys.readouterr().err

    def test_charset_flag(self, write_request, capsys):
        """Test that --charset sets the fallback charset."""
        path = write_request(
            b"POST / HTTP/1.1\r\n"
            b"Content-Type: text/plain\r\n"
            b"Content-Length: 4\r\n"
            b"\r\n"
            b"caf\xe9"
        )

        assert main([path, "--charset", "latin-1"]) == 0
        assert json.loads(capsys.readouterr().out)["payload"] == "café"

    def test_env_overridden_by_flag(self, write_request, capsys, monkeypatch):
        """Test that flags win over environment variables."""
        monkeypatch.setenv("HTTPBODY_MAX_BODY_SIZE", "1")
        path = write_request(b"POST / HTTP/1.1\r\nContent-Length: 3\r\n\r\nabc")

        assert main([path]) == 1
        capsys.readouterr()
        assert main([path, "-m", "100"]) == 0

    def test_invalid_request_line(self, write_request, capsys):
        """Test that a broken request is reported."""
        path = write_request(b"NOPE\r\n\r\n")

        assert main([path]) == 1
        assert "Error" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        """Test that an unreadable file exits 1."""
        assert main([str(tmp_path / "missing.http")]) == 1
        assert "Error" in capsys.readouterr().err

    def test_invalid_charset_option(self, write_request, capsys):
        """Test that an unknown --charset is rejected up front."""
        path = write_request(b"GET / HTTP/1.1\r\n\r\n")

        assert main([path, "--charset", "klingon"]) == 1
        assert "default_charset" in capsys.readouterr().err


class TestPreview:
    """Tests for payload rendering."""

    def test_raw_preview(self):
        """Test that raw bodies are summarized."""
        body = BodyParser().parse_bytes(None, b"\x00" * 1000)
        rendered = preview(body)

        assert rendered["size"] == 1000
        assert len(rendered["head"]) == 256

    def test_xml_preview(self):
        """Test that XML is serialized back to text."""
        body = BodyParser().parse_bytes("application/xml", b"<a><b>1</b></a>")
        assert preview(body) == "<a><b>1</b></a>"

    def test_multipart_preview(self, multipart_body, multipart_type):
        """Test that uploaded files are summarized, not dumped."""
        body = BodyParser().parse_bytes(
            multipart_type,
            multipart_body({"t": "x"}, files={"f": ("a.bin", "application/octet-stream", b"123")}),
        )

        assert preview(body) == {
            "fields": {"t": ["x"]},
            "files": {"f": [{"filename": "a.bin", "content_type": "application/octet-stream", "size": 3}]},
        }
        body.close()


class TestBuildParser:
    """Tests for argument parsing."""

    def test_defaults(self):
        """Test that options default to None so env values apply."""
        args = build_parser().parse_args(["req.http"])

        assert args.file == "req.http"
        assert args.max_body_size is None
        assert args.charset is None
        assert args.log_level is None
