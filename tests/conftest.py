"""
pytest configuration and fixtures.
"""

from typing import Callable, Dict, List, Optional, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from httpbody.body.parser import BodyParser
from httpbody.config import ParserConfig
from httpbody.http.request import HTTPRequest


BOUNDARY = "----httpbodyBoundary7MA4YWxk"


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/users?page=1&limit=10&tag=a&tag=b HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"Cookie: session=abc123; Demo=1\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return (
        b"POST /api/users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        b"Content-Length: %d\r\n"
        b"\r\n"
    ) % len(body) + body


@pytest.fixture
def config() -> ParserConfig:
    """Small-limit parser configuration."""
    return ParserConfig(
        max_body_size=1024,
        chunk_size=16,
        multipart_spool_size=64,
        max_parts=10,
    )


@pytest.fixture
def parser(config: ParserConfig) -> BodyParser:
    return BodyParser(config)


@pytest.fixture
def make_request() -> Callable[..., HTTPRequest]:
    """Factory for POST envelopes with a given Content-Type and body."""
    def factory(
        content_type: Optional[str],
        body: bytes = b"",
        method: str = "POST",
        extra_headers: Optional[List[Tuple[str, str]]] = None,
    ) -> HTTPRequest:
        headers = []
        if content_type is not None:
            headers.append(("Content-Type", content_type))
        headers.extend(extra_headers or [])
        return HTTPRequest(method=method, path="/", headers=headers, body=body)

    return factory


def build_multipart(
    fields: Dict[str, str],
    files: Optional[Dict[str, Tuple[str, str, bytes]]] = None,
    boundary: str = BOUNDARY,
    close: bool = True,
) -> bytes:
    """
    Encode a multipart/form-data body.

    files maps field name → (filename, content type, content).
    """
    out = bytearray()
    for name, value in fields.items():
        out += f"--{boundary}\r\n".encode()
        out += f'Content-Disposition: form-data; name="{name}"\r\n\r\n'.encode()
        out += value.encode("utf-8") + b"\r\n"
    for name, (filename, ctype, content) in (files or {}).items():
        out += f"--{boundary}\r\n".encode()
        out += (
            f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'
            f"Content-Type: {ctype}\r\n\r\n"
        ).encode()
        out += content + b"\r\n"
    if close:
        out += f"--{boundary}--\r\n".encode()
    return bytes(out)


@pytest.fixture
def multipart_body() -> Callable[..., bytes]:
    return build_multipart


@pytest.fixture
def multipart_type() -> str:
    return f"multipart/form-data; boundary={BOUNDARY}"
