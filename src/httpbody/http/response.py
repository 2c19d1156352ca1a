"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds the responses a body-negotiating handler layer sends back,
including the fixed client-error responses for failed negotiations.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 413 Payload Too Large\r\n        ← status line          │
    │    Content-Type: application/json\r\n        ← headers              │
    │    Content-Length: 84\r\n                                           │
    │    \r\n                                      ← separator            │
    │    {"error": "Request body exceeds limit of 1024 bytes",            │
    │     "type": "payload too large", ...}        ← body                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
NEGOTIATION FAILURE → RESPONSE
=============================================================================

    NegotiationError           Status   Body
    ─────────────────────────  ──────   ──────────────────────────────────
    MalformedBody              400      {"error", "type", "content_type"}
    DecodeError                400      ...
    PayloadTooLarge            413      ... + "limit"
    UnsupportedCharset         415      ... + "charset"
    (category mismatch)        400      {"error": "Expected json body"}

All of them are final: the handler never runs, and the client must fix
its request and resend it.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Optional, Dict, Any, Union
import json

from .status_codes import HTTPStatus
from ..body.errors import NegotiationError, PayloadTooLarge, UnsupportedCharset


DEFAULT_SERVER_NAME = "httpbody/1.0"


@dataclass
class HTTPResponse:
    """
    An HTTP response to be sent to the client.

    A plain data container; use ResponseBuilder or the helper functions
    below to construct one.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 413 Payload Too Large"
        """
        status = HTTPStatus(self.status)
        return f"{self.version} {int(status)} {status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a response header. Returns self for chaining."""
        self.headers[name] = value
        return self

    def get_header(self, name: str) -> Optional[str]:
        """Look up a response header case-insensitively."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    def json(self) -> Any:
        """Decode a JSON response body (handy in tests and the CLI)."""
        return json.loads(self.body.decode("utf-8"))

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize the response to bytes.

            HTTP/1.1 200 OK\r\n          ← Status line
            Content-Type: ...\r\n
            Content-Length: 27\r\n       ← Auto-calculated
            Date: ...\r\n                ← Auto-added
            Server: httpbody/1.0\r\n     ← Auto-added
            \r\n
            {"message": "Hello"}
        """
        response_headers = dict(self.headers)

        if self.get_header("Content-Length") is None:
            response_headers["Content-Length"] = str(len(self.body))
        if self.get_header("Date") is None:
            response_headers["Date"] = format_datetime(datetime.now(timezone.utc), usegmt=True)
        if self.get_header("Server") is None:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in response_headers.items())
        lines.append("")

        return "\r\n".join(lines).encode("latin-1") + b"\r\n" + self.body


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

    Example:
        response = (ResponseBuilder()
            .status(HTTPStatus.CREATED)
            .header("X-Request-ID", "abc123")
            .json({"id": 7})
            .build())
    """

    def __init__(self, server_name: str = DEFAULT_SERVER_NAME):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body = b""
        self._server_name = server_name

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set the raw body; strings are encoded as UTF-8."""
        self._body = body.encode("utf-8") if isinstance(body, str) else bytes(body)
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        self.content_type(content_type)
        return self.body(text)

    def json(self, data: Any, pretty: bool = False) -> "ResponseBuilder":
        """
        Set a JSON body.

        Args:
            data: Any json-serializable value
            pretty: Indent the output (for humans, e.g. the CLI)
        """
        self.content_type("application/json")
        if pretty:
            return self.body(json.dumps(data, indent=2, ensure_ascii=False))
        return self.body(json.dumps(data, separators=(",", ":"), ensure_ascii=False))

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )

    def to_bytes(self) -> bytes:
        """Build and serialize in one step."""
        return self.build().to_bytes(self._server_name)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# Quick one-liners for common response patterns.
#
# Examples:
#     return ok({"received": payload})
#     return bad_request("Expected json body")
#     return error_response(exc)
#
# =============================================================================

def ok(body: Union[str, bytes, dict, list] = "", content_type: Optional[str] = None) -> HTTPResponse:
    """
    Create a 200 OK response.

    dict/list → JSON, str → text, bytes → raw.
    """
    builder = ResponseBuilder().status(HTTPStatus.OK)

    if isinstance(body, (dict, list)):
        builder.json(body)
    elif isinstance(body, str):
        builder.text(body, content_type or "text/plain; charset=utf-8")
    else:
        builder.body(body)
        if content_type:
            builder.content_type(content_type)

    return builder.build()


def bad_request(message: str = "Bad Request", **fields: Any) -> HTTPResponse:
    """
    Create a 400 Bad Request response.

    Used for malformed bodies and for bodies of the wrong category.
    Extra keyword fields are added to the JSON body.
    """
    data: Dict[str, Any] = {"error": message, **fields}
    return ResponseBuilder().status(HTTPStatus.BAD_REQUEST).json(data).build()


def payload_too_large(
    message: str = "Payload Too Large",
    limit: Optional[int] = None,
    **fields: Any,
) -> HTTPResponse:
    """Create a 413 Payload Too Large response."""
    data: Dict[str, Any] = {"error": message, **fields}
    if limit is not None:
        data["limit"] = limit
    return ResponseBuilder().status(HTTPStatus.PAYLOAD_TOO_LARGE).json(data).build()


def unsupported_media_type(message: str = "Unsupported Media Type", **fields: Any) -> HTTPResponse:
    """Create a 415 Unsupported Media Type response."""
    data: Dict[str, Any] = {"error": message, **fields}
    return ResponseBuilder().status(HTTPStatus.UNSUPPORTED_MEDIA_TYPE).json(data).build()


def error_response(error: NegotiationError) -> HTTPResponse:
    """
    Build the fixed client-error response for a failed negotiation.

    The status comes from the error class; the body is error.to_dict()
    plus the limit or charset when the error carries one.

    Example:
        >>> error_response(PayloadTooLarge("too big", limit=1024)).status
        <HTTPStatus.PAYLOAD_TOO_LARGE: 413>
    """
    data = error.to_dict()
    message = data.pop("error")

    if isinstance(error, PayloadTooLarge):
        return payload_too_large(message, error.limit, **data)
    if isinstance(error, UnsupportedCharset):
        return unsupported_media_type(message, **data, charset=error.charset)
    if error.status_code == HTTPStatus.BAD_REQUEST:
        return bad_request(message, **data)

    return ResponseBuilder().status(error.status_code).json({"error": message, **data}).build()
