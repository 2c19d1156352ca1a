"""
=============================================================================
HTTPBODY - Content-Negotiating Request Body Parser
=============================================================================

Turns the raw body of an HTTP request into a typed value, chosen by the
request's Content-Type, and keeps handlers from ever seeing a body they
cannot use.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          HTTPBODY                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. REQUEST ENVELOPE                                               │
    │      - Immutable request record, one-shot body stream              │
    │      - Case-insensitive headers, case-sensitive cookies            │
    │      - Built from raw HTTP/1.1 bytes or a WSGI environ             │
    │                                                                      │
    │   2. TYPED BODY PARSER                                              │
    │      - text, form-urlencoded, multipart (streamed), JSON, XML, raw │
    │      - Custom parsers by MIME pattern                               │
    │      - Size limit, charset handling                                 │
    │                                                                      │
    │   3. HANDLER ADAPTER                                                │
    │      - @accepts(BodyKind.JSON) handlers                             │
    │      - Failures become fixed 400 / 413 / 415 responses             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    httpbody/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI (python -m httpbody request.http)
    ├── config.py            # ParserConfig dataclass, setup_logging
    ├── adapter.py           # negotiate(), @accepts, first_match
    ├── http/                # HTTP message layer
    │   ├── headers.py       # Headers, Cookie, CookieJar
    │   ├── media_type.py    # Content-Type parsing and matching
    │   ├── request.py       # HTTPRequest, BodyStream, RequestParser
    │   ├── response.py      # HTTPResponse, ResponseBuilder, helpers
    │   └── status_codes.py  # HTTP status enums
    ├── body/                # Body negotiation
    │   ├── parser.py        # BodyParser
    │   ├── decoders.py      # text / form / JSON / XML / raw
    │   ├── multipart.py     # Streaming multipart reader
    │   ├── result.py        # ParsedBody, MultipartForm, UploadedFile
    │   └── errors.py        # NegotiationError hierarchy
    └── middleware/          # Middleware components
        ├── base.py          # Middleware, MiddlewarePipeline
        ├── body.py          # BodyParserMiddleware
        └── logging.py       # Access logging

=============================================================================
QUICK START
=============================================================================

    from httpbody import BodyKind, HTTPRequest, accepts, ok

    @accepts(BodyKind.JSON)
    def create_user(request, data):
        return ok({"created": data["name"]})

    request = HTTPRequest(
        method="POST",
        path="/users",
        headers={"Content-Type": "application/json"},
        body=b'{"name": "ada"}',
    )
    response = create_user(request)      # 200 {"created": "ada"}

=============================================================================
"""

__version__ = "1.0.0"

from .config import ParserConfig, setup_logging
from .http.headers import Headers, Cookie, CookieJar
from .http.media_type import MediaType
from .http.request import HTTPRequest, BodyStream, RequestParser, HTTPParseError, parse_request
from .http.response import HTTPResponse, ResponseBuilder, ok, bad_request, error_response
from .http.status_codes import HTTPStatus
from .body import (
    BodyParser,
    BodyKind,
    ParsedBody,
    MultipartForm,
    UploadedFile,
    NegotiationError,
    MalformedBody,
    PayloadTooLarge,
    DecodeError,
    UnsupportedCharset,
    BodyConsumedError,
)
from .adapter import Negotiation, NegotiationState, accepts, negotiate, first_match

__all__ = [
    "__version__",

    # Configuration
    "ParserConfig",
    "setup_logging",

    # Envelope
    "HTTPRequest",
    "BodyStream",
    "RequestParser",
    "HTTPParseError",
    "parse_request",
    "Headers",
    "Cookie",
    "CookieJar",
    "MediaType",

    # Responses
    "HTTPResponse",
    "ResponseBuilder",
    "HTTPStatus",
    "ok",
    "bad_request",
    "error_response",

    # Body parsing
    "BodyParser",
    "BodyKind",
    "ParsedBody",
    "MultipartForm",
    "UploadedFile",

    # Errors
    "NegotiationError",
    "MalformedBody",
    "PayloadTooLarge",
    "DecodeError",
    "UnsupportedCharset",
    "BodyConsumedError",

    # Handler adapter
    "Negotiation",
    "NegotiationState",
    "accepts",
    "negotiate",
    "first_match",
]
