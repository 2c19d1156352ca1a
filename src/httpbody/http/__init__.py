"""
=============================================================================
HTTP MESSAGE LAYER
=============================================================================

The HTTP-level building blocks the body parser works with.

=============================================================================
MODULE COMPONENTS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ HEADERS (headers.py)                                                │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Ordered header fields (case-insensitive lookup) and cookies        │
    │ (case-sensitive lookup)                                             │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ MEDIA TYPES (media_type.py)                                         │
    │ ─────────────────────────────────────────────────────────────────── │
    │ "application/json; charset=utf-8" → MediaType + pattern matching   │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST ENVELOPE (request.py)                                       │
    │ ─────────────────────────────────────────────────────────────────── │
    │ HTTPRequest, BodyStream, RequestParser (raw bytes), from_wsgi      │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ RESPONSE BUILDER (response.py)                                      │
    │ ─────────────────────────────────────────────────────────────────── │
    │ HTTPResponse, ResponseBuilder, error_response(NegotiationError)    │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ STATUS CODES (status_codes.py)                                      │
    │ ─────────────────────────────────────────────────────────────────── │
    │ HTTPStatus enum with reason phrases                                 │
    └─────────────────────────────────────────────────────────────────────┘

request.py and response.py depend on the body package, which in turn
depends on the modules exported here. Import them from their modules
(or from the top-level httpbody package), not from httpbody.http.

=============================================================================
"""

from .headers import Headers, Cookie, CookieJar, parse_cookie_header
from .media_type import MediaType, specificity
from .status_codes import HTTPStatus

__all__ = [
    # Headers and cookies
    "Headers",
    "Cookie",
    "CookieJar",
    "parse_cookie_header",

    # Media types
    "MediaType",
    "specificity",

    # Status codes
    "HTTPStatus",
]
