"""
=============================================================================
NEGOTIATION FAILURES
=============================================================================

Exceptions raised while turning request bytes into a typed body.

=============================================================================
ERROR TAXONOMY
=============================================================================

    ┌──────────────────────┬────────┬──────────────────────────────────────┐
    │  Situation           │ Status │ Raised?                              │
    ├──────────────────────┼────────┼──────────────────────────────────────┤
    │  Category mismatch   │  (400) │ NO. The accessor returns None and    │
    │  (asked for JSON,    │        │ the caller may try another category. │
    │   got a form)        │        │ Only the handler adapter turns this  │
    │                      │        │ into a 400.                          │
    ├──────────────────────┼────────┼──────────────────────────────────────┤
    │  MalformedBody       │  400   │ Yes: bad JSON/XML syntax, broken     │
    │                      │        │ multipart boundaries                 │
    │  PayloadTooLarge     │  413   │ Yes: before or while reading         │
    │  DecodeError         │  400   │ Yes: bytes invalid in the charset    │
    │  UnsupportedCharset  │  415   │ Yes: charset unknown to the codecs   │
    └──────────────────────┴────────┴──────────────────────────────────────┘

Structural and size failures are never recovered inside the parser. They
propagate to the handler adapter, which answers with a fixed client-error
response and never runs the handler.

=============================================================================
"""

from typing import Optional

from ..http.status_codes import HTTPStatus


class NegotiationError(Exception):
    """
    Raised when a request body cannot be turned into its declared category.

    Carries everything the handler adapter needs to build the error
    response without looking back at the request.

    Attributes:
        reason:         Human-readable explanation, safe to send to clients
        content_type:   The Content-Type header value as declared (or None)
        status_code:    HTTP status for the client-error response
    """

    status_code: HTTPStatus = HTTPStatus.BAD_REQUEST
    label: str = "negotiation failed"

    def __init__(self, reason: str, content_type: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.content_type = content_type

    def to_dict(self) -> dict:
        """Serializable form for JSON error responses and logs."""
        return {
            "error": self.reason,
            "type": self.label,
            "content_type": self.content_type,
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}({self.reason!r}, "
            f"content_type={self.content_type!r})"
        )


class MalformedBody(NegotiationError):
    """The body matched a structured category but broke its grammar."""

    status_code = HTTPStatus.BAD_REQUEST
    label = "malformed body"


class PayloadTooLarge(NegotiationError):
    """
    The body exceeded max_body_size.

    Raised before reading when Content-Length already says so, otherwise
    as soon as the running byte count crosses the limit. The rest of the
    body is never buffered.
    """

    status_code = HTTPStatus.PAYLOAD_TOO_LARGE
    label = "payload too large"

    def __init__(
        self,
        reason: str,
        content_type: Optional[str] = None,
        limit: Optional[int] = None,
    ):
        super().__init__(reason, content_type)
        self.limit = limit


class DecodeError(NegotiationError):
    """The body bytes are not valid in the declared (or default) charset."""

    status_code = HTTPStatus.BAD_REQUEST
    label = "decode error"


class UnsupportedCharset(DecodeError):
    """The declared charset is not known to Python's codec registry."""

    status_code = HTTPStatus.UNSUPPORTED_MEDIA_TYPE
    label = "unsupported charset"

    def __init__(self, charset: str, content_type: Optional[str] = None):
        super().__init__(f"Unsupported charset: {charset}", content_type)
        self.charset = charset


class BodyConsumedError(RuntimeError):
    """
    The one-shot body stream was read a second time.

    This is a programming error, not a client error: the parsed result is
    cached on the request, so code should go through HTTPRequest.parse_body()
    instead of reading the stream directly.
    """
