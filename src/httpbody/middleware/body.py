"""
=============================================================================
BODY PARSER MIDDLEWARE
=============================================================================

Negotiates every request body before the handler runs.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  request ──► negotiate()                                            │
    │                 │                                                    │
    │                 ├── MATCHED   ──► next(request)                      │
    │                 │                 handler reads request.as_json()... │
    │                 │                 from the cache                     │
    │                 │                                                    │
    │                 └── FAILED    ──► 400 / 413 / 415                    │
    │                                   next() is never called             │
    └─────────────────────────────────────────────────────────────────────┘

Bodyless methods (GET, HEAD, ...) are passed through untouched unless
they declare a Content-Type.

When the response comes back the request is closed, which deletes any
multipart files spooled to disk.

=============================================================================
"""

import logging
from typing import Iterable, Optional

from .base import Middleware, NextHandler
from ..adapter import NegotiationState, negotiate
from ..body.parser import BodyParser
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)

BODYLESS_METHODS = ("GET", "HEAD", "OPTIONS", "TRACE", "CONNECT")


class BodyParserMiddleware(Middleware):
    """
    Eager body negotiation.

    Args:
        parser: BodyParser to use (default configuration if None)
        skip_methods: Methods whose body is not negotiated when they
                      carry no Content-Type
        close_requests: Close the request (and its uploads) after the
                        handler returns
    """

    def __init__(
        self,
        parser: Optional[BodyParser] = None,
        skip_methods: Iterable[str] = BODYLESS_METHODS,
        close_requests: bool = True,
    ):
        self.parser = parser if parser is not None else BodyParser.default()
        self.skip_methods = {m.upper() for m in skip_methods}
        self.close_requests = close_requests

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        try:
            if request.method in self.skip_methods and request.content_type is None:
                return next(request)

            outcome = negotiate(request, parser=self.parser)
            if outcome.state is NegotiationState.FAILED:
                logger.info("Rejected %s %s: %s", request.method, request.path, outcome.error.reason)
                return outcome.error_response()

            return next(request)
        finally:
            if self.close_requests:
                request.close()
