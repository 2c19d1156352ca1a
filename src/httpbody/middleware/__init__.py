"""
=============================================================================
MIDDLEWARE FRAMEWORK
=============================================================================

Composable request/response processing around handlers.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    MIDDLEWARE PIPELINE                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Incoming Request                                                   │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌────────────────────┐                                            │
    │   │ LoggingMiddleware  │ ──► access log, X-Request-ID               │
    │   └────────┬───────────┘                                            │
    │            ▼                                                         │
    │   ┌────────────────────┐                                            │
    │   │ BodyParserMiddleware│ ──► negotiate body, reject 4xx early      │
    │   └────────┬───────────┘                                            │
    │            ▼                                                         │
    │   ┌────────────────────┐                                            │
    │   │   Your Handler     │ ──► request.as_json(), as_form(), ...      │
    │   └────────┬───────────┘                                            │
    │            │                                                         │
    │            ▼                                                         │
    │   Response flows back UP through middleware                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
AVAILABLE MIDDLEWARE
=============================================================================

LoggingMiddleware:
    One access-log line per request (text or JSON), including the
    negotiated body category.

BodyParserMiddleware:
    Negotiates the body up front. Malformed, oversized or undecodable
    bodies get their fixed client-error response and never reach the
    handler.

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline
from .body import BodyParserMiddleware
from .logging import LoggingMiddleware

__all__ = [
    # Base classes
    "Middleware",
    "MiddlewarePipeline",

    # Built-in middleware
    "BodyParserMiddleware",
    "LoggingMiddleware",
]
