"""
=============================================================================
BASE MIDDLEWARE INTERFACE
=============================================================================

The middleware protocol and the pipeline that chains middleware around a
handler (Chain of Responsibility).

=============================================================================
WHERE BODY NEGOTIATION SITS IN THE CHAIN
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       REQUEST FLOW                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Request ─────────────────────────────────────────────►            │
    │                                                                      │
    │   ┌──────────┐    ┌──────────────┐    ┌──────────┐                  │
    │   │ Logging  │───►│  BodyParser  │───►│ Handler  │                  │
    │   │    MW    │    │      MW      │    │          │                  │
    │   └────┬─────┘    └──────┬───────┘    └────┬─────┘                  │
    │        │                 │                 │                        │
    │   [before]          [before]           [exec]                       │
    │   start timer       negotiate body     request.as_json() etc.       │
    │                     FAILED? ──► 4xx, handler never runs             │
    │                                                                      │
    │   [after]                                                           │
    │   log status, duration and body kind                                │
    │                                                                      │
    │   ◄────────────────────────────────────────────── Response          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Logging goes first (outermost) so that it also sees the requests the
body parser rejects.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterator, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# The next middleware or the final handler: request in, response out.
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Abstract base class for middleware.

    Every middleware implements:

        def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse

    Return next(request) to continue the chain, or return a response
    directly to short-circuit it:

        class RequireJSON(Middleware):
            def __call__(self, request, next):
                if request.content_type is None:
                    return bad_request("Content-Type required")
                return next(request)
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process the request.

        Args:
            request: The incoming request envelope
            next: The next handler in the chain

        Returns:
            HTTP response (either from next() or short-circuited)
        """

    @property
    def name(self) -> str:
        """Get the middleware name for logging."""
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Chains middleware around a final handler.

    First added = outermost:

        pipeline = MiddlewarePipeline()
        pipeline.add(LoggingMiddleware())        # sees everything
        pipeline.add(BodyParserMiddleware())     # closest to the handler

        handler = pipeline.wrap(my_handler)
        response = handler(request)

    Requests flow inward in the order added, responses flow back outward.
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Add middleware to the pipeline. Returns self for chaining."""
        self._middleware.append(middleware)
        logger.debug("Added middleware: %s", middleware.name)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Wrap a handler with all middleware in the pipeline.

        Given [MW1, MW2, MW3] the result is MW1 → MW2 → MW3 → handler.
        Wrapping runs in REVERSE so the first-added middleware ends up
        outermost.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)
        return current

    def _create_wrapped_handler(
        self,
        middleware: Middleware,
        next_handler: NextHandler
    ) -> NextHandler:
        # Closure over middleware and next_handler
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)

        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)
