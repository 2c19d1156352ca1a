"""
=============================================================================
HANDLER ADAPTER
=============================================================================

Wraps handlers that expect a particular body category, so they only run
when the request actually carries one.

=============================================================================
PER-REQUEST STATE MACHINE
=============================================================================

                         ┌──────────┐
                         │ RECEIVED │
                         └────┬─────┘
                              │ parse_body()
                         ┌────▼────────┐
                         │ NEGOTIATING │
                         └────┬────────┘
             ┌────────────────┼─────────────────────┐
             │                │                     │
       ┌─────▼────┐     ┌─────▼─────┐         ┌─────▼──┐
       │ MATCHED  │     │ UNMATCHED │         │ FAILED │
       └─────┬────┘     └─────┬─────┘         └─────┬──┘
             │                │                     │
      handler runs      kind=None: handler   fixed error response
      with payload      runs, decides        (400 / 413 / 415),
                        kind=X: fixed 400    handler NEVER runs

    MATCHED     the body is of the requested category (or any category
                was requested)
    UNMATCHED   the body parsed fine but is another category
    FAILED      NegotiationError: malformed, too large, bad charset

=============================================================================
USAGE
=============================================================================

    @accepts(BodyKind.JSON)
    def create_user(request, data):
        return ok({"id": 7, "name": data["name"]})

    @accepts()                      # any category
    def echo(request, body):
        return first_match(body, [
            (BodyKind.JSON, lambda value: ok({"json": value})),
            (BodyKind.FORM, lambda value: ok({"form": value})),
        ], default=lambda: bad_request("Send JSON or a form"))

=============================================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Sequence, Tuple, TypeVar
import functools
import logging

from .body.errors import NegotiationError
from .body.parser import BodyParser
from .body.result import BodyKind, ParsedBody
from .http.request import HTTPRequest
from .http.response import HTTPResponse, bad_request, error_response


logger = logging.getLogger(__name__)

T = TypeVar("T")


class NegotiationState(Enum):
    RECEIVED = "received"
    NEGOTIATING = "negotiating"
    MATCHED = "matched"
    UNMATCHED = "unmatched"
    FAILED = "failed"


@dataclass(frozen=True)
class Negotiation:
    """
    Outcome of negotiating one request.

    Attributes:
        state:  MATCHED, UNMATCHED or FAILED
        kind:   The category that was asked for (None = any)
        body:   The ParsedBody, unless FAILED
        error:  The NegotiationError, only when FAILED
    """

    state: NegotiationState
    kind: Optional[BodyKind] = None
    body: Optional[ParsedBody] = None
    error: Optional[NegotiationError] = None

    @property
    def payload(self) -> Any:
        """The requested category's value (None when absent or FAILED)."""
        if self.body is None:
            return None
        if self.kind is None:
            return self.body.value
        return self.body.get(self.kind)

    def error_response(self) -> Optional[HTTPResponse]:
        """
        The fixed response that replaces the handler, if any.

            FAILED                    → error_response(error)
            UNMATCHED, specific kind  → 400 "Expected <kind> body"
            otherwise                 → None (the handler runs)
        """
        if self.state is NegotiationState.FAILED:
            return error_response(self.error)
        if self.state is NegotiationState.UNMATCHED and self.kind is not None:
            return bad_request(f"Expected {self.kind.value} body")
        return None


def _transition(request: HTTPRequest, state: NegotiationState) -> None:
    logger.debug("%s %s: %s", request.method, request.path, state.value)


def negotiate(
    request: HTTPRequest,
    kind: Optional[BodyKind] = None,
    parser: Optional[BodyParser] = None,
) -> Negotiation:
    """
    Run the negotiation state machine for a request.

    Never raises NegotiationError: failures come back as a FAILED
    Negotiation. The parsed body is cached on the request, so calling
    this several times (e.g. from middleware and again from a handler
    adapter) reads the body only once.

    Args:
        request: The request envelope
        kind: The category wanted, or None for any
        parser: BodyParser to use on first negotiation
    """
    _transition(request, NegotiationState.RECEIVED)
    _transition(request, NegotiationState.NEGOTIATING)

    try:
        body = request.parse_body(parser)
    except NegotiationError as e:
        _transition(request, NegotiationState.FAILED)
        return Negotiation(NegotiationState.FAILED, kind=kind, error=e)

    if kind is None or body.kind is kind:
        state = NegotiationState.MATCHED
    else:
        state = NegotiationState.UNMATCHED

    _transition(request, state)
    return Negotiation(state, kind=kind, body=body)


def accepts(
    kind: Optional[BodyKind] = None,
    parser: Optional[BodyParser] = None,
) -> Callable[[Callable[..., HTTPResponse]], Callable[[HTTPRequest], HTTPResponse]]:
    """
    Decorator: negotiate the body before the handler runs.

    With a specific kind the handler is called as handler(request, payload)
    and only when the body IS that kind. With kind=None it is called as
    handler(request, body) with the full ParsedBody. A FAILED negotiation
    never reaches the handler in either case.

    Example:
        @accepts(BodyKind.FORM)
        def login(request, form):
            user = form.get("user", [""])[0]
            ...
    """
    def decorator(handler: Callable[..., HTTPResponse]) -> Callable[[HTTPRequest], HTTPResponse]:
        @functools.wraps(handler)
        def wrapper(request: HTTPRequest) -> HTTPResponse:
            outcome = negotiate(request, kind, parser)

            short_circuit = outcome.error_response()
            if short_circuit is not None:
                logger.info(
                    "Skipping %s for %s %s: %s",
                    handler.__name__, request.method, request.path,
                    outcome.error.reason if outcome.error else f"not a {kind.value} body",
                )
                return short_circuit

            if kind is None:
                return handler(request, outcome.body)
            return handler(request, outcome.payload)

        return wrapper

    return decorator


def first_match(
    body: ParsedBody,
    cases: Sequence[Tuple[BodyKind, Callable[[Any], T]]],
    default: Callable[[], T],
) -> T:
    """
    Try categories in order; the first one the body has wins.

    Matching is on body.kind, so a JSON document that is literally
    `null` still matches BodyKind.JSON (its payload is None).

    Args:
        body: A negotiated ParsedBody
        cases: (kind, fn) pairs; fn receives the payload
        default: Called with no arguments when nothing matched
    """
    for kind, fn in cases:
        if body.kind is kind:
            return fn(body.value)
    return default()
