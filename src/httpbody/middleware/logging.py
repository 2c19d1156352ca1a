"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

One log line per request: who sent what, which body category it was
negotiated into, how it ended, and how long it took.

=============================================================================
LOG FORMATS
=============================================================================

    TEXT (default):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 10.0.0.7 - [a1b2c3d4] "POST /upload" json 200 27 3.14ms            │
    │ ──────────  ────────── ───────────── ──── ─── ── ──────             │
    │ client IP   request ID method/path   kind code size duration       │
    └─────────────────────────────────────────────────────────────────────┘

    JSON (for log aggregators):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"request_id": "a1b2c3d4", "method": "POST", "path": "/upload",    │
    │  "content_type": "application/json", "body_kind": "json",          │
    │  "status_code": 200, "duration_ms": 3.14, ...}                     │
    └─────────────────────────────────────────────────────────────────────┘

body_kind is "-" when the body was never negotiated (no handler asked
for it) or when negotiation failed; the status code tells which.

=============================================================================
REQUEST CORRELATION
=============================================================================

An incoming X-Request-ID is reused, otherwise a fresh one is generated.
Either way it is echoed on the response, so a client can quote it when
reporting a rejected upload.

=============================================================================
WHAT NOT TO LOG
=============================================================================

Never the body itself: form fields carry passwords, JSON carries tokens,
uploads carry anything. Only the category and sizes are logged.

=============================================================================
"""

import time
import json
import uuid
import logging
from typing import Optional
from dataclasses import dataclass, asdict

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


# Namespaced so access logs can be routed separately:
#   logging.getLogger("httpbody.access").addHandler(file_handler)
logger = logging.getLogger("httpbody.access")


@dataclass
class RequestLog:
    """
    Structured log entry for one request.

        request_id:     Correlation ID (X-Request-ID)
        method, path:   From the request line
        client_ip:      Client's IP address
        user_agent:     Client identifier
        content_type:   Declared Content-Type, "-" if none
        body_kind:      Negotiated category, "-" if not negotiated
        status_code:    Response status
        content_length: Response body size in bytes
        duration_ms:    Processing time
        timestamp:      When the request finished
    """

    request_id: str
    method: str
    path: str
    client_ip: str
    user_agent: str
    content_type: str
    body_kind: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        return (
            f'{self.client_ip or "-"} - [{self.request_id}] '
            f'"{self.method} {self.path}" {self.body_kind} {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

    Put it FIRST in the pipeline so it also logs requests that the
    body parser rejects:

        pipeline.add(LoggingMiddleware(log_format="json"))
        pipeline.add(BodyParserMiddleware())

    Args:
        log_format: "text" or "json"
        include_request_id: Set X-Request-ID on responses
        log_level: Level for access log lines
        skip_paths: Paths that are not logged (e.g. health checks)
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[list[str]] = None,
    ):
        if log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {log_format!r}")
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = request.get_header("X-Request-ID") or uuid.uuid4().hex[:8]
        start_time = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "Request failed: %s %s [%s] - %s: %s (%.2fms)",
                request.method, request.path, request_id,
                type(e).__name__, e, duration_ms,
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        if self.include_request_id:
            response.headers["X-Request-ID"] = request_id

        if request.path in self.skip_paths:
            return response

        parsed = request.parsed_body
        log_entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            client_ip=request.client_address[0],
            user_agent=request.user_agent or "-",
            content_type=request.get_header("Content-Type") or "-",
            body_kind=parsed.kind.value if parsed is not None else "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(log_entry.to_dict()))
        else:
            logger.log(self.log_level, log_entry.to_text())

        return response
