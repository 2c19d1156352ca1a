"""
Unit tests for the middleware pipeline and built-in middleware.
"""

import json
import logging

import pytest

from httpbody.body.result import BodyKind
from httpbody.http.response import HTTPStatus, ok
from httpbody.middleware import (
    BodyParserMiddleware,
    LoggingMiddleware,
    Middleware,
    MiddlewarePipeline,
)


class RecordingMiddleware(Middleware):
    def __init__(self, label, trace):
        self.label = label
        self.trace = trace

    def __call__(self, request, next):
        self.trace.append(f"{self.label}:in")
        response = next(request)
        self.trace.append(f"{self.label}:out")
        return response


class TestMiddlewarePipeline:
    """Tests for MiddlewarePipeline."""

    def test_order(self, make_request):
        """Test that the first added middleware is outermost."""
        trace = []
        pipeline = (
            MiddlewarePipeline()
            .add(RecordingMiddleware("a", trace))
            .add(RecordingMiddleware("b", trace))
        )

        def handler(request):
            trace.append("handler")
            return ok()

        pipeline.wrap(handler)(make_request(None))

        assert trace == ["a:in", "b:in", "handler", "b:out", "a:out"]
        assert len(pipeline) == 2

    def test_short_circuit(self, make_request):
        """Test that middleware can answer without calling next."""
        class Deny(Middleware):
            def __call__(self, request, next):
                return ok("denied")

        handler = MiddlewarePipeline().add(Deny()).wrap(lambda request: ok("handler"))
        assert handler(make_request(None)).body == b"denied"

    def test_middleware_name(self):
        """Test that a middleware is named after its class."""
        assert RecordingMiddleware("a", []).name == "RecordingMiddleware"

    def test_empty_pipeline(self, make_request):
        """Test that an empty pipeline calls the handler directly."""
        handler = MiddlewarePipeline().wrap(lambda request: ok("direct"))
        assert handler(make_request(None)).body == b"direct"


class TestBodyParserMiddleware:
    """Tests for eager body negotiation."""

    def test_handler_sees_parsed_body(self, make_request, parser):
        """Test that the body is negotiated before the handler runs."""
        seen = []

        def handler(request):
            seen.append(request.parsed_body.kind)
            return ok(request.as_json())

        wrapped = MiddlewarePipeline().add(BodyParserMiddleware(parser)).wrap(handler)
        response = wrapped(make_request("application/json", b'{"a":1}'))

        assert seen == [BodyKind.JSON]
        assert response.json() == {"a": 1}

    def test_failure_short_circuits(self, make_request, parser):
        """Test that a malformed body never reaches the handler."""
        calls = []
        wrapped = MiddlewarePipeline().add(BodyParserMiddleware(parser)).wrap(
            lambda request: calls.append(request) or ok()
        )

        response = wrapped(make_request("application/json", b"<not json"))

        assert calls == []
        assert response.status == HTTPStatus.BAD_REQUEST

    def test_unsupported_charset(self, make_request, parser):
        """Test that an unknown charset gives 415."""
        wrapped = MiddlewarePipeline().add(BodyParserMiddleware(parser)).wrap(lambda request: ok())
        response = wrapped(make_request("text/plain; charset=x-nope", b"abc"))

        assert response.status == HTTPStatus.UNSUPPORTED_MEDIA_TYPE
        assert response.json()["charset"] == "x-nope"

    def test_skips_bodyless_get(self, make_request, parser):
        """Test that a GET without Content-Type is not negotiated."""
        request = make_request(None, method="GET")
        wrapped = MiddlewarePipeline().add(BodyParserMiddleware(parser)).wrap(lambda r: ok())

        wrapped(request)

        assert request.parsed_body is None

    def test_get_with_content_type_is_negotiated(self, make_request, parser):
        """Test that a declared body on GET is still checked."""
        request = make_request("application/json", b"{", method="GET")
        wrapped = MiddlewarePipeline().add(BodyParserMiddleware(parser)).wrap(lambda r: ok())

        assert wrapped(request).status == HTTPStatus.BAD_REQUEST

    def test_closes_uploads(self, make_request, parser, multipart_body, multipart_type):
        """Test that uploads are released after the handler returns."""
        request = make_request(
            multipart_type,
            multipart_body({}, files={"f": ("a.txt", "text/plain", b"hello")}),
        )

        def handler(request):
            return ok(request.as_multipart().get_file("f").read())

        wrapped = MiddlewarePipeline().add(BodyParserMiddleware(parser)).wrap(handler)

        assert wrapped(request).body == b"hello"
        assert request.parsed_body.value.get_file("f").closed

    def test_keep_open(self, make_request, parser, multipart_body, multipart_type):
        """Test close_requests=False leaves uploads to the caller."""
        request = make_request(
            multipart_type,
            multipart_body({}, files={"f": ("a.txt", "text/plain", b"hello")}),
        )
        middleware = BodyParserMiddleware(parser, close_requests=False)
        MiddlewarePipeline().add(middleware).wrap(lambda r: ok())(request)

        upload = request.parsed_body.value.get_file("f")
        assert not upload.closed
        request.close()
        assert upload.closed


class TestLoggingMiddleware:
    """Tests for access logging."""

    def test_request_id_header(self, make_request):
        """Test that a request ID is attached to the response."""
        handler = MiddlewarePipeline().add(LoggingMiddleware()).wrap(lambda r: ok())
        response = handler(make_request(None))

        assert len(response.headers["X-Request-ID"]) == 8

    def test_incoming_request_id_reused(self, make_request):
        """Test that a client-supplied X-Request-ID is kept."""
        handler = MiddlewarePipeline().add(LoggingMiddleware()).wrap(lambda r: ok())
        request = make_request(None, extra_headers=[("X-Request-ID", "trace-42")])

        assert handler(request).headers["X-Request-ID"] == "trace-42"

    def test_text_log_line(self, make_request, parser, caplog):
        """Test the text access log format."""
        pipeline = MiddlewarePipeline().add(LoggingMiddleware()).add(BodyParserMiddleware(parser))
        handler = pipeline.wrap(lambda r: ok())

        with caplog.at_level(logging.INFO, logger="httpbody.access"):
            handler(make_request("application/json", b"{}"))

        access = [r for r in caplog.records if r.name == "httpbody.access"]
        assert len(access) == 1
        assert '"POST /" json 200' in access[0].getMessage()

    def test_json_log_line(self, make_request, parser, caplog):
        """Test the JSON access log format, including rejected bodies."""
        pipeline = (
            MiddlewarePipeline()
            .add(LoggingMiddleware(log_format="json"))
            .add(BodyParserMiddleware(parser))
        )
        handler = pipeline.wrap(lambda r: ok())

        with caplog.at_level(logging.INFO, logger="httpbody.access"):
            handler(make_request("application/json", b"<bad"))

        record = [r for r in caplog.records if r.name == "httpbody.access"][0]
        entry = json.loads(record.getMessage())

        assert entry["status_code"] == 400
        assert entry["body_kind"] == "-"
        assert entry["content_type"] == "application/json"

    def test_skip_paths(self, make_request, caplog):
        """Test that skipped paths are not logged."""
        handler = MiddlewarePipeline().add(LoggingMiddleware(skip_paths=["/"])).wrap(lambda r: ok())

        with caplog.at_level(logging.INFO, logger="httpbody.access"):
            response = handler(make_request(None))

        assert not [r for r in caplog.records if r.name == "httpbody.access"]
        assert "X-Request-ID" in response.headers

    def test_handler_exception_logged_and_raised(self, make_request, caplog):
        """Test that handler errors are logged and propagated."""
        def boom(request):
            raise RuntimeError("boom")

        handler = MiddlewarePipeline().add(LoggingMiddleware()).wrap(boom)

        with caplog.at_level(logging.ERROR, logger="httpbody.access"):
            with pytest.raises(RuntimeError):
                handler(make_request(None))

        assert "RuntimeError" in caplog.text

    def test_invalid_format(self):
        """Test that an unknown log format is rejected."""
        with pytest.raises(ValueError):
            LoggingMiddleware(log_format="xml")
