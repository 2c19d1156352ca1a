"""
=============================================================================
REQUEST ENVELOPE
=============================================================================

The immutable record a body parser works on: method, URI, headers,
cookies and a one-shot body stream. Also the two builders that produce
it, one from raw HTTP/1.1 bytes and one from a WSGI environ.

=============================================================================
ENVELOPE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        HTTPRequest                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   method          "POST"                                            │
    │   uri             "/api/users?tag=a&tag=b"                          │
    │   path            "/api/users"                                      │
    │   query_params    {"tag": ["a", "b"]}                               │
    │   headers         Headers([("Content-Type", "application/json"),    │
    │                            ("Cookie", "session=abc")])              │
    │   cookies         CookieJar([Cookie("session", "abc")])             │
    │   body            BodyStream  ──► read AT MOST ONCE                 │
    │                                                                      │
    │   ┌─ per-request cache ─────────────────────────────────────────┐   │
    │   │  ParsedBody or NegotiationError, filled by parse_body()     │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
THE ONE-SHOT BODY
=============================================================================

A request body arrives once from the network. Reading it a second time
would mean either buffering everything (defeats streaming uploads) or
re-fetching (impossible). So:

    1. BodyStream.chunks() can be called once. A second call raises
       BodyConsumedError.
    2. HTTPRequest.parse_body() reads the stream, negotiates, and caches
       the DECODED result on the request.
    3. Every later accessor (as_json, as_form, ...) reads the cache.

    request.as_json()     ──► parse_body() ──► stream read, cached
    request.as_json()     ──► cache hit     (same object)
    request.as_text()     ──► cache hit     (None: category mismatch)

A failed negotiation is cached too: asking again re-raises the same
error instead of tripping over the already-consumed stream.

=============================================================================
PARSING CHALLENGES (raw HTTP/1.1 builder)
=============================================================================

1. LINE ENDINGS: Headers end with \r\n\r\n.

2. CASE SENSITIVITY:
   - Methods are UPPERCASE (case-sensitive)
   - Header names are case-INSENSITIVE, but we keep the declared spelling
   - Cookie names are case-SENSITIVE

3. BODY LENGTH:
   - Determined by Content-Length
   - Two different Content-Length values = request smuggling attempt → 400

4. SECURITY:
   - Path traversal: "../../../etc/passwd" → 400
   - Oversized messages → 413

=============================================================================
"""

from dataclasses import dataclass, field
from typing import (
    Any, BinaryIO, Dict, Iterable, Iterator, List, Optional, Tuple, Union,
    TYPE_CHECKING,
)
from urllib.parse import parse_qsl, urlsplit, unquote
import re
import logging

from .headers import Cookie, CookieJar, Headers, parse_cookie_header
from .media_type import MediaType
from ..body.errors import BodyConsumedError, NegotiationError
from ..body.result import MultipartForm, ParsedBody

if TYPE_CHECKING:
    from xml.etree.ElementTree import Element
    from ..body.parser import BodyParser


logger = logging.getLogger(__name__)

BodySource = Union[bytes, bytearray, memoryview, BinaryIO, Iterable[bytes], None]

DEFAULT_CHUNK_SIZE = 64 * 1024


class HTTPParseError(Exception):
    """
    Raised when a raw HTTP message cannot be turned into an envelope.

    Carries the status code to answer with:

        400 Bad Request                - Malformed syntax
        405 Method Not Allowed         - Unknown method
        413 Payload Too Large          - Message exceeds max_request_size
        505 HTTP Version Not Supported - Unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class BodyStream:
    """
    One-shot access to the raw body bytes.

    Accepts any of:
        - bytes / bytearray / memoryview   (already buffered)
        - a binary file object with read(n) (e.g. wsgi.input)
        - an iterable of byte chunks        (e.g. an ASGI receive loop)

    `length` caps how much is read from a file object; WSGI servers may
    block if you read past CONTENT_LENGTH.
    """

    def __init__(self, source: BodySource = None, length: Optional[int] = None):
        self._source = source
        self._length = length
        self._consumed = False

    @property
    def consumed(self) -> bool:
        """True once chunks() has been called."""
        return self._consumed

    @property
    def is_empty(self) -> bool:
        """True when there is nothing to read at all."""
        if self._source is None or self._length == 0:
            return True
        if isinstance(self._source, (bytes, bytearray, memoryview)):
            return len(self._source) == 0
        return False

    def chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """
        Iterate over the body in chunks of at most `chunk_size` bytes.

        Raises:
            BodyConsumedError: If the stream was already handed out
        """
        if self._consumed:
            raise BodyConsumedError("Request body has already been consumed")
        self._consumed = True
        return self._generate(chunk_size)

    def _generate(self, chunk_size: int) -> Iterator[bytes]:
        source = self._source
        if source is None:
            return

        if isinstance(source, (bytes, bytearray, memoryview)):
            data = bytes(source)
            for start in range(0, len(data), chunk_size):
                yield data[start:start + chunk_size]

        elif hasattr(source, "read"):
            remaining = self._length
            while remaining is None or remaining > 0:
                want = chunk_size if remaining is None else min(chunk_size, remaining)
                chunk = source.read(want)
                if not chunk:
                    break
                if remaining is not None:
                    remaining -= len(chunk)
                yield bytes(chunk)

        else:
            for chunk in source:
                if chunk:
                    yield bytes(chunk)

    def close(self) -> None:
        """Release the underlying stream, if it can be closed."""
        source, self._source = self._source, None
        self._consumed = True
        close = getattr(source, "close", None)
        if callable(close):
            close()


class _BodyCache:
    """Holds the negotiated body (or failure) for one request."""

    __slots__ = ("result", "error")

    def __init__(self):
        self.result: Optional[ParsedBody] = None
        self.error: Optional[NegotiationError] = None


@dataclass(frozen=True, eq=False)
class HTTPRequest:
    """
    The raw request envelope.

    Frozen: handlers and parsers can read it but not rebind its fields.
    The only thing that changes over a request's life is the private body
    cache, which is filled once.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         HTTP method ("GET", "POST", ...)
        path:           Path WITHOUT query string ("/api/users")
        uri:            Path plus query as sent ("/api/users?page=1")
        version:        HTTP version string
        headers:        Headers, ordered, case-insensitive lookup
        query_params:   "?a=1&a=2&b=3" → {"a": ["1", "2"], "b": ["3"]}
        cookies:        CookieJar, case-sensitive lookup. Parsed from the
                        Cookie header when not given explicitly.
        body:           BodyStream. Plain bytes are wrapped automatically.
        client_address: (ip, port) of the client

    =========================================================================
    CONVENIENT CONSTRUCTION
    =========================================================================

        HTTPRequest(
            method="POST",
            path="/echo",
            headers={"Content-Type": "application/json"},   # dict is fine
            body=b'{"a": 1}',                                # bytes are fine
        )

    =========================================================================
    """

    method: str
    path: str
    uri: str = ""
    version: str = "HTTP/1.1"
    headers: Headers = field(default_factory=Headers)
    query_params: Dict[str, List[str]] = field(default_factory=dict)
    cookies: Optional[CookieJar] = None
    body: BodyStream = field(default_factory=BodyStream)
    client_address: Tuple[str, int] = ("", 0)

    _body_cache: _BodyCache = field(
        default_factory=_BodyCache, init=False, repr=False, compare=False
    )

    def __post_init__(self):
        # Frozen dataclass: normalize through object.__setattr__
        if isinstance(self.headers, dict):
            object.__setattr__(self, "headers", Headers.from_dict(self.headers))
        elif not isinstance(self.headers, Headers):
            object.__setattr__(self, "headers", Headers(self.headers))

        if not isinstance(self.body, BodyStream):
            object.__setattr__(self, "body", BodyStream(self.body))

        if self.cookies is None:
            jar = parse_cookie_header(self.headers.get_all("cookie"))
            object.__setattr__(self, "cookies", jar)

        if not self.uri:
            query = "&".join(
                f"{name}={value}"
                for name, values in self.query_params.items()
                for value in values
            )
            object.__setattr__(self, "uri", f"{self.path}?{query}" if query else self.path)

    # =========================================================================
    # HEADER-DERIVED PROPERTIES
    # =========================================================================

    @property
    def content_type(self) -> Optional[MediaType]:
        """
        The parsed Content-Type, or None when absent or unusable.

        "application/json; charset=utf-8" → MediaType(application/json,
        {charset: utf-8}). Negotiation is a pure function of this value.
        """
        return MediaType.parse(self.headers.get("content-type"))

    @property
    def content_length(self) -> Optional[int]:
        """
        The declared Content-Length, or None if missing or invalid.

        Used to reject oversized bodies BEFORE reading any of them.
        """
        raw = self.headers.get("content-length")
        if raw is None:
            return None
        try:
            length = int(raw.strip())
        except ValueError:
            return None
        return length if length >= 0 else None

    @property
    def host(self) -> Optional[str]:
        return self.headers.get("host")

    @property
    def user_agent(self) -> Optional[str]:
        return self.headers.get("user-agent")

    # =========================================================================
    # ACCESSOR METHODS
    # =========================================================================

    def get_header(self, name: str) -> Optional[str]:
        """
        Get a header value (case-insensitive, first occurrence wins).

        Example:
            request.get_header("Content-Type") == request.get_header("content-type")
        """
        return self.headers.get(name)

    def get_cookie(self, name: str) -> Optional[Cookie]:
        """
        Get a cookie by exact name (case-sensitive).

        Example:
            request.get_cookie("Demo")    # Cookie(name="Demo", ...)
            request.get_cookie("demo")    # None
        """
        return self.cookies.get(name)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get the first value of a query parameter.

        Example:
            # URL: /users?page=1&page=2
            request.get_query("page")  # Returns "1"
        """
        values = self.query_params.get(name, [])
        return values[0] if values else default

    def get_query_list(self, name: str) -> List[str]:
        """Get all values of a query parameter (empty list if not found)."""
        return list(self.query_params.get(name, []))

    # =========================================================================
    # BODY ACCESS
    # =========================================================================

    def parse_body(self, parser: Optional["BodyParser"] = None) -> ParsedBody:
        """
        Negotiate the body once and cache the outcome on this request.

        Lazy evaluation with caching: the stream is read on the first call
        only. Later calls return the same ParsedBody (or re-raise the same
        NegotiationError), whatever parser they pass.

        Args:
            parser: BodyParser to use; a default-configured one if None

        Returns:
            The tagged ParsedBody

        Raises:
            NegotiationError: Malformed body, oversize body, bad charset
        """
        cache = self._body_cache
        if cache.error is not None:
            raise cache.error
        if cache.result is not None:
            return cache.result

        if parser is None:
            from ..body.parser import BodyParser
            parser = BodyParser.default()

        try:
            result = parser.parse(self)
        except NegotiationError as e:
            cache.error = e
            raise
        cache.result = result
        return result

    @property
    def parsed_body(self) -> Optional[ParsedBody]:
        """The cached ParsedBody, or None if negotiation has not succeeded yet."""
        return self._body_cache.result

    def as_text(self, parser: Optional["BodyParser"] = None) -> Optional[str]:
        return self.parse_body(parser).as_text()

    def as_form(self, parser: Optional["BodyParser"] = None) -> Optional[Dict[str, List[str]]]:
        return self.parse_body(parser).as_form()

    def as_multipart(self, parser: Optional["BodyParser"] = None) -> Optional[MultipartForm]:
        return self.parse_body(parser).as_multipart()

    def as_json(self, parser: Optional["BodyParser"] = None) -> Any:
        """JSON payload; None for non-JSON bodies and for a literal null."""
        return self.parse_body(parser).as_json()

    def as_xml(self, parser: Optional["BodyParser"] = None) -> Optional["Element"]:
        return self.parse_body(parser).as_xml()

    def as_raw(self, parser: Optional["BodyParser"] = None) -> Optional[bytes]:
        return self.parse_body(parser).as_raw()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def close(self) -> None:
        """
        Release everything this request holds.

        Closes the body stream and any multipart files spooled from it.
        Called when the enclosing request ends, including when it aborts.
        """
        self.body.close()
        if self._body_cache.result is not None:
            self._body_cache.result.close()

    def __enter__(self) -> "HTTPRequest":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # =========================================================================
    # WSGI BUILDER
    # =========================================================================

    @classmethod
    def from_wsgi(cls, environ: Dict[str, Any]) -> "HTTPRequest":
        """
        Build an envelope from a WSGI environ (PEP 3333).

        The body is NOT read here: wsgi.input is wrapped in a BodyStream
        capped at CONTENT_LENGTH, so multipart uploads can stream.

            environ["CONTENT_TYPE"]     → Content-Type header
            environ["CONTENT_LENGTH"]   → Content-Length header
            environ["HTTP_X_FOO_BAR"]   → X-Foo-Bar header
        """
        headers: List[Tuple[str, str]] = []
        for key, value in environ.items():
            if key.startswith("HTTP_"):
                name = key[5:].replace("_", "-").title()
                headers.append((name, value))
            elif key in ("CONTENT_TYPE", "CONTENT_LENGTH") and value:
                headers.append((key.replace("_", "-").title(), value))

        # PEP 3333 hands paths over as latin-1 decoded bytes
        raw_path = environ.get("PATH_INFO", "") or "/"
        path = raw_path.encode("latin-1").decode("utf-8", errors="replace")
        query = environ.get("QUERY_STRING", "")

        length: Optional[int]
        try:
            length = int(environ.get("CONTENT_LENGTH") or "")
        except ValueError:
            length = None
        if length is None and not environ.get("wsgi.input_terminated"):
            length = 0

        try:
            port = int(environ.get("REMOTE_PORT", 0))
        except ValueError:
            port = 0

        return cls(
            method=environ.get("REQUEST_METHOD", "GET").upper(),
            path=path,
            uri=f"{path}?{query}" if query else path,
            version=environ.get("SERVER_PROTOCOL", "HTTP/1.1"),
            headers=Headers(headers),
            query_params=_parse_query(query),
            body=BodyStream(environ.get("wsgi.input"), length=length),
            client_address=(environ.get("REMOTE_ADDR", ""), port),
        )


def _parse_query(query: str) -> Dict[str, List[str]]:
    """'a=1&a=2&b=3' → {'a': ['1', '2'], 'b': ['3']} (encounter order kept)."""
    params: Dict[str, List[str]] = {}
    for name, value in parse_qsl(query, keep_blank_values=True):
        params.setdefault(name, []).append(value)
    return params


class RequestParser:
    """
    Parses raw HTTP/1.1 request bytes into HTTPRequest envelopes.

    ==========================================================================
    PARSER ARCHITECTURE
    ==========================================================================

        Raw Request Bytes
              │
              ▼
        ┌───────────────────────────────────────────────────────────────────┐
        │  1. Size Check           Too large? → HTTPParseError(413)         │
        │  2. Split at \r\n\r\n    Not found? → HTTPParseError(400)         │
        │  3. Request Line         METHOD SP URI SP VERSION                 │
        │                          Invalid?   → HTTPParseError(400/405/505) │
        │  4. Headers              Ordered (name, value) pairs, as sent     │
        │  5. Body                 Exactly Content-Length bytes             │
        │  6. Build HTTPRequest    Body wrapped in a one-shot BodyStream    │
        └───────────────────────────────────────────────────────────────────┘

    The body is handed over UNPARSED. Deciding what it means is the body
    parser's job, driven by Content-Type.

    ==========================================================================
    """

    VALID_METHODS = {
        "GET", "POST", "PUT", "DELETE", "PATCH",
        "HEAD", "OPTIONS", "TRACE", "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        """
        Args:
            max_request_size: Cap on the whole raw message in bytes.
                              The body parser has its own max_body_size.
        """
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: Tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest envelope.

        Args:
            data: Raw HTTP request bytes.
            client_address: Client's (ip, port) tuple.

        Returns:
            HTTPRequest whose body has not been read yet.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, uri, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        content_length = self._content_length(headers)
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        # Anything past Content-Length belongs to the next pipelined request
        body = body[:content_length]

        logger.debug("Parsed %s %s (%d header fields, %d body bytes)",
                     method, path, len(headers), len(body))

        return HTTPRequest(
            method=method,
            path=path,
            uri=uri,
            version=version,
            headers=headers,
            query_params=query_params,
            body=BodyStream(body),
            client_address=client_address,
        )

    def _parse_request_line(
        self,
        line: str
    ) -> Tuple[str, str, str, Dict[str, List[str]], str]:
        """
        Parse the request line.

            "GET /users?page=1 HTTP/1.1"
             ─┬─ ─────┬─────── ────┬────
              │       │            │
            Method   URI       Version

        Returns:
            Tuple of (method, uri, path, query_params, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        parsed = urlsplit(uri)
        path = unquote(parsed.path) or "/"
        query_params = _parse_query(parsed.query)

        # Path traversal: "GET /../../../etc/passwd HTTP/1.1"
        if ".." in path.split("/"):
            raise HTTPParseError("Invalid path: contains ..", status_code=400)

        return method, uri, path, query_params, version

    def _parse_headers(self, lines: List[str]) -> Headers:
        """
        Parse header lines into an ordered Headers collection.

        =====================================================================
        SPECIAL CASES HANDLED
        =====================================================================

        1. DECLARED SPELLING KEPT:
           "X-Request-ID" stays "X-Request-ID"; lookups ignore case.

        2. HEADER CONTINUATION (obsolete line folding):
           "X-Long: first part\r\n"
           "        second part"
           Lines starting with whitespace extend the previous field.

        3. REPEATED FIELDS:
           Kept as separate entries, in order. Headers.get() returns the
           first, Headers.get_all() returns all of them.

        =====================================================================
        """
        fields: List[List[str]] = []

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if fields:
                    fields[-1][1] = f"{fields[-1][1]} {line.strip()}"
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue  # Skip malformed headers (lenient parsing)

            name, value = match.groups()
            fields.append([name.strip(), value.strip()])

        return Headers((name, value) for name, value in fields)

    def _content_length(self, headers: Headers) -> int:
        """
        Resolve the body length from Content-Length.

        Several Content-Length fields must agree; disagreement is the
        classic request-smuggling vector, so it is rejected outright.
        """
        values = {value.strip() for value in headers.get_all("content-length")}
        if not values:
            return 0
        if len(values) > 1:
            raise HTTPParseError("Conflicting Content-Length headers")
        value = values.pop()
        if not value.isdigit():
            raise HTTPParseError(f"Invalid Content-Length: {value}")
        return int(value)


def parse_request(
    data: bytes,
    client_address: Tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024
) -> HTTPRequest:
    """
    Convenience function to parse an HTTP request.

    Use RequestParser directly to parse many requests with the same
    settings.
    """
    parser = RequestParser(max_request_size=max_size)
    return parser.parse(data, client_address)
