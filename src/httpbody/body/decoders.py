"""
=============================================================================
CATEGORY DECODERS
=============================================================================

One function per built-in body category. Each takes the fully buffered
body bytes plus the negotiated MediaType and returns the category's
payload, or raises a NegotiationError subclass.

    ┌──────────────┬──────────────────────────────────┬──────────────────────┐
    │  Category    │ Decoder                          │ Fails with           │
    ├──────────────┼──────────────────────────────────┼──────────────────────┤
    │  TEXT        │ bytes.decode(charset)            │ UnsupportedCharset   │
    │              │                                  │ DecodeError          │
    │  FORM        │ urllib.parse.parse_qsl           │ UnsupportedCharset   │
    │              │                                  │ DecodeError          │
    │  JSON        │ json.loads (UTF-8)               │ MalformedBody        │
    │  XML         │ xml.etree.ElementTree.fromstring │ MalformedBody        │
    │  RAW         │ (identity)                       │ never                │
    └──────────────┴──────────────────────────────────┴──────────────────────┘

Multipart is not here: it is parsed incrementally off the stream, see
multipart.py.

=============================================================================
CHARSET RESOLUTION
=============================================================================

    Content-Type: text/plain; charset=ISO-8859-1   → iso-8859-1
    Content-Type: text/plain                       → default_charset
    Content-Type: text/plain; charset=klingon      → UnsupportedCharset (415)

JSON ignores the charset parameter: RFC 8259 §8.1 makes UTF-8 the only
interoperable encoding. A UTF-8 byte order mark is tolerated.

Every decoder takes an optional header argument: the Content-Type value
exactly as the client sent it. Failures report that string so clients see
their own header echoed back, not the normalized form.

=============================================================================
"""

from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl
from xml.etree import ElementTree
import codecs
import json
import logging

from ..http.media_type import MediaType
from .errors import DecodeError, MalformedBody, UnsupportedCharset


logger = logging.getLogger(__name__)


def _declared(media_type: Optional[MediaType], header: Optional[str]) -> Optional[str]:
    if header is not None:
        return header
    return str(media_type) if media_type is not None else None


def resolve_charset(
    media_type: Optional[MediaType],
    default_charset: str,
    header: Optional[str] = None,
) -> str:
    """
    Pick the charset to decode with and check Python knows it.

    Returns:
        The canonical codec name (e.g. "iso8859-1" for "ISO-8859-1")

    Raises:
        UnsupportedCharset: If the codec registry has no such encoding
    """
    charset = (media_type.charset if media_type is not None else None) or default_charset
    try:
        return codecs.lookup(charset).name
    except LookupError:
        raise UnsupportedCharset(charset, _declared(media_type, header)) from None


def decode_text(
    body: bytes,
    media_type: Optional[MediaType],
    default_charset: str = "utf-8",
    header: Optional[str] = None,
) -> str:
    """
    Decode a text/plain body.

    Raises:
        UnsupportedCharset: Unknown charset
        DecodeError: Bytes invalid in that charset
    """
    charset = resolve_charset(media_type, default_charset, header)
    try:
        return body.decode(charset)
    except UnicodeDecodeError as e:
        raise DecodeError(
            f"Body is not valid {charset}: {e.reason} at byte {e.start}",
            _declared(media_type, header),
        ) from e


def decode_form(
    body: bytes,
    media_type: Optional[MediaType],
    default_charset: str = "utf-8",
    header: Optional[str] = None,
) -> Dict[str, List[str]]:
    """
    Decode an application/x-www-form-urlencoded body.

        b"a=1&a=2&b=3"   → {"a": ["1", "2"], "b": ["3"]}
        b"q=hello+world" → {"q": ["hello world"]}
        b"flag"          → {"flag": [""]}
        b""              → {}

    Names keep first-appearance order; values keep encounter order.
    Percent-escapes are decoded with the resolved charset.
    """
    charset = resolve_charset(media_type, default_charset, header)
    try:
        text = body.decode(charset)
        pairs = parse_qsl(text, keep_blank_values=True, encoding=charset, errors="strict")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Form body is not valid {charset}: {e.reason}", _declared(media_type, header)) from e

    form: Dict[str, List[str]] = {}
    for name, value in pairs:
        form.setdefault(name, []).append(value)
    return form


def decode_json(body: bytes, media_type: Optional[MediaType], header: Optional[str] = None) -> Any:
    """
    Decode a JSON body.

    Any syntax error (including an empty body) is a MalformedBody. The
    error message carries the line and column json reported.
    """
    if not body.strip():
        raise MalformedBody("Empty JSON body", _declared(media_type, header))
    try:
        text = body.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise MalformedBody(f"JSON body is not valid UTF-8: {e.reason}", _declared(media_type, header)) from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedBody(
            f"Invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})",
            _declared(media_type, header),
        ) from e


def decode_xml(
    body: bytes,
    media_type: Optional[MediaType],
    header: Optional[str] = None,
) -> ElementTree.Element:
    """
    Decode an XML body into its root element.

    The raw bytes go to the XML parser so an encoding declared in the
    <?xml ...?> prolog is honoured.
    """
    if not body.strip():
        raise MalformedBody("Empty XML body", _declared(media_type, header))
    try:
        return ElementTree.fromstring(body)
    except ElementTree.ParseError as e:
        raise MalformedBody(f"Invalid XML: {e}", _declared(media_type, header)) from e


def decode_raw(body: bytes, media_type: Optional[MediaType], header: Optional[str] = None) -> bytes:
    return body
