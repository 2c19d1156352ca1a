"""
=============================================================================
HTTPBODY CLI ENTRY POINT
=============================================================================

Negotiates the body of a raw HTTP/1.1 request stored in a file and
prints what it was parsed into. Handy for debugging what a client really
sends.

=============================================================================
USAGE
=============================================================================

    # A captured request
    python -m httpbody request.http

    # From stdin
    printf 'POST / HTTP/1.1\\r\\nContent-Type: application/json\\r\\n'\\
'Content-Length: 7\\r\\n\\r\\n{"a":1}' | python -m httpbody -

    # Tighter limit, verbose logs
    python -m httpbody upload.http --max-body-size 1048576 --log-level DEBUG

Output (stdout):

    {
      "method": "POST",
      "path": "/",
      "content_type": "application/json",
      "kind": "json",
      "payload": {"a": 1}
    }

Exit status: 0 on success, 1 when the request or its body is rejected
(the reason goes to stderr).

=============================================================================
"""

import argparse
import json
import sys
from typing import Any, Optional, Sequence
from xml.etree import ElementTree

from . import __version__
from .body.errors import NegotiationError
from .body.parser import BodyParser
from .body.result import BodyKind, ParsedBody
from .config import LOG_LEVELS, ParserConfig, setup_logging
from .http.request import HTTPParseError, RequestParser

PREVIEW_BYTES = 256


def preview(body: ParsedBody) -> Any:
    """
    JSON-friendly rendering of a parsed body's payload.

    Large text and raw payloads are cut to PREVIEW_BYTES; uploaded files
    are summarized, never dumped.
    """
    kind, value = body.kind, body.value

    if kind is BodyKind.JSON or kind is BodyKind.FORM:
        return value
    if kind is BodyKind.TEXT:
        return value[:PREVIEW_BYTES]
    if kind is BodyKind.XML:
        return ElementTree.tostring(value, encoding="unicode")[:PREVIEW_BYTES]
    if kind is BodyKind.MULTIPART:
        return {
            "fields": value.fields,
            "files": {
                name: [
                    {"filename": f.filename, "content_type": f.content_type, "size": f.size}
                    for f in uploads
                ]
                for name, uploads in value.files.items()
            },
        }
    if isinstance(value, (bytes, bytearray)):
        return {"size": len(value), "head": value[:PREVIEW_BYTES].decode("latin-1")}
    # Custom parsers may return anything; repr() is always printable
    return repr(value)[:PREVIEW_BYTES]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m httpbody",
        description="Negotiate the body of a raw HTTP/1.1 request",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m httpbody request.http                      # Parse a captured request
  cat request.http | python -m httpbody -              # Read from stdin
  python -m httpbody req.http --charset iso-8859-1     # Different default charset
        """
    )

    parser.add_argument(
        "file",
        help="File holding the raw request, or - for stdin"
    )

    # ─────────────────────────────────────────────────────────────────────
    # PARSER SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--max-body-size", "-m",
        type=int,
        default=None,
        help="Maximum body size in bytes (default: HTTPBODY_MAX_BODY_SIZE or 10 MB)"
    )

    parser.add_argument(
        "--charset", "-c",
        default=None,
        help="Charset for bodies that declare none (default: utf-8)"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=list(LOG_LEVELS),
        default=None,
        help="Logging level (default: HTTPBODY_LOG_LEVEL or INFO)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"httpbody {__version__}"
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    CLI entry point.

    Command-line flags override environment variables, which override
    the ParserConfig defaults.
    """
    args = build_parser().parse_args(argv)

    config = ParserConfig.from_env()
    if args.max_body_size is not None:
        config.max_body_size = args.max_body_size
    if args.charset is not None:
        config.default_charset = args.charset
    if args.log_level is not None:
        config.log_level = args.log_level

    try:
        config.validate()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(config)

    try:
        if args.file == "-":
            raw = sys.stdin.buffer.read()
        else:
            with open(args.file, "rb") as f:
                raw = f.read()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Accept bare \n line endings from hand-written files
    if b"\r\n\r\n" not in raw and b"\n\n" in raw:
        head, _, rest = raw.partition(b"\n\n")
        raw = head.replace(b"\n", b"\r\n") + b"\r\n\r\n" + rest

    try:
        request = RequestParser(max_request_size=len(raw) + 1).parse(raw)
    except HTTPParseError as e:
        print(f"Error: {e} ({e.status_code})", file=sys.stderr)
        return 1

    with request:
        try:
            body = request.parse_body(BodyParser(config))
        except NegotiationError as e:
            print(f"Error: {e.reason} ({int(e.status_code)} {e.label})", file=sys.stderr)
            return 1

        summary = {
            "method": request.method,
            "path": request.path,
            "content_type": request.get_header("Content-Type"),
            "kind": body.kind.value,
            "payload": preview(body),
        }
        print(json.dumps(summary, indent=2, ensure_ascii=False, default=repr))

    return 0


if __name__ == "__main__":
    sys.exit(main())
