"""
=============================================================================
BODY NEGOTIATION
=============================================================================

Turns the raw body of an HTTPRequest into a typed, tagged result.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ PARSER (parser.py)                                                  │
    │   Content-Type → category → decoder. Size limits, custom parsers.  │
    ├─────────────────────────────────────────────────────────────────────┤
    │ DECODERS (decoders.py)                                              │
    │   text, form-urlencoded, JSON, XML, raw. Charset handling.         │
    ├─────────────────────────────────────────────────────────────────────┤
    │ MULTIPART (multipart.py)                                            │
    │   Streaming multipart/form-data reader, spooled file parts.        │
    ├─────────────────────────────────────────────────────────────────────┤
    │ RESULT (result.py)                                                  │
    │   BodyKind, ParsedBody, MultipartForm, UploadedFile                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │ ERRORS (errors.py)                                                  │
    │   MalformedBody, PayloadTooLarge, DecodeError, UnsupportedCharset  │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .errors import (
    NegotiationError,
    MalformedBody,
    PayloadTooLarge,
    DecodeError,
    UnsupportedCharset,
    BodyConsumedError,
)
from .result import BodyKind, ParsedBody, MultipartForm, UploadedFile
from .multipart import MultipartReader
from .parser import BodyParser, builtin_kind

__all__ = [
    # Parsing
    "BodyParser",
    "MultipartReader",
    "builtin_kind",

    # Results
    "BodyKind",
    "ParsedBody",
    "MultipartForm",
    "UploadedFile",

    # Errors
    "NegotiationError",
    "MalformedBody",
    "PayloadTooLarge",
    "DecodeError",
    "UnsupportedCharset",
    "BodyConsumedError",
]
