"""
=============================================================================
PARSER CONFIGURATION
=============================================================================

Centralized, read-only configuration for body negotiation.

=============================================================================
WHY A CONFIG CLASS?
=============================================================================

Configuration should be:
1. Centralized - One place to see all options
2. Typed - IDE autocomplete and error detection
3. Validated - Catch errors early

The configuration is the ONLY state shared between requests. A parser
reads it, never writes it, so one ParserConfig can serve any number of
concurrent requests.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m httpbody req.http --max-body-size 1048576        │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTPBODY_MAX_BODY_SIZE=1048576 python -m httpbody ...     │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Custom parsers are code, so they can only be registered from code.

=============================================================================
INTERVIEW QUESTIONS ABOUT BODY LIMITS
=============================================================================

Q: "Why check Content-Length AND count bytes while reading?"
A: "Content-Length lets us refuse an oversized upload before reading a
   single byte. But it can be absent (chunked transfer) or lie, so the
   running count is the real guard: the moment it crosses the limit we
   stop reading."

Q: "Why spool uploads instead of keeping them in memory?"
A: "A 2 GB video upload would otherwise need 2 GB of RAM per request.
   Spooling keeps small files in memory and moves big ones to disk."

=============================================================================
"""

import codecs
import logging
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict

from .http.media_type import MediaType

if TYPE_CHECKING:
    from .body.result import ParsedBody


CustomParser = Callable[[bytes, MediaType], "ParsedBody"]

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ParserConfig:
    """
    Configuration for the body parser.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    LIMITS
    - max_body_size, max_parts

    DECODING
    - default_charset, custom_parsers

    STREAMING
    - chunk_size, multipart_spool_size

    LOGGING
    - log_level

    =========================================================================
    TYPICAL SETUPS
    =========================================================================

    JSON API:
        ParserConfig(max_body_size=1024 * 1024)     # 1 MB is plenty

    Upload service:
        ParserConfig(
            max_body_size=512 * 1024 * 1024,        # 512 MB
            multipart_spool_size=4 * 1024 * 1024,   # Spill to disk at 4 MB
        )

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # LIMITS
    # ─────────────────────────────────────────────────────────────────────

    max_body_size: int = 10 * 1024 * 1024  # 10 MB
    """
    Maximum allowed request body size in bytes.
    Bodies over this fail with PayloadTooLarge (413).
    """

    max_parts: int = 1000
    """
    Maximum number of parts in a multipart body.
    Thousands of tiny parts are cheap to send and expensive to parse.
    """

    # ─────────────────────────────────────────────────────────────────────
    # DECODING
    # ─────────────────────────────────────────────────────────────────────

    default_charset: str = "utf-8"
    """
    Charset for text, form and multipart fields that declare none.
    """

    custom_parsers: Dict[str, CustomParser] = field(default_factory=dict)
    """
    MIME pattern → parser function. Consulted before the built-in table.
    Use register_parser() to add entries.
    """

    # ─────────────────────────────────────────────────────────────────────
    # STREAMING
    # ─────────────────────────────────────────────────────────────────────

    chunk_size: int = 64 * 1024
    """
    Bytes requested from the body stream per read (64 KB).
    """

    multipart_spool_size: int = 1024 * 1024
    """
    Bytes a multipart file part keeps in memory before spilling to a
    temporary file on disk.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    DEBUG logs every negotiation; INFO only failures.
    """

    @classmethod
    def from_env(cls) -> "ParserConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTPBODY_MAX_BODY_SIZE    Body limit in bytes (default: 10485760)
        HTTPBODY_DEFAULT_CHARSET  Fallback charset (default: utf-8)
        HTTPBODY_CHUNK_SIZE       Read size in bytes (default: 65536)
        HTTPBODY_SPOOL_SIZE       Multipart spool size (default: 1048576)
        HTTPBODY_MAX_PARTS        Multipart part limit (default: 1000)
        HTTPBODY_LOG_LEVEL        Logging level (default: INFO)

        =====================================================================
        """
        return cls(
            max_body_size=int(os.getenv("HTTPBODY_MAX_BODY_SIZE", str(10 * 1024 * 1024))),
            default_charset=os.getenv("HTTPBODY_DEFAULT_CHARSET", "utf-8"),
            chunk_size=int(os.getenv("HTTPBODY_CHUNK_SIZE", str(64 * 1024))),
            multipart_spool_size=int(os.getenv("HTTPBODY_SPOOL_SIZE", str(1024 * 1024))),
            max_parts=int(os.getenv("HTTPBODY_MAX_PARTS", "1000")),
            log_level=os.getenv("HTTPBODY_LOG_LEVEL", "INFO"),
        )

    def register_parser(self, pattern: str, parser: CustomParser) -> None:
        """
        Register a custom parser for a MIME pattern.

        Example:
            def parse_csv(body: bytes, media_type: MediaType) -> ParsedBody:
                rows = list(csv.reader(body.decode().splitlines()))
                return ParsedBody(BodyKind.RAW, rows, media_type)

            config.register_parser("text/csv", parse_csv)

        Registering the same pattern again replaces the earlier parser.
        """
        if "/" not in pattern and pattern.strip() != "*":
            raise ValueError(f"Invalid MIME pattern: {pattern!r}")
        if not callable(parser):
            raise ValueError(f"Parser for {pattern!r} is not callable")
        self.custom_parsers[pattern.strip().lower()] = parser

    def validate(self) -> None:
        """
        Validate configuration values.

        =====================================================================
        FAIL-FAST PRINCIPLE
        =====================================================================

        We validate configuration when the parser is built, not when the
        first request arrives.

        =====================================================================
        """
        if self.max_body_size < 0:
            raise ValueError(f"max_body_size must be >= 0, got {self.max_body_size}")

        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")

        if self.multipart_spool_size < 0:
            raise ValueError(f"multipart_spool_size must be >= 0")

        if self.max_parts < 1:
            raise ValueError(f"max_parts must be >= 1")

        try:
            codecs.lookup(self.default_charset)
        except LookupError:
            raise ValueError(f"Unknown default_charset: {self.default_charset}") from None

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")


def setup_logging(config: ParserConfig) -> None:
    """Configure logging based on config."""
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    # Configure root logger
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Set httpbody logger level
    logging.getLogger("httpbody").setLevel(level)
