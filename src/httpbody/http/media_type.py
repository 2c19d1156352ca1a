"""
=============================================================================
MEDIA TYPE PARSING
=============================================================================

Turns a Content-Type header value into a structured MediaType and matches
it against MIME patterns.

=============================================================================
ANATOMY OF A CONTENT-TYPE
=============================================================================

    Content-Type: multipart/form-data; boundary="----abc"; charset=UTF-8
                  ─────┬─── ────┬────  ─────────────┬──────────────────
                       │        │                   │
                     type    subtype           parameters
                                          (names case-insensitive,
                                           values may be quoted)

    ┌────────────────────────────────────────────────────────────────────┐
    │  Header value                          MediaType                   │
    ├────────────────────────────────────────────────────────────────────┤
    │  "application/json"                  → application/json, {}        │
    │  "Text/Plain; charset=ISO-8859-1"    → text/plain,                 │
    │                                          {charset: ISO-8859-1}     │
    │  "application/problem+json"          → suffix "json"               │
    │  ""  /  missing  /  "garbage"        → None                        │
    └────────────────────────────────────────────────────────────────────┘

=============================================================================
PATTERNS
=============================================================================

Custom parsers are registered under a pattern. From most to least
specific:

    application/yaml      exact type/subtype
    application/*         any subtype of a type
    */*+json              structured syntax suffix (RFC 6839)
    */*                   anything

When several registered patterns match, the most specific one wins.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from python_multipart.multipart import parse_options_header


# Built-in types with a structured syntax suffix fall back to their base
# category: application/ld+json is JSON, image/svg+xml is XML.
JSON_SUFFIX = "json"
XML_SUFFIX = "xml"


@dataclass(frozen=True)
class MediaType:
    """
    A parsed media type.

    Attributes:
        type:       Top-level type, lowercase ("application")
        subtype:    Subtype, lowercase ("json", "problem+json")
        params:     Parameters with lowercase names, values as sent
    """

    type: str
    subtype: str
    params: Dict[str, str] = field(default_factory=dict, hash=False)

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["MediaType"]:
        """
        Parse a Content-Type header value.

        Uses python-multipart's option parser, which understands quoted
        parameter values and RFC 2231 continuations.

        Args:
            value: The raw header value, or None when the header is absent

        Returns:
            MediaType, or None when there is no usable type/subtype token
        """
        if not value or not value.strip():
            return None

        try:
            raw_type, raw_options = parse_options_header(value)
        except UnicodeEncodeError:
            # Header values outside latin-1 cannot come off the wire
            return None

        mime = raw_type.decode("latin-1").strip().lower()
        if mime.count("/") != 1:
            return None
        type_, subtype = mime.split("/")
        if not type_ or not subtype:
            return None

        params = {
            key.decode("latin-1").lower(): val.decode("latin-1")
            for key, val in raw_options.items()
        }
        return cls(type=type_, subtype=subtype, params=params)

    @property
    def essence(self) -> str:
        """The type/subtype token without parameters."""
        return f"{self.type}/{self.subtype}"

    @property
    def suffix(self) -> Optional[str]:
        """Structured syntax suffix ("json" for application/ld+json)."""
        if "+" in self.subtype:
            return self.subtype.rsplit("+", 1)[1]
        return None

    @property
    def charset(self) -> Optional[str]:
        """The declared charset parameter, or None."""
        charset = self.params.get("charset")
        return charset.strip() if charset else None

    @property
    def boundary(self) -> Optional[str]:
        """The multipart boundary parameter, or None."""
        return self.params.get("boundary") or None

    def matches(self, pattern: str) -> bool:
        """
        Check this media type against a MIME pattern.

        Examples:
            >>> mt = MediaType.parse("application/vnd.api+json")
            >>> mt.matches("application/vnd.api+json")
            True
            >>> mt.matches("application/*")
            True
            >>> mt.matches("*/*+json")
            True
            >>> mt.matches("text/*")
            False
        """
        pattern = pattern.strip().lower()
        if pattern in ("*", "*/*"):
            return True
        if "/" not in pattern:
            return False

        p_type, p_subtype = pattern.split("/", 1)
        if p_type != "*" and p_type != self.type:
            return False
        if p_subtype == "*":
            return True
        if p_subtype.startswith("*+"):
            return self.suffix == p_subtype[2:]
        return p_subtype == self.subtype

    def __str__(self) -> str:
        if not self.params:
            return self.essence
        rendered = "; ".join(f"{k}={v}" for k, v in self.params.items())
        return f"{self.essence}; {rendered}"


def specificity(pattern: str) -> int:
    """
    Rank a MIME pattern; higher is more specific.

        exact type/subtype   3
        type/*               2
        */*+suffix           1
        */*                  0
    """
    pattern = pattern.strip().lower()
    if pattern in ("*", "*/*"):
        return 0
    p_type, _, p_subtype = pattern.partition("/")
    if p_subtype.startswith("*+"):
        return 1
    if p_subtype == "*":
        return 2
    if p_type == "*":
        return 1
    return 3
