"""
=============================================================================
HEADER AND COOKIE ACCESSORS
=============================================================================

Read-only lookup over the header fields and cookies of a request.

=============================================================================
TWO DIFFERENT CASE RULES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  HEADERS (RFC 9110 §5.1)            COOKIES (RFC 6265 §5.4)         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  Content-Type: application/json     Cookie: Demo=1; demo=2          │
    │                                                                      │
    │  get("content-type") → found        get("Demo") → "1"               │
    │  get("CONTENT-TYPE") → found        get("demo") → "2"               │
    │                                     get("DEMO") → None              │
    │                                                                      │
    │  Names are case-INSENSITIVE         Names are case-SENSITIVE        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHY KEEP HEADERS AS ORDERED PAIRS?
=============================================================================

A dict keyed by lowercase name loses two things:

    1. The original spelling ("X-Request-ID" vs "x-request-id")
    2. Repeated fields (two "Accept" lines become one)

Keeping the declared sequence of (name, value) pairs preserves both.
get() returns the FIRST occurrence; get_all() returns every one.

=============================================================================
ABSENCE IS NOT AN EMPTY STRING
=============================================================================

    headers.get("X-Missing")   → None     (caller must branch)
    headers.get("X-Empty")     → ""       (header present, empty value)

A default of "" would make these two cases indistinguishable.

=============================================================================
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Literal, Optional, Tuple
import logging


logger = logging.getLogger(__name__)


class Headers:
    """
    Ordered, read-only collection of HTTP header fields.

    Usage:
        headers = Headers([("Content-Type", "text/plain"), ("Accept", "*/*")])

        headers.get("content-type")    # "text/plain"
        headers.get("X-Missing")       # None
        "ACCEPT" in headers            # True
    """

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[Tuple[str, str]] = ()):
        self._items: Tuple[Tuple[str, str], ...] = tuple(
            (str(name), str(value)) for name, value in items
        )

    @classmethod
    def from_dict(cls, mapping: Dict[str, str]) -> "Headers":
        """Build from a plain dict (insertion order becomes declaration order)."""
        return cls(mapping.items())

    def get(self, name: str) -> Optional[str]:
        """
        Get the first value declared for a header (case-insensitive).

        Args:
            name: Header name in any case

        Returns:
            The value of the first matching field, or None if absent
        """
        wanted = name.lower()
        for field_name, value in self._items:
            if field_name.lower() == wanted:
                return value
        return None

    def get_all(self, name: str) -> List[str]:
        """Get every value declared for a header, in declaration order."""
        wanted = name.lower()
        return [value for field_name, value in self._items if field_name.lower() == wanted]

    def items(self) -> List[Tuple[str, str]]:
        """All (name, value) pairs as declared."""
        return list(self._items)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return self.get(name) is not None

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Headers):
            return NotImplemented
        return self._items == other._items

    def __hash__(self) -> int:
        return hash(self._items)

    def __repr__(self) -> str:
        return f"Headers({list(self._items)!r})"


@dataclass(frozen=True)
class Cookie:
    """
    A cookie sent by the client.

    Only name and value travel in a request's Cookie header. The remaining
    attributes are carried through untouched when a transport supplies them
    (e.g. a cookie jar shared with a client library); the body parser never
    interprets them.
    """

    name: str
    value: str
    domain: str = ""
    path: str = "/"
    expires: int = 0
    max_age: int = 0
    secure: bool = False
    http_only: bool = False
    same_site: Optional[Literal["Lax", "Strict", "None"]] = None


class CookieJar:
    """
    Case-sensitive, read-only cookie lookup.

    When the same name is sent twice, the first one wins, matching the
    header rule.
    """

    __slots__ = ("_cookies",)

    def __init__(self, cookies: Iterable[Cookie] = ()):
        jar: Dict[str, Cookie] = {}
        for cookie in cookies:
            jar.setdefault(cookie.name, cookie)
        self._cookies = jar

    def get(self, name: str) -> Optional[Cookie]:
        """Get a cookie by exact (case-sensitive) name, or None."""
        return self._cookies.get(name)

    def value(self, name: str) -> Optional[str]:
        """Get only the value of a cookie, or None."""
        cookie = self._cookies.get(name)
        return cookie.value if cookie is not None else None

    def names(self) -> List[str]:
        return list(self._cookies)

    def __contains__(self, name: object) -> bool:
        return name in self._cookies

    def __iter__(self) -> Iterator[Cookie]:
        return iter(self._cookies.values())

    def __len__(self) -> int:
        return len(self._cookies)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CookieJar):
            return NotImplemented
        return self._cookies == other._cookies

    def __hash__(self) -> int:
        return hash(tuple(self._cookies.values()))

    def __repr__(self) -> str:
        return f"CookieJar({list(self._cookies.values())!r})"


def parse_cookie_header(values: Iterable[str]) -> CookieJar:
    """
    Parse one or more request Cookie header values.

    =====================================================================
    COOKIE HEADER FORMAT (RFC 6265 §4.2)
    =====================================================================

        Cookie: session=abc123; theme=dark; Demo="quoted value"
                ──────┬──────  ─────┬────  ──────────┬─────────
                      │             │                │
                  name=value    name=value     quoted value

    A request Cookie header carries only name=value pairs, never
    attributes, so every name is a cookie: "Version=2" or "Path=/x" are
    cookies called Version and Path. Values are taken as sent up to the
    next ";", with one pair of surrounding double quotes removed.

    A pair without "=" or with an empty name is skipped (lenient, like
    header parsing). CookieJar keeps the first of repeated names.

    =====================================================================

    Args:
        values: Raw Cookie header values, in declaration order

    Returns:
        CookieJar with the parsed cookies
    """
    cookies: List[Cookie] = []
    for raw in values:
        for pair in raw.split(";"):
            name, sep, value = pair.partition("=")
            name = name.strip()
            if not sep or not name:
                if pair.strip():
                    logger.debug("Skipping malformed cookie pair: %r", pair)
                continue
            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] == '"':
                value = value[1:-1]
            cookies.append(Cookie(name=name, value=value))
    return CookieJar(cookies)
