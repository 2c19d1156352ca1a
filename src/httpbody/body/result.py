"""
=============================================================================
PARSED BODY RESULT
=============================================================================

The typed outcome of body negotiation: a tagged variant with exactly one
populated category.

=============================================================================
THE TAGGED VARIANT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  ParsedBody(kind=BodyKind.JSON, value={"a": 1})                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   as_text()       → None          ← category mismatch = absence     │
    │   as_form()       → None                                            │
    │   as_multipart()  → None                                            │
    │   as_json()       → {"a": 1}      ← the one populated accessor      │
    │   as_xml()        → None                                            │
    │   as_raw()        → None                                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    BodyKind     Payload type
    ─────────    ─────────────────────────────────────
    TEXT         str
    FORM         Dict[str, List[str]]
    MULTIPART    MultipartForm
    JSON         dict / list / str / int / float / bool / None
    XML          xml.etree.ElementTree.Element (document root)
    RAW          bytes

An accessor NEVER coerces: a JSON body is not re-read as text, and a RAW
body is never guessed at. Accessors return None on mismatch and the caller
decides what to try next.

Note the one ambiguous case: a JSON document that is literally `null`
makes as_json() return None. Check `body.kind` (or `body.is_json`) when
that distinction matters.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, BinaryIO, Dict, Iterator, List, Optional
from xml.etree.ElementTree import Element
import shutil

from ..http.media_type import MediaType


class BodyKind(Enum):
    """The recognized body categories."""

    TEXT = "text"
    FORM = "form"
    MULTIPART = "multipart"
    JSON = "json"
    XML = "xml"
    RAW = "raw"


@dataclass
class UploadedFile:
    """
    A file part of a multipart/form-data body.

    The content lives in a spooled temporary file: in memory while small,
    on disk once it grows past the configured spool size. The stream is
    rewound to the start when parsing finishes.

    Attributes:
        name:           Form field name (Content-Disposition name=)
        filename:       Client-supplied file name, as sent
        content_type:   Declared Content-Type of the part
        headers:        All part headers, lowercase names
        size:           Number of content bytes
        file:           Binary file object holding the content
    """

    name: str
    filename: str
    content_type: str
    file: BinaryIO = field(repr=False)
    size: int = 0
    headers: Dict[str, str] = field(default_factory=dict, repr=False)

    @property
    def stream(self) -> BinaryIO:
        """The underlying binary stream, for incremental reads."""
        return self.file

    def read(self, size: int = -1) -> bytes:
        """Read content bytes from the current position."""
        return self.file.read(size)

    def iter_chunks(self, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        """Yield the whole content from the start, chunk by chunk."""
        self.file.seek(0)
        while True:
            chunk = self.file.read(chunk_size)
            if not chunk:
                break
            yield chunk

    def save(self, destination: BinaryIO) -> int:
        """
        Copy the content into another binary stream.

        Returns:
            Number of bytes written
        """
        self.file.seek(0)
        shutil.copyfileobj(self.file, destination)
        return self.size

    def close(self) -> None:
        """Release the spooled file (deleting it if it went to disk)."""
        if not self.file.closed:
            self.file.close()

    @property
    def closed(self) -> bool:
        return self.file.closed


@dataclass
class MultipartForm:
    """
    The fields and files of a multipart/form-data body.

    Fields and files keep every value per name, in the order they arrived.
    Use it as a context manager (or call close()) to release the files.
    """

    fields: Dict[str, List[str]] = field(default_factory=dict)
    files: Dict[str, List[UploadedFile]] = field(default_factory=dict)

    def get_field(self, name: str) -> Optional[str]:
        """First value of a text field, or None."""
        values = self.fields.get(name)
        return values[0] if values else None

    def get_fields(self, name: str) -> List[str]:
        return list(self.fields.get(name, []))

    def get_file(self, name: str) -> Optional[UploadedFile]:
        """First file uploaded under a field name, or None."""
        uploads = self.files.get(name)
        return uploads[0] if uploads else None

    def get_files(self, name: str) -> List[UploadedFile]:
        return list(self.files.get(name, []))

    def add_field(self, name: str, value: str) -> None:
        self.fields.setdefault(name, []).append(value)

    def add_file(self, upload: UploadedFile) -> None:
        self.files.setdefault(upload.name, []).append(upload)

    def close(self) -> None:
        """Close every uploaded file."""
        for uploads in self.files.values():
            for upload in uploads:
                upload.close()

    def __enter__(self) -> "MultipartForm":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


@dataclass(frozen=True)
class ParsedBody:
    """
    Result of a successful negotiation.

    Exactly one accessor returns a value: the one matching `kind`.

    Attributes:
        kind:           Which category was negotiated
        value:          The decoded payload for that category
        media_type:     The Content-Type it was negotiated from (None when
                        the request declared none)
    """

    kind: BodyKind
    value: Any
    media_type: Optional[MediaType] = None

    def get(self, kind: BodyKind) -> Any:
        """Payload if this body is of `kind`, else None."""
        return self.value if self.kind is kind else None

    def as_text(self) -> Optional[str]:
        return self.get(BodyKind.TEXT)

    def as_form(self) -> Optional[Dict[str, List[str]]]:
        return self.get(BodyKind.FORM)

    def as_multipart(self) -> Optional[MultipartForm]:
        return self.get(BodyKind.MULTIPART)

    def as_json(self) -> Any:
        """
        The decoded JSON value, or None for any other category.

        A body of literal null also gives None. Check is_json (or kind)
        to tell that apart from a body that was not JSON at all.
        """
        return self.get(BodyKind.JSON)

    def as_xml(self) -> Optional[Element]:
        return self.get(BodyKind.XML)

    def as_raw(self) -> Optional[bytes]:
        return self.get(BodyKind.RAW)

    @property
    def is_json(self) -> bool:
        return self.kind is BodyKind.JSON

    def close(self) -> None:
        """Release resources held by the payload (multipart files)."""
        if self.kind is BodyKind.MULTIPART:
            self.value.close()
