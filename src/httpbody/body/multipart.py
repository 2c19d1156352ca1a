"""
=============================================================================
STREAMING MULTIPART/FORM-DATA READER
=============================================================================

Parses a multipart/form-data body (RFC 7578, delimiters per RFC 2046)
chunk by chunk, so large uploads are never held in memory as a whole.

=============================================================================
WIRE FORMAT
=============================================================================

    Content-Type: multipart/form-data; boundary=XyZ

    --XyZ\r\n
    Content-Disposition: form-data; name="title"\r\n        ← text field
    \r\n
    Holiday\r\n
    --XyZ\r\n
    Content-Disposition: form-data; name="photo"; filename="a.jpg"\r\n
    Content-Type: image/jpeg\r\n                            ← file part
    \r\n
    <binary jpeg bytes>\r\n
    --XyZ--\r\n                                             ← closing boundary

=============================================================================
HOW THE STREAM IS CONSUMED
=============================================================================

    body chunks ──► MultipartParser.write() ──► callbacks
                                                  │
          ┌───────────────────────────────────────┼─────────────────────┐
          │ on_part_begin      count parts, reset part state             │
          │ on_header_*        collect part headers                      │
          │ on_headers_finished read name / filename, open spool file    │
          │ on_part_data       text field → buffer, file → spool file    │
          │ on_part_end        decode field / finish UploadedFile        │
          │ on_end             closing boundary seen                     │
          └─────────────────────────────────────────────────────────────┘

File parts go into tempfile.SpooledTemporaryFile: memory while small,
a real temporary file once they pass the spool size.

A body that stops before the closing boundary is malformed. Whatever the
failure, every file already opened is closed before the error leaves.

=============================================================================
"""

from tempfile import SpooledTemporaryFile
from typing import BinaryIO, Dict, Optional
import codecs
import logging

from python_multipart import MultipartParser
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import parse_options_header

from ..http.media_type import MediaType
from .errors import DecodeError, MalformedBody, UnsupportedCharset
from .result import MultipartForm, UploadedFile


logger = logging.getLogger(__name__)

# RFC 7578 §4.6: a text field with this name sets the charset of the form
CHARSET_FIELD = "_charset_"


class MultipartReader:
    """
    Incremental multipart/form-data reader.

    Usage:
        reader = MultipartReader(media_type)
        try:
            for chunk in body_chunks:
                reader.feed(chunk)
            form = reader.finish()
        except NegotiationError:
            reader.abort()
            raise

    Args:
        media_type:      The negotiated multipart/form-data type
        default_charset: Charset for text fields that declare none
        spool_size:      Bytes a file part may hold in memory before
                         spilling to disk
        max_parts:       Maximum number of parts accepted
        header:          Content-Type as sent, reported on failures
    """

    def __init__(
        self,
        media_type: MediaType,
        default_charset: str = "utf-8",
        spool_size: int = 1024 * 1024,
        max_parts: int = 1000,
        header: Optional[str] = None,
    ):
        self._declared = header if header is not None else str(media_type)
        boundary = media_type.boundary
        if not boundary:
            raise MalformedBody("Multipart body without a boundary parameter", self._declared)

        self.form = MultipartForm()
        self._charset = default_charset
        self._spool_size = spool_size
        self._max_parts = max_parts

        self._part_count = 0
        self._complete = False

        # Current part
        self._headers: Dict[str, str] = {}
        self._raw_disposition = b""
        self._header_field = bytearray()
        self._header_value = bytearray()
        self._name: Optional[str] = None
        self._filename: Optional[str] = None
        self._buffer = bytearray()
        self._file: Optional[BinaryIO] = None
        self._size = 0

        self._parser = MultipartParser(
            boundary.encode("latin-1"),
            callbacks={
                "on_part_begin": self._on_part_begin,
                "on_part_data": self._on_part_data,
                "on_part_end": self._on_part_end,
                "on_header_field": self._on_header_field,
                "on_header_value": self._on_header_value,
                "on_header_end": self._on_header_end,
                "on_headers_finished": self._on_headers_finished,
                "on_end": self._on_end,
            },
        )

    # =========================================================================
    # DRIVING THE PARSER
    # =========================================================================

    def feed(self, chunk: bytes) -> None:
        """
        Push the next chunk of body bytes.

        Raises:
            MalformedBody: Broken boundary or part structure
            DecodeError / UnsupportedCharset: A text field cannot be decoded
        """
        try:
            consumed = self._parser.write(chunk)
        except MultipartParseError as e:
            raise MalformedBody(f"Malformed multipart body: {e}", self._declared) from e

        if consumed != len(chunk):
            raise MalformedBody(
                f"Multipart parser stopped after {consumed} of {len(chunk)} bytes",
                self._declared,
            )

    def finish(self) -> MultipartForm:
        """
        Signal end of body and return the parsed form.

        File parts are rewound so they read from the start.
        """
        self._parser.finalize()
        if not self._complete:
            raise MalformedBody("Multipart body ended before the closing boundary", self._declared)

        for uploads in self.form.files.values():
            for upload in uploads:
                upload.file.seek(0)

        logger.debug("Multipart body: %d parts, %d fields, %d files",
                     self._part_count, len(self.form.fields), len(self.form.files))
        return self.form

    def abort(self) -> None:
        """Release the part in progress and every file already collected."""
        if self._file is not None:
            self._file.close()
            self._file = None
        self._buffer = bytearray()
        self.form.close()

    # =========================================================================
    # CALLBACKS
    # =========================================================================

    def _on_part_begin(self) -> None:
        self._part_count += 1
        if self._part_count > self._max_parts:
            raise MalformedBody(
                f"Too many multipart parts (limit {self._max_parts})",
                self._declared,
            )

        self._headers = {}
        self._raw_disposition = b""
        self._header_field = bytearray()
        self._header_value = bytearray()
        self._name = None
        self._filename = None
        self._buffer = bytearray()
        self._file = None
        self._size = 0

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field.extend(data[start:end])

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value.extend(data[start:end])

    def _on_header_end(self) -> None:
        if self._header_field:
            name = self._header_field.decode("latin-1").strip().lower()
            # Browsers send raw UTF-8 in part headers (file names)
            value = self._header_value.decode("utf-8", errors="replace").strip()
            if name == "content-disposition" and name not in self._headers:
                self._raw_disposition = bytes(self._header_value)
            self._headers.setdefault(name, value)
        self._header_field = bytearray()
        self._header_value = bytearray()

    def _on_headers_finished(self) -> None:
        disposition = self._headers.get("content-disposition")
        if not disposition:
            raise MalformedBody("Multipart part without Content-Disposition", self._declared)

        # Raw bytes: file names may be UTF-8 outside latin-1
        _, options = parse_options_header(self._raw_disposition)
        name = options.get(b"name")
        if name is None:
            raise MalformedBody("Multipart part without a field name", self._declared)
        self._name = name.decode("utf-8", errors="replace")

        filename = options.get(b"filename")
        if filename is not None:
            self._filename = filename.decode("utf-8", errors="replace")
            self._file = SpooledTemporaryFile(max_size=self._spool_size)

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        chunk = data[start:end]
        self._size += len(chunk)
        if self._file is not None:
            self._file.write(chunk)
        else:
            self._buffer.extend(chunk)

    def _on_part_end(self) -> None:
        if self._file is not None:
            upload = UploadedFile(
                name=self._name,
                filename=self._filename,
                content_type=self._headers.get("content-type", "application/octet-stream"),
                file=self._file,
                size=self._size,
                headers=dict(self._headers),
            )
            self.form.add_file(upload)
            self._file = None
            return

        value = self._decode_field(bytes(self._buffer))
        if self._name == CHARSET_FIELD:
            self._charset = self._check_charset(value.strip())
        self.form.add_field(self._name, value)
        self._buffer = bytearray()

    def _on_end(self) -> None:
        self._complete = True

    # =========================================================================
    # FIELD DECODING
    # =========================================================================

    def _check_charset(self, charset: str) -> str:
        try:
            return codecs.lookup(charset).name
        except LookupError:
            raise UnsupportedCharset(charset, self._declared) from None

    def _decode_field(self, data: bytes) -> str:
        """Decode a text field with its own charset, else the form's."""
        part_type = MediaType.parse(self._headers.get("content-type"))
        declared = part_type.charset if part_type is not None else None
        charset = self._check_charset(declared or self._charset)
        try:
            return data.decode(charset)
        except UnicodeDecodeError as e:
            raise DecodeError(
                f"Multipart field {self._name!r} is not valid {charset}: {e.reason}",
                self._declared,
            ) from e
