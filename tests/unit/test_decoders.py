"""
Unit tests for the per-category body decoders.
"""

import pytest

from httpbody.body.decoders import (
    decode_form,
    decode_json,
    decode_raw,
    decode_text,
    decode_xml,
    resolve_charset,
)
from httpbody.body.errors import DecodeError, MalformedBody, UnsupportedCharset
from httpbody.http.media_type import MediaType


def media(value):
    return MediaType.parse(value)


class TestResolveCharset:
    """Tests for charset resolution."""

    def test_declared_wins(self):
        """Test that a declared charset overrides the default."""
        assert resolve_charset(media("text/plain; charset=ISO-8859-1"), "utf-8") == "iso8859-1"

    def test_default_used(self):
        """Test the fallback when nothing is declared."""
        assert resolve_charset(media("text/plain"), "utf-8") == "utf-8"
        assert resolve_charset(None, "latin-1") == "iso8859-1"

    def test_unknown_charset(self):
        """Test that an unknown charset is unsupported, not a decode error."""
        with pytest.raises(UnsupportedCharset) as exc_info:
            resolve_charset(media("text/plain; charset=klingon"), "utf-8")

        assert exc_info.value.charset == "klingon"
        assert exc_info.value.status_code == 415


class TestDecodeText:
    """Tests for text/plain decoding."""

    def test_utf8(self):
        """Test decoding with the default charset."""
        assert decode_text("héllo".encode("utf-8"), media("text/plain")) == "héllo"

    def test_declared_latin1(self):
        """Test decoding with a declared charset."""
        body = "café".encode("latin-1")
        assert decode_text(body, media("text/plain; charset=latin-1")) == "café"

    def test_invalid_bytes(self):
        """Test that bytes invalid in the charset are a DecodeError."""
        with pytest.raises(DecodeError) as exc_info:
            decode_text(b"\xff\xfe\xfa", media("text/plain"))

        assert not isinstance(exc_info.value, UnsupportedCharset)
        assert exc_info.value.status_code == 400

    def test_empty(self):
        """Test that an empty text body is an empty string."""
        assert decode_text(b"", media("text/plain")) == ""


class TestDecodeForm:
    """Tests for application/x-www-form-urlencoded decoding."""

    def test_repeated_names(self):
        """Test that repeated names keep every value in order."""
        form = decode_form(b"a=1&a=2&b=3", None)
        assert form == {"a": ["1", "2"], "b": ["3"]}
        assert list(form) == ["a", "b"]

    def test_plus_and_percent(self):
        """Test '+' and percent-escape decoding."""
        form = decode_form(b"q=hello+world&name=J%C3%BCrgen", None)

        assert form["q"] == ["hello world"]
        assert form["name"] == ["Jürgen"]

    def test_blank_values_kept(self):
        """Test that names without values are kept."""
        assert decode_form(b"flag&empty=", None) == {"flag": [""], "empty": [""]}

    def test_empty(self):
        """Test that an empty body is an empty form."""
        assert decode_form(b"", None) == {}

    def test_declared_charset(self):
        """Test that escapes decode with the declared charset."""
        form = decode_form(b"name=J%FCrgen", media("application/x-www-form-urlencoded; charset=latin-1"))
        assert form["name"] == ["Jürgen"]

    def test_invalid_escape_bytes(self):
        """Test that an escape invalid in the charset is a DecodeError."""
        with pytest.raises(DecodeError):
            decode_form(b"name=%FF", None)


class TestDecodeJSON:
    """Tests for JSON decoding."""

    def test_object(self):
        """Test a JSON object."""
        assert decode_json(b'{"a": [1, 2]}', None) == {"a": [1, 2]}

    def test_null_literal(self):
        """Test that a literal null decodes to None."""
        assert decode_json(b"null", None) is None

    def test_bom(self):
        """Test that a UTF-8 byte order mark is accepted."""
        assert decode_json(b'\xef\xbb\xbf{"a": 1}', None) == {"a": 1}

    def test_syntax_error(self):
        """Test that invalid JSON is malformed, with a position."""
        with pytest.raises(MalformedBody) as exc_info:
            decode_json(b'{"a": }', media("application/json"))

        assert "line 1" in exc_info.value.reason
        assert exc_info.value.content_type == "application/json"

    def test_error_reports_header_as_sent(self):
        """Test that the raw header wins over the normalized media type."""
        header = 'Application/JSON; Charset="UTF-8"'

        with pytest.raises(MalformedBody) as exc_info:
            decode_json(b"{", media(header), header)

        assert exc_info.value.content_type == header

    @pytest.mark.parametrize("body", [b"", b"   \r\n"])
    def test_empty(self, body):
        """Test that an empty JSON body is malformed."""
        with pytest.raises(MalformedBody):
            decode_json(body, None)

    def test_not_utf8(self):
        """Test that non-UTF-8 bytes are malformed JSON."""
        with pytest.raises(MalformedBody):
            decode_json(b'"\xff"', None)


class TestDecodeXML:
    """Tests for XML decoding."""

    def test_document(self):
        """Test that the root element is returned."""
        root = decode_xml(b"<user><name>ada</name></user>", None)

        assert root.tag == "user"
        assert root.find("name").text == "ada"

    def test_prolog_encoding(self):
        """Test that the prolog's encoding declaration is honoured."""
        body = '<?xml version="1.0" encoding="ISO-8859-1"?><n>café</n>'.encode("latin-1")
        assert decode_xml(body, None).text == "café"

    def test_malformed(self):
        """Test that broken XML is malformed."""
        with pytest.raises(MalformedBody):
            decode_xml(b"<a><b></a>", None)

    def test_empty(self):
        """Test that an empty XML body is malformed."""
        with pytest.raises(MalformedBody):
            decode_xml(b"", None)


class TestDecodeRaw:
    """Tests for raw passthrough."""

    def test_bytes_unchanged(self):
        """Test that raw bodies are returned as-is."""
        data = bytes(range(256))
        assert decode_raw(data, None) == data
