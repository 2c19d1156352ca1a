"""
Unit tests for parser configuration.
"""

import logging

import pytest

from httpbody.body.result import BodyKind, ParsedBody
from httpbody.config import ParserConfig, setup_logging


def noop_parser(body, media_type):
    return ParsedBody(BodyKind.RAW, body, media_type)


class TestParserConfig:
    """Tests for ParserConfig defaults and validation."""

    def test_defaults(self):
        """Test the documented defaults."""
        config = ParserConfig()

        assert config.max_body_size == 10 * 1024 * 1024
        assert config.default_charset == "utf-8"
        assert config.chunk_size == 64 * 1024
        assert config.multipart_spool_size == 1024 * 1024
        assert config.max_parts == 1000
        assert config.custom_parsers == {}
        config.validate()

    @pytest.mark.parametrize("overrides", [
        {"max_body_size": -1},
        {"chunk_size": 0},
        {"multipart_spool_size": -1},
        {"max_parts": 0},
        {"default_charset": "klingon"},
        {"log_level": "LOUD"},
    ])
    def test_validate_rejects(self, overrides):
        """Test that invalid values fail validation."""
        with pytest.raises(ValueError):
            ParserConfig(**overrides).validate()

    def test_log_level_case_insensitive(self):
        """Test that log levels are accepted in any case."""
        ParserConfig(log_level="debug").validate()


class TestFromEnv:
    """Tests for environment-based configuration."""

    def test_reads_variables(self, monkeypatch):
        """Test that HTTPBODY_* variables are used."""
        monkeypatch.setenv("HTTPBODY_MAX_BODY_SIZE", "2048")
        monkeypatch.setenv("HTTPBODY_DEFAULT_CHARSET", "latin-1")
        monkeypatch.setenv("HTTPBODY_CHUNK_SIZE", "512")
        monkeypatch.setenv("HTTPBODY_SPOOL_SIZE", "4096")
        monkeypatch.setenv("HTTPBODY_MAX_PARTS", "5")
        monkeypatch.setenv("HTTPBODY_LOG_LEVEL", "DEBUG")

        config = ParserConfig.from_env()

        assert config.max_body_size == 2048
        assert config.default_charset == "latin-1"
        assert config.chunk_size == 512
        assert config.multipart_spool_size == 4096
        assert config.max_parts == 5
        assert config.log_level == "DEBUG"

    def test_defaults_without_variables(self, monkeypatch):
        """Test that unset variables fall back to the defaults."""
        for name in ("HTTPBODY_MAX_BODY_SIZE", "HTTPBODY_DEFAULT_CHARSET", "HTTPBODY_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        assert ParserConfig.from_env().max_body_size == ParserConfig().max_body_size

    def test_invalid_number(self, monkeypatch):
        """Test that a non-numeric size is rejected."""
        monkeypatch.setenv("HTTPBODY_MAX_BODY_SIZE", "big")

        with pytest.raises(ValueError):
            ParserConfig.from_env()


class TestRegisterParser:
    """Tests for custom parser registration."""

    def test_register(self):
        """Test that patterns are stored lowercase."""
        config = ParserConfig()
        config.register_parser("Text/CSV", noop_parser)

        assert config.custom_parsers == {"text/csv": noop_parser}

    def test_replace(self):
        """Test that registering a pattern again replaces it."""
        def other(body, media_type):
            return ParsedBody(BodyKind.TEXT, "", media_type)

        config = ParserConfig()
        config.register_parser("text/csv", noop_parser)
        config.register_parser("text/csv", other)

        assert config.custom_parsers["text/csv"] is other

    def test_invalid_pattern(self):
        """Test that a pattern needs a slash."""
        with pytest.raises(ValueError):
            ParserConfig().register_parser("csv", noop_parser)

    def test_not_callable(self):
        """Test that the parser must be callable."""
        with pytest.raises(ValueError):
            ParserConfig().register_parser("text/csv", "not a function")

    def test_configs_do_not_share_parsers(self):
        """Test that each config has its own registry."""
        first = ParserConfig()
        first.register_parser("text/csv", noop_parser)

        assert ParserConfig().custom_parsers == {}


class TestSetupLogging:
    """Tests for logging setup."""

    def test_sets_package_level(self):
        """Test that the httpbody logger gets the configured level."""
        logger = logging.getLogger("httpbody")
        previous = logger.level
        try:
            setup_logging(ParserConfig(log_level="WARNING"))
            assert logger.level == logging.WARNING
        finally:
            logger.setLevel(previous)
