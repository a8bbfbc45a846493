"""Tests for logging configuration in log_config.py."""

import logging
from collections.abc import Iterator

import pytest

from log_config import SecretFilter, configure_logging


@pytest.fixture(autouse=True)
def _clear_secrets() -> Iterator[None]:
    SecretFilter.clear_secrets()
    yield
    SecretFilter.clear_secrets()


def _record(msg: str, args: object = None) -> logging.LogRecord:
    return logging.LogRecord(
        "test", logging.INFO, __file__, 1, msg, args, None
    )


class TestSecretFilter:
    """Tests for SecretFilter."""

    def test_no_secrets_passthrough(self) -> None:
        """Without secrets the message is unchanged."""
        record = _record("plain %s", ("text",))
        assert SecretFilter().filter(record)
        assert record.getMessage() == "plain text"

    def test_redacts_message(self) -> None:
        """Secrets in the format string are replaced."""
        SecretFilter.register_secret("s3cr3t")
        record = _record("key is s3cr3t")
        SecretFilter().filter(record)
        assert record.getMessage() == "key is [REDACTED]"

    def test_redacts_args(self) -> None:
        """Secrets in string arguments are replaced."""
        SecretFilter.register_secret("s3cr3t")
        record = _record("key is %s, retries %d", ("s3cr3t", 3))
        SecretFilter().filter(record)
        assert record.getMessage() == "key is [REDACTED], retries 3"

    def test_longest_secret_first(self) -> None:
        """Overlapping secrets are redacted whole."""
        SecretFilter.register_secret("abc")
        SecretFilter.register_secret("abcdef")
        record = _record("abcdef")
        SecretFilter().filter(record)
        assert record.getMessage() == "[REDACTED]"

    def test_special_characters_escaped(self) -> None:
        """Regex metacharacters in secrets are literal."""
        SecretFilter.register_secret("wJal/K7+b.x*")
        record = _record("secret wJal/K7+b.x* here")
        SecretFilter().filter(record)
        assert record.getMessage() == "secret [REDACTED] here"

    def test_empty_secret_ignored(self) -> None:
        """Empty strings are never registered."""
        SecretFilter.register_secret("")
        record = _record("nothing to hide")
        SecretFilter().filter(record)
        assert record.getMessage() == "nothing to hide"


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_installs_filtered_handler(self) -> None:
        """Root logger gets one handler carrying a SecretFilter."""
        root = logging.getLogger()
        saved_handlers = root.handlers[:]
        saved_level = root.level
        try:
            configure_logging(level=logging.DEBUG, secrets=["hide-me"])
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            filters = root.handlers[0].filters
            assert any(isinstance(f, SecretFilter) for f in filters)
            record = _record("hide-me")
            root.handlers[0].filter(record)
            assert record.getMessage() == "[REDACTED]"
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
