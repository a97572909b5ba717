# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for consul_aws/logging.py."""

import logging

from consul_aws.logging import DEFAULT_FORMAT, SecretFilter, configure_logging


def _record(msg: str, args: tuple[object, ...] = ()) -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="",
        lineno=0,
        msg=msg,
        args=args,
        exc_info=None,
    )


class TestSecretFilter:
    """Tests for SecretFilter class."""

    def test_filter_returns_true(self) -> None:
        """Filter never suppresses records."""
        assert SecretFilter().filter(_record("message")) is True

    def test_no_secrets_no_redaction(self) -> None:
        """Without registered secrets, messages pass through unchanged."""
        record = _record("key AKIAEXAMPLE")
        SecretFilter().filter(record)
        assert record.msg == "key AKIAEXAMPLE"

    def test_redacts_registered_secret(self) -> None:
        """Registered secrets are redacted from messages."""
        SecretFilter.register_secret("wJalrXUtnFEMI")
        record = _record("secret wJalrXUtnFEMI in message")
        SecretFilter().filter(record)
        assert record.msg == "secret [REDACTED] in message"

    def test_redacts_in_args(self) -> None:
        """Secrets passed as %-style arguments are redacted."""
        SecretFilter.register_secret("session-token")
        record = _record("token %s, count %d", ("session-token", 3))
        SecretFilter().filter(record)
        assert record.args == ("[REDACTED]", 3)

    def test_overlapping_secrets_fully_redacted(self) -> None:
        """A secret containing another secret is redacted as a whole."""
        SecretFilter.register_secret("abc")
        SecretFilter.register_secret("abcdef")
        record = _record("value abcdef")
        SecretFilter().filter(record)
        assert record.msg == "value [REDACTED]"

    def test_ignores_empty_and_none(self) -> None:
        """Empty strings and None are not registered."""
        SecretFilter.register_secret("")
        SecretFilter.register_secret(None)
        assert SecretFilter._pattern is None

    def test_redacts_mapping_args(self) -> None:
        """Secrets in a single mapping argument are redacted."""
        SecretFilter.register_secret("session-token")
        record = _record("token %(token)s", ({"token": "session-token"},))
        SecretFilter().filter(record)
        assert record.args == {"token": "[REDACTED]"}

    def test_registering_twice(self) -> None:
        """Registering the same secret again keeps redaction working."""
        SecretFilter.register_secret("abc")
        SecretFilter.register_secret("abc")
        record = _record("value abc")
        SecretFilter().filter(record)
        assert record.msg == "value [REDACTED]"

    def test_special_regex_chars(self) -> None:
        """Secrets are matched literally."""
        SecretFilter.register_secret("a+b/c*")
        record = _record("x a+b/c* y")
        SecretFilter().filter(record)
        assert record.msg == "x [REDACTED] y"


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def teardown_method(self) -> None:
        """Reset logging after each test."""
        root = logging.getLogger()
        root.handlers.clear()
        root.setLevel(logging.WARNING)

    def test_sets_log_level(self) -> None:
        """Root logger level is set."""
        configure_logging(level=logging.DEBUG)
        assert logging.getLogger().level == logging.DEBUG

    def test_default_format(self) -> None:
        """Default format marks lines as coming from the entrypoint."""
        configure_logging()
        formatter = logging.getLogger().handlers[0].formatter
        assert formatter is not None
        assert formatter._fmt == DEFAULT_FORMAT
        assert "docker-entrypoint" in DEFAULT_FORMAT

    def test_adds_secret_filter(self) -> None:
        """Secret filter is installed on the handler."""
        configure_logging()
        filters = logging.getLogger().handlers[0].filters
        assert any(isinstance(f, SecretFilter) for f in filters)

    def test_removes_existing_handlers(self) -> None:
        """Calling twice does not duplicate handlers."""
        configure_logging()
        configure_logging()
        assert len(logging.getLogger().handlers) == 1
