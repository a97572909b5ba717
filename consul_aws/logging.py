# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Entrypoint log output with secret redaction.

Everything is written to stderr before the process is handed over to
Consul.  AWS credentials read while fetching the remote env file are
registered with :class:`SecretFilter` as soon as they are read, so they
never reach the log even if an error message echoes them back.
"""

import logging
import re
from collections.abc import Mapping
from typing import ClassVar


DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] docker-entrypoint: %(message)s"
REDACTED = "[REDACTED]"


class SecretFilter(logging.Filter):
    """Replace registered secrets in messages and %-style arguments."""

    _secrets: ClassVar[set[str]] = set()
    _pattern: ClassVar[re.Pattern[str] | None] = None

    def filter(self, record: logging.LogRecord) -> bool:
        pattern = self._pattern
        if pattern is None:
            return True

        def redact(value: object) -> object:
            if isinstance(value, str):
                return pattern.sub(REDACTED, value)
            return value

        record.msg = pattern.sub(REDACTED, str(record.msg))
        if isinstance(record.args, Mapping):
            record.args = {k: redact(v) for k, v in record.args.items()}
        elif record.args:
            record.args = tuple(redact(arg) for arg in record.args)
        return True

    @classmethod
    def register_secret(cls, secret: str | None) -> None:
        """Redact ``secret`` from all later output; empty values are ignored."""
        if not secret or secret in cls._secrets:
            return
        cls._secrets.add(secret)
        # Longest first so a secret containing another is fully redacted
        cls._pattern = re.compile(
            "|".join(
                re.escape(s)
                for s in sorted(cls._secrets, key=len, reverse=True)
            )
        )

    @classmethod
    def clear_secrets(cls) -> None:
        """Forget all registered secrets (tests only)."""
        cls._secrets.clear()
        cls._pattern = None


def configure_logging(level: int = logging.INFO) -> None:
    """Route root logger output to stderr through a SecretFilter.

    Existing root handlers are replaced, so repeated calls do not
    duplicate output.

    Args:
        level: Root logger level (``logging.DEBUG`` when
            ``CONSUL_ENTRYPOINT_DEBUG=yes``).
    """
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    handler.addFilter(SecretFilter())

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)
