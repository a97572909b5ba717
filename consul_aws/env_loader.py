# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Effective environment loading.

The effective environment is built from two sources (lowest precedence
first):

1. An optional env file stored in S3, located by
   ``AWS_S3_ENV_FILE_OBJECT_PATH`` and fetched using
   ``AWS_S3_ENDPOINT_URL`` / ``AWS_S3_BUCKET_REGION``
2. The process environment

Variables already set in the process environment are never overwritten
by the file.  The file uses ``.env`` syntax (``KEY="VALUE"`` per line) and
is parsed with ``python-dotenv``.  Lines that do not parse are skipped
with a warning; failing to fetch the file is fatal.
"""

from __future__ import annotations

import io
import logging
from collections.abc import Mapping

import httpx
from dotenv import dotenv_values

from consul_aws.aws.credentials import CredentialsError, resolve_credentials
from consul_aws.aws.s3 import ObjectFetchError, fetch_object
from consul_aws.config import (
    ENV_S3_BUCKET_REGION,
    ENV_S3_ENDPOINT_URL,
    ENV_S3_ENV_FILE_OBJECT_PATH,
    ENV_S3_FETCH_TIMEOUT_SECONDS,
)
from consul_aws.errors import ConfigFetchError


logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT_SECONDS = 10.0


def parse_env_file(content: str) -> dict[str, str]:
    """Parse ``.env`` formatted text.

    Each line is parsed on its own.  A line that does not parse (or has no
    value) is dropped without affecting its neighbours, so quoted values
    cannot span lines.  Leading whitespace and quotes are handled by
    python-dotenv; no variable interpolation is performed.

    Args:
        content: File content.

    Returns:
        Mapping of variable name to value, in file order.
    """
    result: dict[str, str] = {}
    for line in content.splitlines():
        values = dotenv_values(stream=io.StringIO(line), interpolate=False)
        result.update(
            (key, value) for key, value in values.items() if value is not None
        )
    return result


def _fetch_timeout(env: Mapping[str, str]) -> float:
    raw = env.get(ENV_S3_FETCH_TIMEOUT_SECONDS)
    if raw is None:
        return DEFAULT_FETCH_TIMEOUT_SECONDS
    try:
        timeout = float(raw)
    except ValueError:
        raise ConfigFetchError(
            f"{ENV_S3_FETCH_TIMEOUT_SECONDS} must be a number, got {raw!r}"
        ) from None
    if timeout <= 0:
        raise ConfigFetchError(
            f"{ENV_S3_FETCH_TIMEOUT_SECONDS} must be positive, got {raw!r}"
        )
    return timeout


def fetch_remote_env(
    env: Mapping[str, str], client: httpx.Client | None = None
) -> dict[str, str]:
    """Fetch and parse the remote env file, if one is configured.

    Args:
        env: Process environment.
        client: HTTP client override (tests).  When None a client with
            the configured timeout is created and closed here.

    Returns:
        Parsed variables, or an empty dict when no object path is set.

    Raises:
        ConfigFetchError: If the file is configured but cannot be fetched
            or decoded.
    """
    object_path = env.get(ENV_S3_ENV_FILE_OBJECT_PATH)
    if not object_path:
        return {}

    region = env.get(ENV_S3_BUCKET_REGION)
    if not region:
        raise ConfigFetchError(
            f"{ENV_S3_BUCKET_REGION} is required when "
            f"{ENV_S3_ENV_FILE_OBJECT_PATH} is set"
        )
    endpoint = env.get(ENV_S3_ENDPOINT_URL) or None

    if client is None:
        with httpx.Client(timeout=_fetch_timeout(env)) as owned_client:
            return fetch_remote_env(env, owned_client)

    logger.info("Fetching env file %s (region %s)", object_path, region)
    try:
        credentials = resolve_credentials(env, client)
        content = fetch_object(
            endpoint, region, object_path, credentials, client
        )
    except (CredentialsError, ObjectFetchError) as e:
        raise ConfigFetchError(str(e)) from e

    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ConfigFetchError(
            f"Env file {object_path} is not valid UTF-8"
        ) from e

    values = parse_env_file(text)
    logger.info(
        "Loaded %d variable(s) from %s: %s",
        len(values),
        object_path,
        ", ".join(values) or "(none)",
    )
    return values


def load_effective_environment(
    env: Mapping[str, str], client: httpx.Client | None = None
) -> dict[str, str]:
    """Merge the remote env file under the process environment.

    Args:
        env: Process environment (read-only).
        client: HTTP client override (tests).

    Returns:
        The effective environment.

    Raises:
        ConfigFetchError: If a configured remote env file cannot be read.
    """
    remote = fetch_remote_env(env, client)
    shadowed = sorted(key for key in remote if key in env)
    if shadowed:
        logger.debug(
            "Process environment overrides env file for: %s",
            ", ".join(shadowed),
        )
    return {**remote, **env}
