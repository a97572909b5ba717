# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""AWS credential resolution for the env file fetch.

Credentials come from the environment when ``AWS_ACCESS_KEY_ID`` and
``AWS_SECRET_ACCESS_KEY`` are both set.  Otherwise the instance metadata
service is asked for the credentials of the attached IAM role, using an
IMDSv2 session token when the service supports one.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

import httpx

from consul_aws.aws.signing import Credentials
from consul_aws.config import (
    ENV_ACCESS_KEY_ID,
    ENV_METADATA_SERVICE_URL,
    ENV_SECRET_ACCESS_KEY,
    ENV_SESSION_TOKEN,
)
from consul_aws.logging import SecretFilter


logger = logging.getLogger(__name__)

DEFAULT_METADATA_SERVICE_URL = "http://169.254.169.254"

_TOKEN_PATH = "/latest/api/token"
_ROLE_PATH = "/latest/meta-data/iam/security-credentials/"
_TOKEN_TTL_SECONDS = "21600"

# Statuses that mean "IMDSv2 not available here, use IMDSv1"
_TOKEN_UNSUPPORTED_STATUSES = frozenset({403, 404, 405})


class CredentialsError(Exception):
    """No usable AWS credentials could be found."""


def credentials_from_env(env: Mapping[str, str]) -> Credentials | None:
    """Return credentials from the environment, or None if incomplete."""
    access_key_id = env.get(ENV_ACCESS_KEY_ID)
    secret_access_key = env.get(ENV_SECRET_ACCESS_KEY)
    if not access_key_id or not secret_access_key:
        return None
    session_token = env.get(ENV_SESSION_TOKEN) or None
    SecretFilter.register_secret(secret_access_key)
    SecretFilter.register_secret(session_token)
    return Credentials(access_key_id, secret_access_key, session_token)


def _fetch_imds_token(client: httpx.Client, base_url: str) -> str | None:
    response = client.put(
        base_url + _TOKEN_PATH,
        headers={"X-aws-ec2-metadata-token-ttl-seconds": _TOKEN_TTL_SECONDS},
    )
    if response.status_code in _TOKEN_UNSUPPORTED_STATUSES:
        logger.debug(
            "Metadata service returned %d for token request, using IMDSv1",
            response.status_code,
        )
        return None
    response.raise_for_status()
    token = response.text.strip()
    SecretFilter.register_secret(token)
    return token


def credentials_from_metadata_service(
    client: httpx.Client, base_url: str
) -> Credentials:
    """Fetch IAM role credentials from the instance metadata service.

    Args:
        client: HTTP client to use.
        base_url: Metadata service base URL (no trailing slash needed).

    Returns:
        Temporary credentials of the instance role.

    Raises:
        CredentialsError: If the service is unreachable, has no role, or
            returns an unexpected document.
    """
    base_url = base_url.rstrip("/")
    role = ""
    try:
        token = _fetch_imds_token(client, base_url)
        headers = {"X-aws-ec2-metadata-token": token} if token else {}

        response = client.get(base_url + _ROLE_PATH, headers=headers)
        response.raise_for_status()
        roles = response.text.split()
        if not roles:
            raise CredentialsError(
                f"No IAM role attached (metadata service: {base_url})"
            )
        role = roles[0]

        response = client.get(base_url + _ROLE_PATH + role, headers=headers)
        response.raise_for_status()
        document = response.json()
    except httpx.HTTPError as e:
        raise CredentialsError(
            f"Metadata service request failed ({base_url}): {e}"
        ) from e
    except ValueError as e:
        raise CredentialsError(
            f"Metadata service returned invalid JSON for role '{role}'"
        ) from e

    try:
        credentials = Credentials(
            access_key_id=document["AccessKeyId"],
            secret_access_key=document["SecretAccessKey"],
            session_token=document.get("Token"),
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise CredentialsError(
            f"Metadata service credentials for role '{role}' are incomplete"
        ) from e

    SecretFilter.register_secret(credentials.secret_access_key)
    SecretFilter.register_secret(credentials.session_token)
    logger.info("Using instance role credentials for role '%s'", role)
    return credentials


def resolve_credentials(
    env: Mapping[str, str], client: httpx.Client
) -> Credentials:
    """Resolve credentials from the environment or the metadata service.

    Raises:
        CredentialsError: If neither source yields credentials.
    """
    credentials = credentials_from_env(env)
    if credentials is not None:
        logger.debug("Using credentials from environment")
        return credentials

    base_url = env.get(ENV_METADATA_SERVICE_URL) or DEFAULT_METADATA_SERVICE_URL
    return credentials_from_metadata_service(client, base_url)
