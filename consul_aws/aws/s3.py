# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Minimal S3 object fetch.

Objects are addressed as ``s3://bucket/key`` and fetched with a signed,
path-style ``GET``.  Server-side encrypted objects (SSE-S3, SSE-KMS) are
decrypted by S3 transparently, so nothing extra is needed to read them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from consul_aws.aws.signing import Credentials, sign_request, uri_encode


logger = logging.getLogger(__name__)

_SCHEME = "s3://"


class ObjectFetchError(Exception):
    """An object could not be fetched from object storage."""


@dataclass(frozen=True)
class ObjectPath:
    """A parsed ``s3://bucket/key`` location."""

    bucket: str
    key: str

    def __str__(self) -> str:
        return f"{_SCHEME}{self.bucket}/{self.key}"


def parse_object_path(object_path: str) -> ObjectPath:
    """Parse an ``s3://bucket/key`` string.

    Raises:
        ObjectFetchError: If the path is not a complete S3 object path.
    """
    if not object_path.startswith(_SCHEME):
        raise ObjectFetchError(
            f"Object path must start with '{_SCHEME}': {object_path!r}"
        )
    bucket, _, key = object_path[len(_SCHEME) :].partition("/")
    if not bucket or not key:
        raise ObjectFetchError(
            f"Object path must name a bucket and a key: {object_path!r}"
        )
    return ObjectPath(bucket=bucket, key=key)


def default_endpoint(region: str) -> str:
    """Return the regional AWS S3 endpoint."""
    return f"https://s3.{region}.amazonaws.com"


def object_url(endpoint: str, location: ObjectPath) -> str:
    """Build the path-style URL of an object."""
    return (
        f"{endpoint.rstrip('/')}/{uri_encode(location.bucket)}/"
        f"{uri_encode(location.key, encode_slash=False)}"
    )


def fetch_object(
    endpoint: str | None,
    region: str,
    object_path: str,
    credentials: Credentials,
    client: httpx.Client,
) -> bytes:
    """Fetch an object's content.

    Args:
        endpoint: Endpoint URL; the regional AWS endpoint when None.
        region: Bucket region used for signing.
        object_path: ``s3://bucket/key`` location.
        credentials: Credentials to sign the request with.
        client: HTTP client (carries the timeout).

    Returns:
        Raw object bytes.

    Raises:
        ObjectFetchError: On a malformed path, transport failure, timeout
            or non-2xx response.
    """
    location = parse_object_path(object_path)
    url = object_url(endpoint or default_endpoint(region), location)
    headers = sign_request("GET", url, credentials, region)

    logger.debug("GET %s", url)
    try:
        response = client.get(url, headers=headers)
    except httpx.HTTPError as e:
        raise ObjectFetchError(f"Failed to fetch {location}: {e}") from e

    if response.status_code != 200:
        raise ObjectFetchError(
            f"Failed to fetch {location}: HTTP {response.status_code}"
            f"{_error_code_suffix(response)}"
        )
    return response.content


def _error_code_suffix(response: httpx.Response) -> str:
    """Extract the S3 ``<Code>`` element from an error body, if any."""
    text = response.text
    start = text.find("<Code>")
    end = text.find("</Code>")
    if start == -1 or end == -1 or end < start:
        return ""
    return f" ({text[start + len('<Code>') : end]})"
