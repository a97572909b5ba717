# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""AWS Signature Version 4 for outgoing S3 requests.

Only what the env file fetch needs: header-based SigV4 (HMAC-SHA256) for
S3 requests with an empty or fully buffered payload.  No boto3/botocore
dependency.
"""

from __future__ import annotations

import hashlib
import hmac
import urllib.parse
from dataclasses import dataclass
from datetime import UTC, datetime


ALGORITHM = "AWS4-HMAC-SHA256"

SHA256_EMPTY = hashlib.sha256(b"").hexdigest()

_AWS_UNRESERVED = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~"
)


@dataclass(frozen=True)
class Credentials:
    """AWS credentials used for signing.

    Attributes:
        access_key_id: Access key ID.
        secret_access_key: Secret access key.
        session_token: STS session token, if the credentials are temporary.
    """

    access_key_id: str
    secret_access_key: str
    session_token: str | None = None


def uri_encode(value: str, *, encode_slash: bool = True) -> str:
    """URI-encode a value using AWS's rules.

    Unreserved characters (A-Z, a-z, 0-9, ``-_.~``) pass through; all
    others become uppercase ``%XX``.  ``/`` is kept when ``encode_slash``
    is False.
    """
    result: list[str] = []
    for ch in value:
        if ch in _AWS_UNRESERVED:
            result.append(ch)
        elif ch == "/" and not encode_slash:
            result.append("/")
        else:
            for byte in ch.encode("utf-8"):
                result.append(f"%{byte:02X}")
    return "".join(result)


def canonical_uri(path: str) -> str:
    """Build the S3 canonical URI.

    S3 is single-encoded: existing percent-escapes are decoded first, then
    the path is encoded once.  Double slashes and dot segments are kept.
    """
    if not path:
        return "/"
    path = urllib.parse.unquote(path.split("?")[0])
    return uri_encode(path, encode_slash=False)


def canonical_query_string(query: str) -> str:
    """Build the canonical query string (sorted, encoded)."""
    if not query:
        return ""
    params = urllib.parse.parse_qsl(query, keep_blank_values=True)
    encoded = sorted((uri_encode(k), uri_encode(v)) for k, v in params)
    return "&".join(f"{k}={v}" for k, v in encoded)


def canonical_headers_string(
    headers: dict[str, str], signed_headers: list[str]
) -> str:
    """Build the canonical headers block.

    Args:
        headers: Request headers (name -> value).
        signed_headers: Lowercase names of the headers to sign.

    Returns:
        One ``name:value`` line per signed header, each newline-terminated.
    """
    lower = {name.lower(): value for name, value in headers.items()}
    return "".join(
        f"{name}:{' '.join(lower.get(name, '').split())}\n"
        for name in sorted(signed_headers)
    )


def build_canonical_request(
    method: str,
    path: str,
    query: str,
    headers: dict[str, str],
    signed_headers: list[str],
    payload_hash: str,
) -> str:
    """Build the canonical request string."""
    return "\n".join(
        [
            method,
            canonical_uri(path),
            canonical_query_string(query),
            canonical_headers_string(headers, signed_headers),
            ";".join(sorted(signed_headers)),
            payload_hash,
        ]
    )


def _hmac_sha256(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def derive_signing_key(
    secret_key: str, date: str, region: str, service: str
) -> bytes:
    """Derive the SigV4 signing key.

    Args:
        secret_key: AWS secret access key.
        date: Date string (YYYYMMDD).
        region: AWS region.
        service: AWS service name.

    Returns:
        Derived signing key bytes.
    """
    k_date = _hmac_sha256(("AWS4" + secret_key).encode("utf-8"), date)
    k_region = _hmac_sha256(k_date, region)
    k_service = _hmac_sha256(k_region, service)
    return _hmac_sha256(k_service, "aws4_request")


def build_string_to_sign(
    timestamp: str, scope: str, canonical_request: str
) -> str:
    """Build the SigV4 string to sign."""
    return "\n".join(
        [
            ALGORITHM,
            timestamp,
            scope,
            hashlib.sha256(canonical_request.encode("utf-8")).hexdigest(),
        ]
    )


def sign_request(
    method: str,
    url: str,
    credentials: Credentials,
    region: str,
    *,
    service: str = "s3",
    payload: bytes = b"",
    now: datetime | None = None,
) -> dict[str, str]:
    """Compute SigV4 headers for a request.

    Args:
        method: HTTP method.
        url: Absolute request URL (path already percent-encoded).
        credentials: Credentials to sign with.
        region: Signing region.
        service: Signing service name.
        payload: Request body.
        now: Signing time; defaults to the current UTC time.

    Returns:
        Headers to send with the request, including ``Host``,
        ``x-amz-date``, ``x-amz-content-sha256`` and ``Authorization``
        (plus ``x-amz-security-token`` for temporary credentials).
    """
    if now is None:
        now = datetime.now(UTC)
    timestamp = now.strftime("%Y%m%dT%H%M%SZ")
    date = now.strftime("%Y%m%d")

    parts = urllib.parse.urlsplit(url)
    payload_hash = (
        hashlib.sha256(payload).hexdigest() if payload else SHA256_EMPTY
    )

    headers = {
        "host": parts.netloc,
        "x-amz-content-sha256": payload_hash,
        "x-amz-date": timestamp,
    }
    if credentials.session_token:
        headers["x-amz-security-token"] = credentials.session_token

    signed_headers = sorted(headers)
    canonical_request = build_canonical_request(
        method.upper(),
        parts.path,
        parts.query,
        headers,
        signed_headers,
        payload_hash,
    )
    scope = f"{date}/{region}/{service}/aws4_request"
    string_to_sign = build_string_to_sign(timestamp, scope, canonical_request)
    signing_key = derive_signing_key(
        credentials.secret_access_key, date, region, service
    )
    signature = hmac.new(
        signing_key, string_to_sign.encode("utf-8"), hashlib.sha256
    ).hexdigest()

    headers["authorization"] = (
        f"{ALGORITHM} "
        f"Credential={credentials.access_key_id}/{scope}, "
        f"SignedHeaders={';'.join(signed_headers)}, "
        f"Signature={signature}"
    )
    return headers
