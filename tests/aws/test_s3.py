# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for consul_aws/aws/s3.py."""

from collections.abc import Callable

import httpx
import pytest

from consul_aws.aws.s3 import (
    ObjectFetchError,
    ObjectPath,
    default_endpoint,
    fetch_object,
    object_url,
    parse_object_path,
)
from consul_aws.aws.signing import Credentials


CREDENTIALS = Credentials("AKIDEXAMPLE", "secret-example")

ClientFactory = Callable[
    [Callable[[httpx.Request], httpx.Response]], httpx.Client
]


class TestParseObjectPath:
    """Tests for parse_object_path."""

    def test_bucket_and_key(self) -> None:
        """Bucket and key are split at the first slash."""
        assert parse_object_path("s3://bucket/dir/env-file.env") == (
            ObjectPath(bucket="bucket", key="dir/env-file.env")
        )

    def test_str_round_trips(self) -> None:
        """str() gives back the s3:// form."""
        assert str(ObjectPath("bucket", "a/b")) == "s3://bucket/a/b"

    @pytest.mark.parametrize(
        "value",
        [
            "bucket/key",
            "https://bucket/key",
            "s3://bucket",
            "s3://bucket/",
            "s3:///key",
        ],
    )
    def test_rejects_incomplete_paths(self, value: str) -> None:
        """Anything but s3://bucket/key is rejected."""
        with pytest.raises(ObjectFetchError):
            parse_object_path(value)


class TestObjectUrl:
    """Tests for URL construction."""

    def test_path_style(self) -> None:
        """Objects are addressed path-style under the endpoint."""
        assert (
            object_url("http://s3:4566/", ObjectPath("bucket", "env-file.env"))
            == "http://s3:4566/bucket/env-file.env"
        )

    def test_key_is_encoded(self) -> None:
        """Keys are URI-encoded but keep their slashes."""
        assert (
            object_url("http://s3", ObjectPath("b", "dir/my file.env"))
            == "http://s3/b/dir/my%20file.env"
        )

    def test_default_endpoint(self) -> None:
        """The default endpoint is the regional AWS one."""
        assert default_endpoint("eu-west-2") == (
            "https://s3.eu-west-2.amazonaws.com"
        )


class TestFetchObject:
    """Tests for fetch_object."""

    def test_returns_content(self, mock_client: ClientFactory) -> None:
        """A 200 response returns the body."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b'A="1"\n')

        content = fetch_object(
            "http://s3:4566",
            "us-east-1",
            "s3://bucket/env-file.env",
            CREDENTIALS,
            mock_client(handler),
        )

        assert content == b'A="1"\n'
        request = seen[0]
        assert request.method == "GET"
        assert str(request.url) == "http://s3:4566/bucket/env-file.env"
        assert request.headers["host"] == "s3:4566"
        assert request.headers["authorization"].startswith(
            "AWS4-HMAC-SHA256 Credential=AKIDEXAMPLE/"
        )

    def test_uses_default_endpoint(self, mock_client: ClientFactory) -> None:
        """Without an endpoint the regional AWS endpoint is used."""
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, content=b"")

        fetch_object(
            None, "eu-west-1", "s3://b/k", CREDENTIALS, mock_client(handler)
        )
        assert seen == ["https://s3.eu-west-1.amazonaws.com/b/k"]

    def test_missing_object(self, mock_client: ClientFactory) -> None:
        """A 404 fails with the S3 error code in the message."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                404,
                content=(
                    b"<?xml version='1.0'?><Error><Code>NoSuchKey</Code>"
                    b"<Message>The specified key does not exist.</Message>"
                    b"</Error>"
                ),
            )

        with pytest.raises(ObjectFetchError, match=r"HTTP 404 \(NoSuchKey\)"):
            fetch_object(
                "http://s3:4566",
                "us-east-1",
                "s3://bucket/missing.env",
                CREDENTIALS,
                mock_client(handler),
            )

    def test_access_denied(self, mock_client: ClientFactory) -> None:
        """A 403 without a body still fails."""
        client = mock_client(lambda request: httpx.Response(403))

        with pytest.raises(ObjectFetchError, match="HTTP 403"):
            fetch_object(
                "http://s3:4566", "us-east-1", "s3://b/k", CREDENTIALS, client
            )

    def test_network_error(self, mock_client: ClientFactory) -> None:
        """Transport errors are wrapped."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ObjectFetchError, match="connection refused"):
            fetch_object(
                "http://s3:4566",
                "us-east-1",
                "s3://b/k",
                CREDENTIALS,
                mock_client(handler),
            )

    def test_timeout(self, mock_client: ClientFactory) -> None:
        """Timeouts are wrapped."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ObjectFetchError):
            fetch_object(
                "http://s3:4566",
                "us-east-1",
                "s3://b/k",
                CREDENTIALS,
                mock_client(handler),
            )
