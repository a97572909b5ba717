# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""AWS collaborators: credentials, SigV4 signing and S3 object fetch."""

from consul_aws.aws.credentials import CredentialsError, resolve_credentials
from consul_aws.aws.s3 import ObjectFetchError, fetch_object
from consul_aws.aws.signing import Credentials


__all__ = [
    "Credentials",
    "CredentialsError",
    "ObjectFetchError",
    "fetch_object",
    "resolve_credentials",
]
