# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Container entrypoint for the Consul agent.

Resolves configuration from the environment (optionally merged with an
env file stored in S3), prepares directory ownership and binary
capabilities, then replaces itself with the Consul agent.
"""

from consul_aws.arguments import AgentInvocation, resolve_invocation
from consul_aws.config import ConsulPaths, EntrypointConfig
from consul_aws.errors import (
    ArgumentResolutionError,
    ConfigFetchError,
    EntrypointError,
    LaunchError,
    PermissionApplyError,
)
from consul_aws.permissions import ResolvedPermissions, resolve_permissions


__all__ = [
    # arguments
    "AgentInvocation",
    "resolve_invocation",
    # config
    "ConsulPaths",
    "EntrypointConfig",
    # errors
    "ArgumentResolutionError",
    "ConfigFetchError",
    "EntrypointError",
    "LaunchError",
    "PermissionApplyError",
    # permissions
    "ResolvedPermissions",
    "resolve_permissions",
]
