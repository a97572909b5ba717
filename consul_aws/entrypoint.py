# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Container entrypoint: ``docker-entrypoint <subcommand> [flags...]``.

Runs the startup pipeline once and hands the process over to Consul:

1. Load the effective environment (process environment + remote env file)
2. Manage directory ownership and binary capabilities
3. Resolve the agent argument list and write ``local.json``
4. Exec the agent

Any stage failure is logged as ``entrypoint failed during <stage>`` and
exits with status 1 before the agent starts.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping, Sequence

import httpx

from consul_aws.arguments import (
    AGENT_SUBCOMMAND,
    AgentInvocation,
    InterfaceResolver,
    resolve_invocation,
    write_local_configuration,
)
from consul_aws.config import (
    ENV_ENTRYPOINT_DEBUG,
    ConsulPaths,
    EntrypointConfig,
    is_truthy,
)
from consul_aws.env_loader import load_effective_environment
from consul_aws.errors import EntrypointError
from consul_aws.launcher import launch
from consul_aws.logging import configure_logging
from consul_aws.network import interface_ipv4_address
from consul_aws.permissions import apply_permissions, resolve_permissions


logger = logging.getLogger(__name__)

_USAGE = """\
usage: docker-entrypoint <consul subcommand> [flags...]

examples:
  docker-entrypoint agent -server
  docker-entrypoint -server          (same as 'agent -server')\
"""


def normalize_command(argv: Sequence[str]) -> list[str]:
    """Treat a leading flag as shorthand for ``agent <flags>``."""
    if argv and argv[0].startswith("-"):
        return [AGENT_SUBCOMMAND, *argv]
    return list(argv)


def prepare(
    argv: Sequence[str],
    environ: Mapping[str, str],
    paths: ConsulPaths = ConsulPaths(),
    *,
    client: httpx.Client | None = None,
    resolve_interface: InterfaceResolver = interface_ipv4_address,
) -> AgentInvocation:
    """Run every pipeline stage up to (not including) the launch.

    Args:
        argv: Consul subcommand and flags.
        environ: Process environment (read-only).
        paths: Filesystem locations.
        client: HTTP client override for the env file fetch.
        resolve_interface: Interface address lookup.

    Returns:
        The invocation ready to launch.

    Raises:
        EntrypointError: If any stage fails.
    """
    env = load_effective_environment(environ, client)
    config = EntrypointConfig.from_env(env)

    permissions = resolve_permissions(config)
    apply_permissions(permissions, paths)

    invocation = resolve_invocation(
        normalize_command(argv),
        config,
        permissions,
        paths,
        env,
        resolve_interface,
    )
    write_local_configuration(invocation, paths)
    return invocation


def main(argv: Sequence[str] | None = None) -> int:
    """Run the entrypoint.

    Only returns on failure; on success the process becomes the agent.

    Args:
        argv: Arguments after the program name; ``sys.argv[1:]`` if None.

    Returns:
        Exit code (1 on a pipeline failure, 2 on a usage error).
    """
    if argv is None:
        argv = sys.argv[1:]

    configure_logging(
        level=logging.DEBUG
        if is_truthy(os.environ.get(ENV_ENTRYPOINT_DEBUG))
        else logging.INFO
    )

    if not argv:
        print(_USAGE, file=sys.stderr)
        return 2

    try:
        invocation = prepare(argv, os.environ)
        launch(invocation)
    except EntrypointError as e:
        logger.error("entrypoint failed during %s: %s", e.stage, e)
        return 1


def cli() -> None:
    """Console script entry point (``docker-entrypoint``)."""
    sys.exit(main())
