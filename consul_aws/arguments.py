# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Consul command line synthesis.

Maps the configuration snapshot onto the Consul argument list.  For the
``agent`` subcommand the caller's arguments are followed by the fixed
base flags and then by the conditional flags, always in this order:

=================================  =========================================
Variable                           Arguments
=================================  =========================================
``CONSUL_BIND_INTERFACE``          ``-bind=<interface IPv4>``
``CONSUL_CLIENT_ADDRESS``          ``-client=<address>`` (wins over below)
``CONSUL_CLIENT_INTERFACE``        ``-client=<interface IPv4>``
``CONSUL_ENABLE_UI=yes``           ``-ui``
``CONSUL_EC2_AUTO_JOIN_TAG_*``     ``-retry-join "provider=aws tag_key=..."``
``CONSUL_SERVER_ADDRESSES``        ``-retry-join <address>`` per address
``CONSUL_EXPECTED_SERVERS``        ``-bootstrap-expect <count>``
=================================  =========================================

``CONSUL_LOCAL_CONFIGURATION`` is not a flag: it is written to
``local.json`` in the config directory, which the agent scans on start.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field

from consul_aws.config import ConsulPaths, EntrypointConfig
from consul_aws.errors import ArgumentResolutionError
from consul_aws.network import interface_ipv4_address
from consul_aws.permissions import ResolvedPermissions


logger = logging.getLogger(__name__)

AGENT_SUBCOMMAND = "agent"

#: Resolves an interface name to its first IPv4 address.
InterfaceResolver = Callable[[str], str]


@dataclass(frozen=True)
class AgentInvocation:
    """Everything needed to exec the agent.

    Attributes:
        binary: Consul executable.
        arguments: Ordered arguments following the binary.
        run_as: ``(user, group)`` to run as, or None for the invoking user.
        local_configuration: Content for ``local.json``, if configured.
        environment: Environment the agent is started with.
    """

    binary: str
    arguments: tuple[str, ...]
    run_as: tuple[str, str] | None = None
    local_configuration: str | None = None
    environment: Mapping[str, str] = field(default_factory=dict)


def base_arguments(paths: ConsulPaths) -> list[str]:
    """Flags added to every agent invocation."""
    return [
        f"-data-dir={paths.data_dir}",
        f"-config-dir={paths.config_dir}",
        "-log-json",
    ]


def split_server_addresses(value: str) -> list[str]:
    """Split a comma-separated address list, dropping blank entries."""
    return [part.strip() for part in value.split(",") if part.strip()]


def conditional_arguments(
    config: EntrypointConfig,
    resolve_interface: InterfaceResolver = interface_ipv4_address,
) -> list[str]:
    """Build the environment-driven agent flags.

    Args:
        config: Configuration snapshot.
        resolve_interface: Interface address lookup.

    Returns:
        Flags in their fixed order.

    Raises:
        ArgumentResolutionError: If an interface has no IPv4 address or the
            expected server count is not a non-negative integer.
    """
    args: list[str] = []

    if config.bind_interface is not None:
        args.append(f"-bind={resolve_interface(config.bind_interface)}")

    if config.client_address is not None:
        if config.client_interface is not None:
            logger.info(
                "Both client address and client interface set, using "
                "address %s",
                config.client_address,
            )
        args.append(f"-client={config.client_address}")
    elif config.client_interface is not None:
        args.append(f"-client={resolve_interface(config.client_interface)}")

    if config.enable_ui:
        args.append("-ui")

    if (
        config.ec2_auto_join_tag_key is not None
        and config.ec2_auto_join_tag_value is not None
    ):
        args.extend(
            [
                "-retry-join",
                f"provider=aws tag_key={config.ec2_auto_join_tag_key} "
                f"tag_value={config.ec2_auto_join_tag_value}",
            ]
        )
    elif (
        config.ec2_auto_join_tag_key is not None
        or config.ec2_auto_join_tag_value is not None
    ):
        logger.warning(
            "EC2 auto-join needs both tag key and tag value, skipping"
        )

    if config.server_addresses is not None:
        for address in split_server_addresses(config.server_addresses):
            args.extend(["-retry-join", address])

    if config.expected_servers is not None:
        value = config.expected_servers
        if not (value.isascii() and value.isdigit()):
            raise ArgumentResolutionError(
                "Expected server count must be a non-negative integer, "
                f"got {value!r}"
            )
        args.extend(["-bootstrap-expect", value])

    return args


def resolve_invocation(
    command: Sequence[str],
    config: EntrypointConfig,
    permissions: ResolvedPermissions,
    paths: ConsulPaths,
    environment: Mapping[str, str],
    resolve_interface: InterfaceResolver = interface_ipv4_address,
) -> AgentInvocation:
    """Resolve the full agent invocation.

    Resolution has no side effects beyond interface lookups, so identical
    inputs always produce identical invocations.

    Args:
        command: Caller-supplied Consul subcommand and flags
            (e.g. ``["agent", "-server"]``), passed through unchanged.
        config: Configuration snapshot.
        permissions: Resolved permissions (determines the run-as account).
        paths: Filesystem locations.
        environment: Effective environment handed to the agent.
        resolve_interface: Interface address lookup.

    Returns:
        The agent invocation.

    Raises:
        ArgumentResolutionError: If a conditional flag cannot be resolved.
    """
    arguments = list(command)
    if command and command[0] == AGENT_SUBCOMMAND:
        arguments.extend(base_arguments(paths))
        arguments.extend(conditional_arguments(config, resolve_interface))
        local_configuration = config.local_configuration
    else:
        local_configuration = None

    return AgentInvocation(
        binary=str(paths.binary),
        arguments=tuple(arguments),
        run_as=permissions.run_as,
        local_configuration=local_configuration,
        environment=dict(environment),
    )


def write_local_configuration(
    invocation: AgentInvocation, paths: ConsulPaths
) -> None:
    """Write ``CONSUL_LOCAL_CONFIGURATION`` into the config directory.

    The content is written verbatim followed by a newline and, when the
    agent runs as the service account, owned by that account.

    Raises:
        ArgumentResolutionError: If the file cannot be written.
    """
    if invocation.local_configuration is None:
        return

    target = paths.local_config_file
    try:
        target.write_text(
            invocation.local_configuration + "\n", encoding="utf-8"
        )
        if invocation.run_as is not None:
            user, group = invocation.run_as
            shutil.chown(target, user, group)
    except (OSError, LookupError) as e:
        raise ArgumentResolutionError(
            f"Cannot write local configuration to {target}: {e}"
        ) from e
    logger.info("Wrote local configuration to %s", target)
