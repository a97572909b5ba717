# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Network interface address lookup.

Resolves the first IPv4 address of a named interface using
``ip -o -4 addr list <interface>``, the same view of the interface an
operator gets inside the container.
"""

from __future__ import annotations

import logging
import subprocess

from consul_aws.errors import ArgumentResolutionError


logger = logging.getLogger(__name__)


def parse_ipv4_address(output: str) -> str | None:
    """Extract the first IPv4 address from ``ip -o -4 addr`` output.

    Each line looks like::

        2: eth0    inet 172.18.0.2/16 brd 172.18.255.255 scope global eth0

    Returns:
        The address without prefix length, or None if no line has one.
    """
    for line in output.splitlines():
        fields = line.split()
        if "inet" not in fields:
            continue
        index = fields.index("inet")
        if index + 1 < len(fields):
            return fields[index + 1].split("/")[0]
    return None


def interface_ipv4_address(interface: str) -> str:
    """Return the first IPv4 address of a network interface.

    Args:
        interface: Interface name (e.g. ``eth0``).

    Returns:
        Dotted-quad address.

    Raises:
        ArgumentResolutionError: If the interface does not exist, the
            ``ip`` command is unavailable, or no IPv4 address is assigned.
    """
    try:
        result = subprocess.run(
            ["ip", "-o", "-4", "addr", "list", interface],
            check=True,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as e:
        raise ArgumentResolutionError(
            "Cannot resolve interface addresses: 'ip' command not found"
        ) from e
    except OSError as e:
        raise ArgumentResolutionError(
            f"Cannot resolve interface addresses: cannot run 'ip': {e}"
        ) from e
    except subprocess.CalledProcessError as e:
        raise ArgumentResolutionError(
            f"Cannot list addresses of interface '{interface}': "
            f"{e.stderr.strip() if e.stderr else e}"
        ) from e

    address = parse_ipv4_address(result.stdout)
    if address is None:
        raise ArgumentResolutionError(
            f"Interface '{interface}' has no IPv4 address"
        )
    logger.debug("Interface %s has address %s", interface, address)
    return address
