# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Directory ownership and binary capability management.

Unless ``CONSUL_DISABLE_PERM_MGMT=yes``, the data and config directories
are handed to the ``consul`` service account and the agent is started as
that account.  ``CONSUL_ALLOW_PRIVILEGED_PORTS=yes`` grants the binary
``cap_net_bind_service`` so the unprivileged agent can still bind ports
below 1024; without it any capability left on the binary is removed.

With permission management disabled nothing is touched and the agent runs
as whichever user started the entrypoint.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from consul_aws.config import SERVICE_ACCOUNT, ConsulPaths, EntrypointConfig
from consul_aws.errors import PermissionApplyError


logger = logging.getLogger(__name__)

PRIVILEGED_PORTS_CAPABILITY = "cap_net_bind_service=+ep"


@dataclass(frozen=True)
class ResolvedPermissions:
    """Permission decisions derived from the configuration.

    Attributes:
        manage: Whether ownership/capabilities are managed at all.
        owner: Service account user.
        group: Service account group.
        allow_privileged_ports: Whether the binary gets
            ``cap_net_bind_service``.
    """

    manage: bool = True
    owner: str = SERVICE_ACCOUNT
    group: str = SERVICE_ACCOUNT
    allow_privileged_ports: bool = False

    @property
    def run_as(self) -> tuple[str, str] | None:
        """User and group the agent runs as; None means the invoking user."""
        if not self.manage:
            return None
        return self.owner, self.group


def resolve_permissions(config: EntrypointConfig) -> ResolvedPermissions:
    """Derive permission decisions from the configuration snapshot."""
    return ResolvedPermissions(
        manage=not config.disable_permission_management,
        allow_privileged_ports=config.allow_privileged_ports,
    )


def _run(cmd: list[str]) -> subprocess.CompletedProcess[str]:
    """Run a command, converting failures into PermissionApplyError."""
    try:
        return subprocess.run(
            cmd,
            check=True,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as e:
        raise PermissionApplyError(f"Command not found: {cmd[0]}") from e
    except OSError as e:
        raise PermissionApplyError(f"Cannot run {cmd[0]}: {e}") from e
    except subprocess.CalledProcessError as e:
        raise PermissionApplyError(
            f"'{' '.join(cmd)}' failed with exit code {e.returncode}: "
            f"{e.stderr.strip() if e.stderr else ''}"
        ) from e


def chown_recursive(path: Path, owner: str, group: str) -> None:
    """Recursively change ownership of a directory.

    Raises:
        PermissionApplyError: If the directory is missing or chown fails.
    """
    if not path.is_dir():
        raise PermissionApplyError(f"Directory not found: {path}")
    _run(["chown", "-R", f"{owner}:{group}", str(path)])
    logger.info("Set ownership of %s to %s:%s", path, owner, group)


def has_capabilities(binary: Path) -> bool:
    """Return True if any file capability is set on the binary."""
    result = _run(["getcap", str(binary)])
    return bool(result.stdout.strip())


def grant_privileged_ports(binary: Path) -> None:
    """Allow the binary to bind ports below 1024."""
    _run(["setcap", PRIVILEGED_PORTS_CAPABILITY, str(binary)])
    logger.info("Granted cap_net_bind_service to %s", binary)


def clear_capabilities(binary: Path) -> None:
    """Remove file capabilities from the binary, if it has any."""
    if has_capabilities(binary):
        _run(["setcap", "-r", str(binary)])
        logger.info("Removed capabilities from %s", binary)


def apply_permissions(
    permissions: ResolvedPermissions, paths: ConsulPaths
) -> None:
    """Apply ownership and capability changes.

    Changes already applied are not rolled back when a later step fails;
    re-running with the same inputs converges on the same state.

    Args:
        permissions: Decisions from ``resolve_permissions``.
        paths: Filesystem locations to act on.

    Raises:
        PermissionApplyError: If any change cannot be applied.
    """
    if not permissions.manage:
        logger.info(
            "Permission management disabled, leaving ownership unchanged"
        )
        return

    for directory in (paths.data_dir, paths.config_dir):
        chown_recursive(directory, permissions.owner, permissions.group)

    if not paths.binary.exists():
        raise PermissionApplyError(f"Consul binary not found: {paths.binary}")

    if permissions.allow_privileged_ports:
        grant_privileged_ports(paths.binary)
    else:
        clear_capabilities(paths.binary)
