# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Agent process launch.

The entrypoint replaces itself with the agent (``os.execvpe``), so the
agent becomes the container's main process and its exit status is the
container's.  When the agent must run as the service account and the
entrypoint is root, privileges are dropped with ``su-exec``.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import NoReturn

from consul_aws.arguments import AgentInvocation
from consul_aws.errors import LaunchError


logger = logging.getLogger(__name__)

PRIVILEGE_DROP_TOOL = "su-exec"


def build_exec_command(
    invocation: AgentInvocation, *, is_root: bool | None = None
) -> list[str]:
    """Build the argv to exec.

    Args:
        invocation: Resolved invocation.
        is_root: Whether the entrypoint runs as root; detected when None.

    Returns:
        ``[su-exec, user:group, binary, *args]`` when a run-as account is
        set and the entrypoint is root, else ``[binary, *args]``.
    """
    if is_root is None:
        is_root = os.geteuid() == 0

    command = [invocation.binary, *invocation.arguments]
    if invocation.run_as is None:
        return command
    if not is_root:
        logger.warning(
            "Not running as root, cannot switch to %s:%s; starting agent "
            "as the current user",
            *invocation.run_as,
        )
        return command

    user, group = invocation.run_as
    return [PRIVILEGE_DROP_TOOL, f"{user}:{group}", *command]


def launch(invocation: AgentInvocation) -> NoReturn:
    """Replace the current process with the agent.

    Raises:
        LaunchError: If the binary or privilege drop tool is missing, or
            exec fails.  On success this function never returns.
    """
    binary = Path(invocation.binary)
    if not binary.is_file():
        raise LaunchError(f"Consul binary not found: {binary}")
    if not os.access(binary, os.X_OK):
        raise LaunchError(f"Consul binary is not executable: {binary}")

    command = build_exec_command(invocation)
    if command[0] == PRIVILEGE_DROP_TOOL and shutil.which(
        PRIVILEGE_DROP_TOOL, path=invocation.environment.get("PATH")
    ) is None:
        raise LaunchError(f"'{PRIVILEGE_DROP_TOOL}' not found on PATH")

    logger.info("Starting agent: %s", " ".join(command))
    try:
        os.execvpe(command[0], command, dict(invocation.environment))
    except OSError as e:
        raise LaunchError(f"Failed to exec {command[0]}: {e}") from e
    raise LaunchError(f"exec of {command[0]} returned unexpectedly")
