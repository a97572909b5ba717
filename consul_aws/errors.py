# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Fatal entrypoint errors, one per pipeline stage.

Every error carries the name of the stage that failed so the operator can
tell a pre-launch failure apart from the agent exiting on its own.
"""

from __future__ import annotations


STAGE_LOADING_INPUT = "loading-input"
STAGE_MANAGING_PERMISSIONS = "managing-permissions"
STAGE_RESOLVING_ARGUMENTS = "resolving-arguments"
STAGE_LAUNCHING = "launching"


class EntrypointError(Exception):
    """Base exception for fatal entrypoint failures."""

    stage = "entrypoint"


class ConfigFetchError(EntrypointError):
    """The remote env file could not be fetched or read."""

    stage = STAGE_LOADING_INPUT


class PermissionApplyError(EntrypointError):
    """Ownership or capability changes could not be applied."""

    stage = STAGE_MANAGING_PERMISSIONS


class ArgumentResolutionError(EntrypointError):
    """The agent argument list could not be resolved."""

    stage = STAGE_RESOLVING_ARGUMENTS


class LaunchError(EntrypointError):
    """The agent process could not be started."""

    stage = STAGE_LAUNCHING
