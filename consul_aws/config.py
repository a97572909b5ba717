# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Entrypoint configuration.

All configuration is read from environment variables.  The effective
environment (process environment overlaid on the optional remote env file)
is snapshotted once into an immutable ``EntrypointConfig``; later stages
only ever see that snapshot.

Boolean switches are enabled only by the exact, case-sensitive value
``"yes"``.  ``"Yes"``, ``"true"``, ``"1"`` and the empty string are all
treated as disabled.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path


# Object storage / AWS
ENV_METADATA_SERVICE_URL = "AWS_METADATA_SERVICE_URL"
ENV_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
ENV_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
ENV_SESSION_TOKEN = "AWS_SESSION_TOKEN"
ENV_S3_ENDPOINT_URL = "AWS_S3_ENDPOINT_URL"
ENV_S3_BUCKET_REGION = "AWS_S3_BUCKET_REGION"
ENV_S3_ENV_FILE_OBJECT_PATH = "AWS_S3_ENV_FILE_OBJECT_PATH"
ENV_S3_FETCH_TIMEOUT_SECONDS = "AWS_S3_FETCH_TIMEOUT_SECONDS"

# Consul agent
ENV_BIND_INTERFACE = "CONSUL_BIND_INTERFACE"
ENV_CLIENT_INTERFACE = "CONSUL_CLIENT_INTERFACE"
ENV_CLIENT_ADDRESS = "CONSUL_CLIENT_ADDRESS"
ENV_ENABLE_UI = "CONSUL_ENABLE_UI"
ENV_LOCAL_CONFIGURATION = "CONSUL_LOCAL_CONFIGURATION"
ENV_EC2_AUTO_JOIN_TAG_KEY = "CONSUL_EC2_AUTO_JOIN_TAG_KEY"
ENV_EC2_AUTO_JOIN_TAG_VALUE = "CONSUL_EC2_AUTO_JOIN_TAG_VALUE"
ENV_SERVER_ADDRESSES = "CONSUL_SERVER_ADDRESSES"
ENV_EXPECTED_SERVERS = "CONSUL_EXPECTED_SERVERS"
ENV_ALLOW_PRIVILEGED_PORTS = "CONSUL_ALLOW_PRIVILEGED_PORTS"
ENV_DISABLE_PERM_MGMT = "CONSUL_DISABLE_PERM_MGMT"

# Entrypoint itself
ENV_ENTRYPOINT_DEBUG = "CONSUL_ENTRYPOINT_DEBUG"

#: The only value that switches a boolean option on.
TRUTHY_VALUE = "yes"

#: Dedicated service account (user and group share the name).
SERVICE_ACCOUNT = "consul"


def is_truthy(value: str | None) -> bool:
    """Return True only for the exact string ``"yes"``."""
    return value == TRUTHY_VALUE


@dataclass(frozen=True)
class ConsulPaths:
    """Well-known filesystem locations inside the image.

    Attributes:
        binary: Consul executable.
        data_dir: Agent data directory (``-data-dir``).
        config_dir: Agent config directory (``-config-dir``).
        local_config_filename: File inside ``config_dir`` that receives
            ``CONSUL_LOCAL_CONFIGURATION``.
    """

    binary: Path = Path("/opt/consul/bin/consul")
    data_dir: Path = Path("/opt/consul/data")
    config_dir: Path = Path("/opt/consul/config")
    local_config_filename: str = "local.json"

    @property
    def local_config_file(self) -> Path:
        """Full path of the local configuration file."""
        return self.config_dir / self.local_config_filename


@dataclass(frozen=True)
class EntrypointConfig:
    """Immutable snapshot of the agent-related environment.

    Optional values are ``None`` when the variable is absent.  An empty
    string is kept as-is: only absence means "not configured".
    """

    bind_interface: str | None = None
    client_interface: str | None = None
    client_address: str | None = None
    enable_ui: bool = False
    local_configuration: str | None = None
    ec2_auto_join_tag_key: str | None = None
    ec2_auto_join_tag_value: str | None = None
    server_addresses: str | None = None
    expected_servers: str | None = None
    allow_privileged_ports: bool = False
    disable_permission_management: bool = False

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> EntrypointConfig:
        """Build a config snapshot from an effective environment.

        Args:
            env: Read-only mapping of variable name to value.

        Returns:
            The resolved configuration.
        """
        return cls(
            bind_interface=env.get(ENV_BIND_INTERFACE),
            client_interface=env.get(ENV_CLIENT_INTERFACE),
            client_address=env.get(ENV_CLIENT_ADDRESS),
            enable_ui=is_truthy(env.get(ENV_ENABLE_UI)),
            local_configuration=env.get(ENV_LOCAL_CONFIGURATION),
            ec2_auto_join_tag_key=env.get(ENV_EC2_AUTO_JOIN_TAG_KEY),
            ec2_auto_join_tag_value=env.get(ENV_EC2_AUTO_JOIN_TAG_VALUE),
            server_addresses=env.get(ENV_SERVER_ADDRESSES),
            expected_servers=env.get(ENV_EXPECTED_SERVERS),
            allow_privileged_ports=is_truthy(
                env.get(ENV_ALLOW_PRIVILEGED_PORTS)
            ),
            disable_permission_management=is_truthy(
                env.get(ENV_DISABLE_PERM_MGMT)
            ),
        )
