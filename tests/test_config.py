# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for consul_aws/config.py."""

from pathlib import Path

import pytest

from consul_aws.config import ConsulPaths, EntrypointConfig, is_truthy


class TestIsTruthy:
    """Tests for the boolean switch rule."""

    def test_yes_is_truthy(self) -> None:
        """Only the exact string 'yes' enables a switch."""
        assert is_truthy("yes") is True

    @pytest.mark.parametrize(
        "value", ["no", "", "Yes", "YES", "true", "1", "on", " yes", None]
    )
    def test_everything_else_is_falsy(self, value: str | None) -> None:
        """Any other value, including absence, disables a switch."""
        assert is_truthy(value) is False


class TestConsulPaths:
    """Tests for ConsulPaths defaults."""

    def test_defaults(self) -> None:
        """Default locations match the image layout."""
        paths = ConsulPaths()
        assert paths.binary == Path("/opt/consul/bin/consul")
        assert paths.data_dir == Path("/opt/consul/data")
        assert paths.config_dir == Path("/opt/consul/config")
        assert paths.local_config_file == Path(
            "/opt/consul/config/local.json"
        )


class TestEntrypointConfigFromEnv:
    """Tests for EntrypointConfig.from_env."""

    def test_empty_environment(self) -> None:
        """Nothing configured gives all defaults."""
        assert EntrypointConfig.from_env({}) == EntrypointConfig()

    def test_reads_all_variables(self) -> None:
        """Every recognised variable is captured."""
        config = EntrypointConfig.from_env(
            {
                "CONSUL_BIND_INTERFACE": "eth0",
                "CONSUL_CLIENT_INTERFACE": "eth1",
                "CONSUL_CLIENT_ADDRESS": "0.0.0.0",
                "CONSUL_ENABLE_UI": "yes",
                "CONSUL_LOCAL_CONFIGURATION": '{"datacenter": "london"}',
                "CONSUL_EC2_AUTO_JOIN_TAG_KEY": "component",
                "CONSUL_EC2_AUTO_JOIN_TAG_VALUE": "consul-cluster",
                "CONSUL_SERVER_ADDRESSES": "a,b",
                "CONSUL_EXPECTED_SERVERS": "3",
                "CONSUL_ALLOW_PRIVILEGED_PORTS": "yes",
                "CONSUL_DISABLE_PERM_MGMT": "yes",
            }
        )
        assert config == EntrypointConfig(
            bind_interface="eth0",
            client_interface="eth1",
            client_address="0.0.0.0",
            enable_ui=True,
            local_configuration='{"datacenter": "london"}',
            ec2_auto_join_tag_key="component",
            ec2_auto_join_tag_value="consul-cluster",
            server_addresses="a,b",
            expected_servers="3",
            allow_privileged_ports=True,
            disable_permission_management=True,
        )

    def test_switches_use_exact_yes(self) -> None:
        """Switches set to 'true' stay disabled."""
        config = EntrypointConfig.from_env(
            {
                "CONSUL_ENABLE_UI": "true",
                "CONSUL_ALLOW_PRIVILEGED_PORTS": "1",
                "CONSUL_DISABLE_PERM_MGMT": "Yes",
            }
        )
        assert config.enable_ui is False
        assert config.allow_privileged_ports is False
        assert config.disable_permission_management is False

    def test_empty_string_is_kept(self) -> None:
        """An empty value is distinct from an absent one."""
        config = EntrypointConfig.from_env({"CONSUL_CLIENT_ADDRESS": ""})
        assert config.client_address == ""
        assert config.bind_interface is None

    def test_is_immutable(self) -> None:
        """The snapshot cannot be modified."""
        config = EntrypointConfig.from_env({})
        with pytest.raises(AttributeError):
            config.enable_ui = True  # type: ignore[misc]
