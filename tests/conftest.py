# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Shared pytest fixtures."""

from collections.abc import Callable, Iterator
from pathlib import Path

import httpx
import pytest

from consul_aws.config import ConsulPaths
from consul_aws.logging import SecretFilter


@pytest.fixture(autouse=True)
def clear_secrets() -> Iterator[None]:
    """Keep registered secrets from leaking between tests."""
    SecretFilter.clear_secrets()
    yield
    SecretFilter.clear_secrets()


@pytest.fixture
def consul_paths(tmp_path: Path) -> ConsulPaths:
    """Create a fake Consul installation layout.

    Returns:
        Paths with existing data/config directories and an executable
        placeholder binary.
    """
    root = tmp_path / "opt" / "consul"
    (root / "bin").mkdir(parents=True)
    (root / "data").mkdir()
    (root / "config").mkdir()

    binary = root / "bin" / "consul"
    binary.write_text("#!/bin/sh\nexit 0\n")
    binary.chmod(0o755)

    return ConsulPaths(
        binary=binary,
        data_dir=root / "data",
        config_dir=root / "config",
    )


@pytest.fixture
def mock_client() -> Iterator[
    Callable[[Callable[[httpx.Request], httpx.Response]], httpx.Client]
]:
    """Factory for httpx clients backed by a request handler."""
    clients: list[httpx.Client] = []

    def make(
        handler: Callable[[httpx.Request], httpx.Response],
    ) -> httpx.Client:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield make

    for client in clients:
        client.close()
