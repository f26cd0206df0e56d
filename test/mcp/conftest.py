"""
Fixtures for tool server tests.
"""

import os
import sys

import pytest

from reagent.core.model import ServerConfig
from reagent.mcp.client import ToolProtocolClient

FAKE_SERVER = os.path.join(os.path.dirname(os.path.abspath(__file__)), "fake_server.py")


def fake_server_config(mode="ok", env=None, timeout=10):
    """Launch configuration of the fake tool server."""
    return ServerConfig(command=sys.executable, args=[FAKE_SERVER, mode], env=env or {}, timeout_seconds=timeout)


@pytest.fixture
def make_server_config():
    """Factory of fake server configurations, by mode."""
    return fake_server_config


@pytest.fixture
def server_config():
    return fake_server_config()


@pytest.fixture
def noisy_server_config():
    return fake_server_config("noisy")


@pytest.fixture
def missing_server_config():
    """A command that cannot be spawned."""
    return ServerConfig(command="/nonexistent/reagent-mathsrv", args=[])


@pytest.fixture
def client(server_config):
    """A connected client, disconnected after the test."""
    client = ToolProtocolClient(server_config, name="fake")
    client.connect()
    yield client
    client.disconnect()


@pytest.fixture
def sample_function():
    def add(a: int, b: int = 0) -> int:
        """Add two integers.

        Args:
            a (int): First operand.
            b (int, optional): Second operand. Defaults to 0.

        Returns:
            int: The sum.
        """
        return a + b

    return add
