"""Shared fixtures for bridge tests."""

import sys
from pathlib import Path

import pytest

from deboot.bridge.config import BridgeConfig, MqttConfig
from deboot.devices import MockVacuum

sys.path.insert(0, str(Path(__file__).parent))
from mocks.mock_broker import MockBroker  # noqa: E402


@pytest.fixture
def broker():
    """Return an in-memory broker rooted at ``ecovacs``."""
    return MockBroker(topic="ecovacs")


@pytest.fixture
def vacuum():
    """Return a mock vacuum that is not ready yet."""
    return MockVacuum("E1", "Mock Deebot")


@pytest.fixture
def bridge_config():
    """Return a bridge config pointing at a local broker."""
    return BridgeConfig(mqtt=MqttConfig(server="localhost", topic="ecovacs"))
