"""MQTT bridge for Ecovacs vacuums."""

from deboot.bridge.command_router import CommandRouter
from deboot.bridge.config import BridgeConfig, CloudConfig, MqttConfig, load_config
from deboot.bridge.device_registry import DeviceRegistry
from deboot.bridge.event_router import EventRouter
from deboot.bridge.mqtt_client import MqttBroker
from deboot.bridge.readiness import await_ready
from deboot.bridge.status import StatusPublisher
from deboot.bridge.vacuum_bridge import VacuumBridge

__all__ = [
    "BridgeConfig",
    "CloudConfig",
    "CommandRouter",
    "DeviceRegistry",
    "EventRouter",
    "MqttBroker",
    "MqttConfig",
    "StatusPublisher",
    "VacuumBridge",
    "await_ready",
    "load_config",
]
