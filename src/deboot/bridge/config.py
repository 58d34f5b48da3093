"""Configuration loader for the Deboot bridge."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from deboot.bridge.routes import COMMAND_PROFILES, DEFAULT_COMMAND_PROFILE

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.deboot/config.json"
DEFAULT_TOPIC = "ecovacs"
DEFAULT_MQTT_PORT = 1883
DEFAULT_READY_TIMEOUT_SEC = 30.0


@dataclass
class MqttConfig:
    """Broker connection configuration."""

    server: str
    port: int = DEFAULT_MQTT_PORT
    username: Optional[str] = None
    password: Optional[str] = None
    topic: str = DEFAULT_TOPIC
    client_id: str = "deboot-bridge"
    keep_alive_secs: int = 30
    operation_timeout: float = 10.0
    cert_path: Optional[Path] = None
    key_path: Optional[Path] = None
    root_ca_path: Optional[Path] = None

    @property
    def use_tls(self) -> bool:
        return self.cert_path is not None and self.key_path is not None

    @property
    def status_topic(self) -> str:
        return f"{self.topic}/bridge/status"


@dataclass
class CloudConfig:
    """Ecovacs account configuration."""

    username: str = ""
    password: str = ""
    country: str = "DE"
    adapter: Optional[str] = None


@dataclass
class BridgeConfig:
    """Complete bridge configuration."""

    mqtt: MqttConfig
    cloud: CloudConfig = field(default_factory=CloudConfig)
    ready_timeout: float = DEFAULT_READY_TIMEOUT_SEC
    command_profile: str = DEFAULT_COMMAND_PROFILE
    max_devices: Optional[int] = None
    enumeration_mismatch_fatal: bool = False
    heartbeat_interval: Optional[float] = None

    def validate(self) -> None:
        """Validate settings and that TLS files exist when TLS is configured."""
        if not self.mqtt.server:
            raise ValueError("mqtt.server is required")
        if self.command_profile not in COMMAND_PROFILES:
            raise ValueError(
                f"Unknown command profile {self.command_profile!r}, "
                f"expected one of {sorted(COMMAND_PROFILES)}"
            )
        if self.ready_timeout <= 0:
            raise ValueError(f"ready_timeout must be positive, got {self.ready_timeout}")
        if self.max_devices is not None and self.max_devices < 1:
            raise ValueError(f"max_devices must be at least 1, got {self.max_devices}")
        if self.heartbeat_interval is not None and self.heartbeat_interval <= 0:
            raise ValueError(
                f"heartbeat_interval must be positive, got {self.heartbeat_interval}"
            )
        if self.mqtt.use_tls:
            for path, name in [
                (self.mqtt.cert_path, "certificate"),
                (self.mqtt.key_path, "private key"),
                (self.mqtt.root_ca_path, "root CA"),
            ]:
                if path is not None and not path.exists():
                    raise FileNotFoundError(f"{name} not found at {path}")


def _optional_path(value: Optional[str]) -> Optional[Path]:
    return Path(value).expanduser() if value else None


def load_config(config_path: Optional[str] = None) -> BridgeConfig:
    """Load bridge configuration from file with environment variable overrides.

    Environment variables:
        DEBOOT_CONFIG_PATH: Override config file location
        MQTT_SERVER, MQTT_PORT, MQTT_USERNAME, MQTT_PASSWORD, MQTT_TOPIC:
            Override broker settings
        ECOVACS_USERNAME, ECOVACS_PASSWORD, ECOVACS_COUNTRY:
            Override cloud account settings

    Args:
        config_path: Path to config JSON file. Defaults to ~/.deboot/config.json

    Returns:
        BridgeConfig (not yet validated)
    """
    path_str = config_path or os.environ.get("DEBOOT_CONFIG_PATH", DEFAULT_CONFIG_PATH)
    config_file = Path(path_str).expanduser()

    if not config_file.exists():
        raise FileNotFoundError(
            f"Bridge config not found at {config_file}. "
            f"Copy config.example.json there and fill in your credentials."
        )

    with open(config_file) as f:
        data = json.load(f)

    mqtt_data = data.get("mqtt", {})
    cloud_data = data.get("ecovacs", {})
    bridge_data = data.get("bridge", {})

    mqtt = MqttConfig(
        server=os.environ.get("MQTT_SERVER", mqtt_data.get("server", "")),
        port=int(os.environ.get("MQTT_PORT", mqtt_data.get("port", DEFAULT_MQTT_PORT))),
        username=os.environ.get("MQTT_USERNAME", mqtt_data.get("username")) or None,
        password=os.environ.get("MQTT_PASSWORD", mqtt_data.get("password")) or None,
        topic=os.environ.get("MQTT_TOPIC", mqtt_data.get("topic", DEFAULT_TOPIC)).rstrip("/"),
        client_id=mqtt_data.get("client_id", "deboot-bridge"),
        keep_alive_secs=int(mqtt_data.get("keep_alive_secs", 30)),
        operation_timeout=float(mqtt_data.get("operation_timeout", 10.0)),
        cert_path=_optional_path(mqtt_data.get("cert_path")),
        key_path=_optional_path(mqtt_data.get("key_path")),
        root_ca_path=_optional_path(mqtt_data.get("root_ca_path")),
    )

    cloud = CloudConfig(
        username=os.environ.get("ECOVACS_USERNAME", cloud_data.get("username", "")),
        password=os.environ.get("ECOVACS_PASSWORD", cloud_data.get("password", "")),
        country=os.environ.get("ECOVACS_COUNTRY", cloud_data.get("country", "DE")),
        adapter=cloud_data.get("adapter"),
    )

    max_devices = bridge_data.get("max_devices")
    heartbeat = bridge_data.get("heartbeat_interval")

    config = BridgeConfig(
        mqtt=mqtt,
        cloud=cloud,
        ready_timeout=float(bridge_data.get("ready_timeout", DEFAULT_READY_TIMEOUT_SEC)),
        command_profile=bridge_data.get("command_profile", DEFAULT_COMMAND_PROFILE),
        max_devices=int(max_devices) if max_devices is not None else None,
        enumeration_mismatch_fatal=bool(bridge_data.get("enumeration_mismatch_fatal", False)),
        heartbeat_interval=float(heartbeat) if heartbeat is not None else None,
    )

    logger.info(
        f"Loaded bridge config: broker={mqtt.server}:{mqtt.port}, topic={mqtt.topic}, "
        f"profile={config.command_profile}"
    )
    return config
