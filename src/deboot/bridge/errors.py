"""Errors raised by the bridge layer."""

from typing import Optional


class BridgeError(Exception):
    """Base class for all bridge errors."""


class BrokerConnectFailure(BridgeError):
    """The MQTT broker could not be reached. Fatal to the process."""


class CloudConnectFailure(BridgeError):
    """Login to the vendor cloud failed. The bridge keeps running without devices."""


class ReadinessTimeout(BridgeError):
    """A device did not signal readiness in time."""

    def __init__(self, device_id: str, timeout: float):
        super().__init__(f"Device {device_id} did not become ready within {timeout:g} seconds")
        self.device_id = device_id
        self.timeout = timeout


class DeviceEnumerationMismatch(BridgeError):
    """The cloud returned more devices than the bridge is configured to handle."""

    def __init__(self, found: int, limit: int):
        super().__init__(
            f"Received {found} Ecovacs device(s). Can only deal with {limit} device(s)"
        )
        self.found = found
        self.limit = limit


class PublishFailure(BridgeError):
    """A publication to the broker failed."""

    def __init__(self, topic: str, cause: Optional[BaseException] = None):
        message = f"Failed to publish to {topic}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.topic = topic


class CommandValidationFailure(BridgeError):
    """A command payload is missing a required field."""

    def __init__(self, command_name: str, reason: str):
        super().__init__(f"Invalid `{command_name}` command: {reason}")
        self.command_name = command_name
        self.reason = reason


class MalformedPayload(CommandValidationFailure):
    """A command payload could not be parsed as a JSON object."""
