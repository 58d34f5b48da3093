"""Device registry: discovers vacuums and keeps the ones that became ready."""

import asyncio
import logging
from typing import AsyncIterator, Optional

from deboot.bridge.config import DEFAULT_READY_TIMEOUT_SEC
from deboot.bridge.errors import DeviceEnumerationMismatch, ReadinessTimeout
from deboot.bridge.readiness import await_ready
from deboot.devices.base import BaseVacuum, CloudSession

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Registry of ready devices by ID.

    ``discover_ready_devices`` and ``iter_ready_devices`` enumerate the cloud
    session once and run the readiness gate for every device concurrently.
    Devices that time out are logged and left out.

    Args:
        cloud: Connected cloud session
        ready_timeout: Seconds each device gets to signal readiness
        max_devices: Maximum number of devices the bridge accepts. ``1`` is the
            single-device profile. ``None`` accepts any number.
    """

    def __init__(
        self,
        cloud: CloudSession,
        ready_timeout: float = DEFAULT_READY_TIMEOUT_SEC,
        max_devices: Optional[int] = None,
    ):
        self._cloud = cloud
        self._ready_timeout = ready_timeout
        self._max_devices = max_devices
        self._devices: dict[str, BaseVacuum] = {}

    async def discover_ready_devices(self) -> list[BaseVacuum]:
        """Enumerate devices and return those that became ready.

        Waits for every readiness gate. Use ``iter_ready_devices`` to act on
        each device as soon as it is ready.

        Raises:
            DeviceEnumerationMismatch: If more devices were found than
                ``max_devices`` allows. No readiness wait is started then.
        """
        devices = await self._enumerate()
        results = await asyncio.gather(*(self._gate(device) for device in devices))
        return [device for device in results if device is not None]

    async def iter_ready_devices(self) -> AsyncIterator[BaseVacuum]:
        """Enumerate devices and yield each one the moment it becomes ready.

        The readiness gates run concurrently, so a slow or silent device never
        holds back one that is already ready.

        Raises:
            DeviceEnumerationMismatch: If more devices were found than
                ``max_devices`` allows. Raised before anything is yielded.
        """
        devices = await self._enumerate()
        for gate in asyncio.as_completed([self._gate(device) for device in devices]):
            device = await gate
            if device is not None:
                yield device

    async def _enumerate(self) -> list[BaseVacuum]:
        devices = await self._cloud.enumerate_devices()
        logger.info(f"Received {len(devices)} Ecovacs device(s)")

        if self._max_devices is not None and len(devices) > self._max_devices:
            raise DeviceEnumerationMismatch(len(devices), self._max_devices)
        if not devices:
            logger.warning("No Ecovacs devices found on this account")
        return devices

    async def _gate(self, device: BaseVacuum) -> Optional[BaseVacuum]:
        """Run the readiness gate for one device. Returns None if it is left out."""
        try:
            await await_ready(device, self._ready_timeout)
        except ReadinessTimeout as e:
            logger.warning(f"Vacuum {device.device_id} (Nick: `{device.nickname}`) {e}")
            return None
        except Exception as e:
            logger.error(
                f"Vacuum {device.device_id} (Nick: `{device.nickname}`) failed readiness: {e}"
            )
            return None

        try:
            self.register(device.device_id, device)
        except ValueError as e:
            logger.warning(f"Skipping vacuum {device.device_id}: {e}")
            return None
        logger.info(f"Vacuum {device.device_id} (Nick: `{device.nickname}`) is ready")
        return device

    def register(self, device_id: str, device: BaseVacuum) -> None:
        """Register a ready device with the given ID.

        Args:
            device_id: Unique identifier for the device
            device: Ready vacuum handle

        Raises:
            ValueError: If a device with the same ID is already registered
        """
        if device_id in self._devices:
            raise ValueError(f"Device already registered: {device_id}")
        self._devices[device_id] = device

    def get(self, device_id: str) -> Optional[BaseVacuum]:
        """Get a ready device by ID.

        Args:
            device_id: ID of device to retrieve

        Returns:
            Device instance or None if not found
        """
        return self._devices.get(device_id)

    def get_all(self) -> dict[str, BaseVacuum]:
        """Get all ready devices.

        Returns:
            Copy of the dictionary mapping device IDs to device instances
        """
        return dict(self._devices)

    def list_device_ids(self) -> list[str]:
        """List all ready device IDs.

        Returns:
            List of device IDs
        """
        return list(self._devices.keys())

    def __len__(self) -> int:
        """Return the number of ready devices."""
        return len(self._devices)

    def __contains__(self, device_id: str) -> bool:
        """Check if a device ID is registered."""
        return device_id in self._devices
