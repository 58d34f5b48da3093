"""Simulated Deebot vacuum and cloud session for development and testing."""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Optional

from deboot.devices.base import (
    READY_EVENT,
    BaseVacuum,
    CloudSession,
    EventEmitter,
    Subscription,
)

logger = logging.getLogger(__name__)


class MockVacuum(BaseVacuum):
    """Mock implementation of a Deebot vacuum.

    Every action is recorded in ``actions``. The trigger actions used by the
    bridge answer with the event the real vacuum would emit, so a mock run
    publishes the same topics a real one does.
    """

    def __init__(
        self,
        device_id: str,
        nickname: str = "Deebot",
        descriptor: Optional[dict[str, Any]] = None,
    ):
        self._device_id = device_id
        self._nickname = nickname
        self._descriptor = descriptor or {
            "did": device_id,
            "nick": nickname,
            "class": "mock",
            "company": "eco-ng",
        }
        self._emitter = EventEmitter()
        self._ready = False
        self.actions: list[tuple[Any, ...]] = []
        self.state: dict[str, Any] = {
            "charge": "charging",
            "battery": 100,
            "clean": "idle",
            "position": "0,0",
        }
        self.clean_logs: list[dict[str, Any]] = [
            {
                "id": "1",
                "timestamp": int(datetime(2024, 1, 1).timestamp()),
                "squareMeters": 42,
                "totalTime": 1800,
                "type": "auto",
            },
        ]
        self.map_areas: list[dict[str, Any]] = [
            {"mapID": "0", "mapSpotAreaID": "0", "mapSpotAreaName": "Kitchen"},
            {"mapID": "0", "mapSpotAreaID": "1", "mapSpotAreaName": "Living room"},
        ]
        self._handlers: dict[str, Callable[..., None]] = {
            "clean": self._clean,
            "SpotArea": self._spot_area,
            "customarea": self._custom_area,
            "charge": self._charge,
            "pause": self._pause,
            "stop": self._stop,
            "chargestate": lambda: self.emit("ChargeState", self.state["charge"]),
            "batterystate": lambda: self.emit("BatteryInfo", self.state["battery"]),
            "cleanstate": lambda: self.emit("CleanReport", self.state["clean"]),
            "getposition": lambda: self.emit("DeebotPosition", self.state["position"]),
            "getlogapicleanlogs": lambda: self.emit("CleanLog", list(self.clean_logs)),
            "getMapSet": self._map_set,
        }

    @property
    def device_id(self) -> str:
        return self._device_id

    @property
    def nickname(self) -> str:
        return self._nickname

    @property
    def descriptor(self) -> dict[str, Any]:
        return dict(self._descriptor)

    @property
    def is_ready(self) -> bool:
        return self._ready

    def on(self, event_name: str, handler: Callable[..., None]) -> Subscription:
        return self._emitter.on(event_name, handler)

    def emit(self, event_name: str, *args: Any) -> None:
        self._emitter.emit(event_name, *args)

    def handler_count(self, event_name: str) -> int:
        return self._emitter.handler_count(event_name)

    def signal_ready(self) -> None:
        """Flip to ready and emit the ``ready`` event. Only the first call counts."""
        if self._ready:
            return
        self._ready = True
        logger.info(f"Vacuum {self._device_id} is ready (mock)")
        self.emit(READY_EVENT, self._device_id)

    async def run(self, action: str, *args: Any) -> None:
        logger.info(f"Running `{action}` {list(args)} on {self._device_id} (mock)")
        self.actions.append((action, *args))
        handler = self._handlers.get(action)
        if handler is None:
            raise ValueError(f"Unknown action: {action}")
        handler(*args)

    def _clean(self) -> None:
        self.state["clean"] = "auto"
        self.state["charge"] = "idle"
        self.emit("CleanReport", self.state["clean"])

    def _spot_area(self, mode: str, area_id: str) -> None:
        self.state["clean"] = "spot_area" if mode == "start" else "stop"
        self.emit("CleanReport", self.state["clean"])

    def _custom_area(self, mode: str, area: str, runs: Any) -> None:
        self.state["clean"] = "custom_area" if mode == "start" else "stop"
        self.emit("CleanReport", self.state["clean"])

    def _charge(self) -> None:
        self.state["clean"] = "returning"
        self.state["charge"] = "returning"
        self.emit("ChargeState", self.state["charge"])

    def _pause(self) -> None:
        self.state["clean"] = "pause"
        self.emit("CleanReport", self.state["clean"])

    def _stop(self) -> None:
        self.state["clean"] = "stop"
        self.emit("CleanReport", self.state["clean"])

    def _map_set(self) -> None:
        for area in self.map_areas:
            self.emit("MapSpotAreaInfo", dict(area))


class MockCloudSession(CloudSession):
    """Mock cloud session handing out a fixed list of vacuums.

    Args:
        devices: Vacuums returned by ``enumerate_devices``
        ready_delay: Seconds after enumeration at which every vacuum signals
            readiness. ``None`` means the vacuums never become ready.
        fail_connect: Make ``connect`` raise, to simulate bad credentials
    """

    def __init__(
        self,
        devices: list[MockVacuum],
        ready_delay: Optional[float] = 0.0,
        fail_connect: bool = False,
    ):
        self.devices = list(devices)
        self.ready_delay = ready_delay
        self.fail_connect = fail_connect
        self.connected = False
        self.enumerations = 0

    async def connect(self) -> None:
        if self.fail_connect:
            raise ConnectionError("Simulated cloud login failure")
        self.connected = True
        logger.info("Connected to the Ecovacs cloud (mock)")

    async def enumerate_devices(self) -> list[BaseVacuum]:
        self.enumerations += 1
        if self.ready_delay is not None:
            loop = asyncio.get_running_loop()
            for device in self.devices:
                loop.call_later(self.ready_delay, device.signal_ready)
        return list(self.devices)
