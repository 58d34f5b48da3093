"""Per-device state shared by the event and command routers."""

import asyncio
import logging
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Coroutine, Optional

from deboot.devices.base import BaseVacuum, Subscription

logger = logging.getLogger(__name__)


@dataclass
class DeviceContext:
    """Everything the bridge owns for one ready device.

    Attributes:
        device: Ready device handle (owned by the cloud session)
        root_topic: Configured MQTT root topic
        loop: Event loop that handles this device's callbacks
        subscriptions: Device event subscriptions made by the event router
        command_topics: Broker topics subscribed by the command router
    """

    device: BaseVacuum
    root_topic: str
    loop: asyncio.AbstractEventLoop
    subscriptions: list[Subscription] = field(default_factory=list)
    command_topics: list[str] = field(default_factory=list)
    _pending: set[Future] = field(default_factory=set, repr=False)

    @property
    def device_id(self) -> str:
        return self.device.device_id

    @property
    def base_topic(self) -> str:
        return f"{self.root_topic}/{self.device.device_id}"

    def topic(self, *parts: str) -> str:
        """Build ``<root>/<device_id>/<parts...>``."""
        return "/".join((self.base_topic, *parts))

    def schedule(self, coro: Coroutine) -> Optional[Future]:
        """Schedule a coroutine on the device's loop from any thread.

        Device SDK and broker callbacks run outside the event loop, so
        ``asyncio.create_task`` can't be used directly.
        """
        if self.loop.is_closed():
            logger.warning(f"Dropping work for {self.device_id}: event loop is closed")
            coro.close()
            return None
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        self._pending.add(future)
        future.add_done_callback(self._pending.discard)
        return future

    async def drain(self) -> None:
        """Wait for every scheduled coroutine, including ones they schedule."""
        while self._pending:
            await asyncio.gather(
                *(asyncio.wrap_future(f) for f in list(self._pending)),
                return_exceptions=True,
            )

    def dispose(self) -> None:
        """Dispose all device event subscriptions."""
        for subscription in self.subscriptions:
            subscription.dispose()
        self.subscriptions.clear()
