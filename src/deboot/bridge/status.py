"""Bridge liveness publication."""

import asyncio
import logging
from typing import Optional

from deboot.bridge.mqtt_client import MqttBroker

logger = logging.getLogger(__name__)

ONLINE = "online"
OFFLINE = "offline"


class StatusPublisher:
    """Publishes the bridge status on ``<root>/bridge/status``.

    ``publish`` is fire-and-forget: failures are logged and never raised. A
    heartbeat re-publishing the last status is available but off unless an
    interval is configured.
    """

    def __init__(self, broker: MqttBroker, topic: str):
        self._broker = broker
        self._topic = topic
        self._status: Optional[str] = None
        self._heartbeat: Optional[asyncio.Task] = None

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def status(self) -> Optional[str]:
        return self._status

    async def publish(self, status: str) -> bool:
        """Publish ``status``. Returns False if the broker rejected it."""
        self._status = status
        try:
            await self._broker.publish(self._topic, status)
        except Exception as e:
            logger.error(f"Failed to write `{status}` to {self._topic}! {e}")
            return False
        logger.info(f"Bridge status: {status}")
        return True

    def start_heartbeat(self, interval: float) -> None:
        if self._heartbeat is not None and not self._heartbeat.done():
            return
        self._heartbeat = asyncio.create_task(self._beat(interval))

    async def stop_heartbeat(self) -> None:
        if self._heartbeat is None:
            return
        self._heartbeat.cancel()
        try:
            await self._heartbeat
        except asyncio.CancelledError:
            pass
        self._heartbeat = None

    async def _beat(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            if self._status is not None:
                await self.publish(self._status)
