"""Bridge between an MQTT broker and Ecovacs vacuums."""

import asyncio
import json
import logging
from typing import Optional

from deboot.bridge.command_router import CommandRouter
from deboot.bridge.config import BridgeConfig
from deboot.bridge.context import DeviceContext
from deboot.bridge.device_registry import DeviceRegistry
from deboot.bridge.errors import CloudConnectFailure, DeviceEnumerationMismatch
from deboot.bridge.event_router import EventRouter
from deboot.bridge.mqtt_client import MqttBroker
from deboot.bridge.routes import command_specs_for
from deboot.bridge.status import OFFLINE, ONLINE, StatusPublisher
from deboot.devices.base import BaseVacuum, CloudSession

logger = logging.getLogger(__name__)


class VacuumBridge:
    """Links every ready vacuum of a cloud session to the MQTT broker.

    Handles:
    - Publishing bridge liveness on {root}/bridge/status
    - Discovering vacuums and waiting for each to become ready
    - Publishing device info on {root}/{device_id}/info
    - Republishing device events and dispatching inbound commands

    The broker must already be connected; a broker that cannot connect is
    fatal and handled by the caller. Everything else is logged and the bridge
    keeps running with whatever devices it could link.
    """

    def __init__(self, cloud: CloudSession, broker: MqttBroker, config: BridgeConfig):
        self._cloud = cloud
        self._broker = broker
        self._config = config
        self._registry = DeviceRegistry(
            cloud,
            ready_timeout=config.ready_timeout,
            max_devices=config.max_devices,
        )
        self._status = StatusPublisher(broker, config.mqtt.status_topic)
        self._event_router = EventRouter(broker)
        self._command_router = CommandRouter(
            broker, command_specs_for(config.command_profile)
        )
        self._contexts: dict[str, DeviceContext] = {}
        self._running = False

    @property
    def registry(self) -> DeviceRegistry:
        return self._registry

    @property
    def status(self) -> StatusPublisher:
        return self._status

    @property
    def linked_devices(self) -> list[str]:
        return list(self._contexts.keys())

    @property
    def is_running(self) -> bool:
        return self._running

    def context(self, device_id: str) -> Optional[DeviceContext]:
        return self._contexts.get(device_id)

    async def link(self) -> None:
        """Start the bridge and link every vacuum that becomes ready.

        Raises:
            DeviceEnumerationMismatch: Only when ``enumeration_mismatch_fatal``
                is configured
        """
        self._running = True
        await self._status.publish(ONLINE)
        if self._config.heartbeat_interval:
            self._status.start_heartbeat(self._config.heartbeat_interval)

        try:
            await self._connect_cloud()
        except CloudConnectFailure as e:
            logger.error(f"{e}. Continuing without device functionality.")
            return

        # Each device is linked as soon as its own readiness gate resolves.
        links = []
        try:
            async for device in self._registry.iter_ready_devices():
                links.append(asyncio.create_task(self._link_device(device)))
        except DeviceEnumerationMismatch as e:
            if self._config.enumeration_mismatch_fatal:
                raise
            logger.error(f"{e}. Continuing without device functionality.")
            return
        except Exception as e:
            logger.error(f"Failed to establish a connection to the vacuums! {e}")
        finally:
            await asyncio.gather(*links)

        logger.info(f"Linked {len(self._contexts)} ready vacuum(s)")

    async def stop(self) -> None:
        """Detach from every device and mark the bridge offline."""
        self._running = False
        for context in self._contexts.values():
            context.dispose()
            for topic in context.command_topics:
                try:
                    await self._broker.unsubscribe(topic)
                except Exception as e:
                    logger.warning(f"Failed to unsubscribe from {topic}: {e}")
            await context.drain()
        await self._status.stop_heartbeat()
        await self._status.publish(OFFLINE)

    async def _connect_cloud(self) -> None:
        try:
            await self._cloud.connect()
        except Exception as e:
            raise CloudConnectFailure(f"Failed to connect to the Ecovacs systems: {e}") from e
        logger.info("Successfully connected to the Ecovacs systems.")

    async def _link_device(self, device: BaseVacuum) -> None:
        """Publish info and attach both routers. Failures stay with this device."""
        if device.device_id in self._contexts:
            logger.warning(f"Vacuum {device.device_id} is already linked")
            return

        context = DeviceContext(
            device=device,
            root_topic=self._broker.topic,
            loop=asyncio.get_running_loop(),
        )
        self._contexts[device.device_id] = context

        try:
            await self._publish_info(context)
            await self._command_router.attach(context)
            await self._event_router.attach(context)
        except Exception as e:
            logger.error(f"Failed to link vacuum {device.device_id}: {e}")
            return

        logger.info(f"The vacuum {device.device_id} (Nick: `{device.nickname}`) is linked.")

    async def _publish_info(self, context: DeviceContext) -> None:
        topic = context.topic("info")
        try:
            await self._broker.publish(topic, json.dumps(context.device.descriptor))
        except Exception as e:
            logger.error(f"Failed to publish device info to {topic}! {e}")
