"""Publishes device events on their MQTT topics."""

import logging
from typing import Any, Iterable

from deboot.bridge.context import DeviceContext
from deboot.bridge.mqtt_client import MqttBroker
from deboot.bridge.routes import EVENT_MAPPINGS, EventMapping, format_result, index_by_name
from deboot.devices.base import Subscription

logger = logging.getLogger(__name__)


class EventRouter:
    """Subscribes every ready device to the event table and republishes results.

    Topics:
    - Plain events: {root}/{device_id}/{mapping.topic}
    - Fan-out events: {root}/{device_id}/{mapping.topic}/{sub_key}

    A failed publication is logged and leaves every handler in place.
    """

    def __init__(
        self,
        broker: MqttBroker,
        mappings: Iterable[EventMapping] = EVENT_MAPPINGS,
    ):
        self._broker = broker
        self._mappings = index_by_name(mappings, "event mapping")
        self._attached: set[str] = set()

    @property
    def mappings(self) -> tuple[EventMapping, ...]:
        return tuple(self._mappings.values())

    async def attach(self, context: DeviceContext) -> list[Subscription]:
        """Subscribe the device to every mapped event, then trigger each one once.

        The trigger pass forces an initial snapshot publication; it is not a poll.
        A device is only ever attached once.
        """
        if context.device_id in self._attached:
            logger.warning(f"Events already attached for {context.device_id}")
            return []
        self._attached.add(context.device_id)

        subscriptions = []
        for mapping in self._mappings.values():
            subscription = context.device.on(
                mapping.name, self._make_handler(context, mapping)
            )
            subscriptions.append(subscription)
            logger.info(f"Subscribed to `{mapping.name}` event for {context.device_id}.")
        context.subscriptions.extend(subscriptions)

        await self.trigger_all(context)
        return subscriptions

    async def trigger_all(self, context: DeviceContext) -> None:
        """Run every mapped trigger action once."""
        for mapping in self._mappings.values():
            try:
                await context.device.run(mapping.trigger)
                logger.info(f"Executed `{mapping.trigger}` event trigger.")
            except Exception as e:
                logger.error(f"Failed to execute `{mapping.trigger}` on {context.device_id}: {e}")

    def _make_handler(self, context: DeviceContext, mapping: EventMapping):
        def on_event(result: Any = None, *args: Any) -> None:
            context.schedule(self.handle_event(context, mapping, result))

        return on_event

    async def handle_event(
        self, context: DeviceContext, mapping: EventMapping, result: Any
    ) -> None:
        """Publish one event result. Never raises."""
        topic = context.topic(mapping.topic)

        if mapping.transform is None:
            await self._publish(topic, format_result(result), mapping.name)
            return

        # Items are published as they are produced, so everything before a
        # failing item still goes out.
        try:
            for sub_key, payload in mapping.transform(result):
                await self._publish(f"{topic}/{sub_key}", payload, mapping.name)
        except Exception as e:
            logger.error(f"Failed to transform `{mapping.name}` result for {topic}: {e}")

    async def _publish(self, topic: str, payload: str, event_name: str) -> None:
        try:
            await self._broker.publish(topic, payload)
            logger.debug(f"Republished `{event_name}` under {topic}")
        except Exception as e:
            logger.error(f"Failed to republish `{event_name}` under {topic}! {e}")
