"""Dispatches inbound MQTT commands to device actions."""

import logging
from functools import partial
from typing import Iterable, Union

from deboot.bridge.context import DeviceContext
from deboot.bridge.errors import CommandValidationFailure, MalformedPayload
from deboot.bridge.mqtt_client import MqttBroker
from deboot.bridge.routes import COMMAND_SPECS, CommandSpec, index_by_name

logger = logging.getLogger(__name__)


class CommandRouter:
    """Subscribes a device's command topics and runs the mapped actions.

    Topic structure: {root}/{device_id}/cmd/{command}

    The command name is the last topic segment, the payload is only read for
    commands that declare required fields. Two devices must therefore never
    share a root topic and device ID.
    """

    def __init__(
        self,
        broker: MqttBroker,
        specs: Iterable[CommandSpec] = COMMAND_SPECS,
    ):
        self._broker = broker
        self._specs = index_by_name(specs, "command")
        self._attached: set[str] = set()

    @property
    def command_names(self) -> list[str]:
        return list(self._specs.keys())

    async def attach(self, context: DeviceContext) -> list[str]:
        """Subscribe one topic per command, all delivered to a single handler.

        Returns:
            The topics that were subscribed. A topic whose subscription failed
            is logged and left out. A device is only ever attached once.
        """
        if context.device_id in self._attached:
            logger.warning(f"Commands already attached for {context.device_id}")
            return []
        self._attached.add(context.device_id)

        handler = partial(self._on_message, context)
        subscribed = []
        for name in self._specs:
            topic = context.topic("cmd", name)
            try:
                await self._broker.subscribe(topic, handler)
            except Exception as e:
                logger.error(f"Failed to subscribe to {topic} command topic! {e}")
                continue
            subscribed.append(topic)
            logger.info(f"Subscribed to {topic} command topic.")

        context.command_topics.extend(subscribed)
        return subscribed

    def _on_message(self, context: DeviceContext, topic: str, payload: bytes) -> None:
        context.schedule(self.handle_message(context, topic, payload))

    async def handle_message(
        self, context: DeviceContext, topic: str, payload: Union[bytes, str]
    ) -> None:
        """Validate and dispatch one inbound command. Never raises."""
        command = topic.rsplit("/", 1)[-1]
        logger.info(f"Received `{command}` command for {context.device_id}.")

        spec = self._specs.get(command)
        if spec is None:
            logger.warning(f"Ignoring unknown command `{command}` on {topic}")
            return

        try:
            args = spec.parse(payload)
        except MalformedPayload as e:
            logger.warning(f"{e}. Payload must be a JSON object.")
            return
        except CommandValidationFailure as e:
            logger.warning(f"{e}. Options supplied in invalid form!")
            return

        try:
            await context.device.run(spec.action, *args)
        except Exception as e:
            logger.error(f"Failed to run `{spec.action}` for `{command}` on {context.device_id}: {e}")
