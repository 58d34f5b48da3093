"""MQTT broker client built on the AWS CRT MQTT connection."""

import asyncio
import logging
from typing import Callable, Optional, Union

from awscrt import io, mqtt
from awsiot import mqtt_connection_builder

from deboot.bridge.config import MqttConfig
from deboot.bridge.errors import BrokerConnectFailure, PublishFailure

logger = logging.getLogger(__name__)

MessageHandler = Callable[[str, bytes], None]


class MqttBroker:
    """Thin async wrapper around an ``awscrt.mqtt.Connection``.

    The CRT runs its own I/O threads and hands back ``concurrent.futures``
    futures, which are awaited here with ``asyncio.wrap_future`` so the event
    loop stays free while an operation is in flight. Message callbacks arrive
    on a CRT thread; handlers must be thread-safe.
    """

    def __init__(self, config: MqttConfig):
        self._config = config
        self._connection: Optional[mqtt.Connection] = None

    @property
    def topic(self) -> str:
        """Root topic every bridge topic lives under."""
        return self._config.topic

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    async def connect(self) -> None:
        """Connect to the broker.

        Raises:
            BrokerConnectFailure: If the connection cannot be established
        """
        try:
            self._connection = self._create_connection()
            connect_future = self._connection.connect()
            await asyncio.wait_for(
                asyncio.wrap_future(connect_future), self._config.operation_timeout
            )
        except Exception as e:
            self._connection = None
            raise BrokerConnectFailure(
                f"Failed to connect to the MQTT server {self._config.server}:{self._config.port}: {e}"
            ) from e

        logger.info(
            f"Successfully connected to the MQTT server {self._config.server}:{self._config.port}"
        )

    async def disconnect(self) -> None:
        """Disconnect from the broker. Errors are logged, not raised."""
        if not self._connection:
            return
        try:
            await asyncio.wait_for(
                asyncio.wrap_future(self._connection.disconnect()),
                self._config.operation_timeout,
            )
            logger.info("Disconnected from the MQTT server")
        except Exception as e:
            logger.warning(f"Error during disconnect: {e}")
        finally:
            self._connection = None

    async def publish(
        self, topic: str, payload: Union[str, bytes], retain: bool = False
    ) -> None:
        """Publish ``payload`` at ``topic``.

        Raises:
            PublishFailure: If not connected or the broker rejects the message
        """
        if not self._connection:
            raise PublishFailure(topic, ConnectionError("not connected"))

        if isinstance(payload, str):
            payload = payload.encode("utf-8")

        try:
            publish_future, _ = self._connection.publish(
                topic=topic,
                payload=payload,
                qos=mqtt.QoS.AT_LEAST_ONCE,
                retain=retain,
            )
            await asyncio.wrap_future(publish_future)
        except Exception as e:
            raise PublishFailure(topic, e) from e

        logger.debug(f"Published to {topic}")

    async def subscribe(self, topic: str, handler: MessageHandler) -> None:
        """Subscribe to ``topic`` and deliver each message to ``handler(topic, payload)``."""
        if not self._connection:
            raise ConnectionError(f"Cannot subscribe to {topic}: not connected")

        def on_message(topic: str, payload: bytes, **kwargs):  # noqa: ARG001
            handler(topic, payload)

        subscribe_future, _ = self._connection.subscribe(
            topic=topic,
            qos=mqtt.QoS.AT_LEAST_ONCE,
            callback=on_message,
        )
        await asyncio.wait_for(
            asyncio.wrap_future(subscribe_future), self._config.operation_timeout
        )
        logger.debug(f"Subscribed to {topic}")

    async def unsubscribe(self, topic: str) -> None:
        if not self._connection:
            return
        unsubscribe_future, _ = self._connection.unsubscribe(topic)
        await asyncio.wait_for(
            asyncio.wrap_future(unsubscribe_future), self._config.operation_timeout
        )
        logger.debug(f"Unsubscribed from {topic}")

    def _create_connection(self) -> mqtt.Connection:
        """Create the MQTT connection, with mutual TLS when certificates are configured."""
        will = mqtt.Will(
            topic=self._config.status_topic,
            qos=mqtt.QoS.AT_LEAST_ONCE,
            payload=b"offline",
            retain=False,
        )

        if self._config.use_tls:
            return mqtt_connection_builder.mtls_from_path(
                endpoint=self._config.server,
                port=self._config.port,
                cert_filepath=str(self._config.cert_path),
                pri_key_filepath=str(self._config.key_path),
                ca_filepath=str(self._config.root_ca_path) if self._config.root_ca_path else None,
                client_id=self._config.client_id,
                clean_session=True,
                keep_alive_secs=self._config.keep_alive_secs,
                username=self._config.username,
                password=self._config.password,
                will=will,
                on_connection_interrupted=self._on_connection_interrupted,
                on_connection_resumed=self._on_connection_resumed,
            )

        event_loop_group = io.EventLoopGroup(1)
        host_resolver = io.DefaultHostResolver(event_loop_group)
        bootstrap = io.ClientBootstrap(event_loop_group, host_resolver)
        client = mqtt.Client(bootstrap)
        return mqtt.Connection(
            client=client,
            host_name=self._config.server,
            port=self._config.port,
            client_id=self._config.client_id,
            clean_session=True,
            keep_alive_secs=self._config.keep_alive_secs,
            username=self._config.username,
            password=self._config.password,
            will=will,
            on_connection_interrupted=self._on_connection_interrupted,
            on_connection_resumed=self._on_connection_resumed,
        )

    def _on_connection_interrupted(self, connection, error, **kwargs):  # noqa: ARG002
        logger.warning(f"Connection to the MQTT server interrupted: {error}")

    def _on_connection_resumed(self, connection, return_code, session_present, **kwargs):  # noqa: ARG002
        logger.info(f"Connection to the MQTT server resumed (session_present={session_present})")
