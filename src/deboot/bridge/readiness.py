"""Bounded wait for a device's readiness handshake."""

import asyncio
import logging
from typing import Any

from deboot.bridge.config import DEFAULT_READY_TIMEOUT_SEC
from deboot.bridge.errors import ReadinessTimeout
from deboot.devices.base import READY_EVENT, BaseVacuum

logger = logging.getLogger(__name__)


async def await_ready(
    device: BaseVacuum, timeout: float = DEFAULT_READY_TIMEOUT_SEC
) -> BaseVacuum:
    """Wait until ``device`` emits ``ready`` or ``timeout`` seconds elapse.

    The ready signal and the timer race once. The future below is the single
    result slot: only the first completion lands in it and a ready signal
    arriving after the timeout is dropped. No retry happens here.

    Args:
        device: Device handle from the cloud session
        timeout: Seconds to wait for the ready signal

    Returns:
        The same device handle, now ready

    Raises:
        ReadinessTimeout: If the timer elapsed first
    """
    if device.is_ready:
        return device

    loop = asyncio.get_running_loop()
    ready: asyncio.Future = loop.create_future()

    def resolve() -> None:
        if not ready.done():
            ready.set_result(device)

    def on_ready(*args: Any) -> None:
        # Vendor SDKs may signal from their own thread.
        loop.call_soon_threadsafe(resolve)

    subscription = device.on(READY_EVENT, on_ready)
    try:
        return await asyncio.wait_for(ready, timeout)
    except asyncio.TimeoutError:
        raise ReadinessTimeout(device.device_id, timeout) from None
    finally:
        subscription.dispose()
