"""Base interfaces for vacuums and the vendor cloud session."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

READY_EVENT = "ready"


class Subscription:
    """Disposable handle for a registered event handler."""

    def __init__(self, name: str, cancel: Callable[[], None]):
        self.name = name
        self._cancel: Optional[Callable[[], None]] = cancel

    @property
    def active(self) -> bool:
        return self._cancel is not None

    def dispose(self) -> None:
        """Remove the handler. Calling this more than once is a no-op."""
        if self._cancel is None:
            return
        cancel, self._cancel = self._cancel, None
        cancel()

    def __repr__(self) -> str:
        return f"Subscription({self.name!r}, active={self.active})"


class EventEmitter:
    """Minimal named-event emitter for device implementations."""

    def __init__(self):
        self._handlers: dict[str, list[Callable[..., None]]] = {}

    def on(self, event_name: str, handler: Callable[..., None]) -> Subscription:
        self._handlers.setdefault(event_name, []).append(handler)

        def cancel():
            handlers = self._handlers.get(event_name, [])
            if handler in handlers:
                handlers.remove(handler)

        return Subscription(event_name, cancel)

    def emit(self, event_name: str, *args: Any) -> None:
        """Call every handler registered for ``event_name``.

        A failing handler is logged and does not stop the others.
        """
        for handler in list(self._handlers.get(event_name, [])):
            try:
                handler(*args)
            except Exception as e:
                logger.error(f"Handler for `{event_name}` failed: {e}")

    def handler_count(self, event_name: str) -> int:
        return len(self._handlers.get(event_name, []))


class BaseVacuum(ABC):
    """Abstract base class for a vacuum handle owned by the cloud session.

    The bridge only holds a reference to it. Every vacuum emits named events
    (including ``ready``) and runs named actions.
    """

    @property
    @abstractmethod
    def device_id(self) -> str:
        """Return the vendor device identifier (``did``)."""
        pass

    @property
    @abstractmethod
    def nickname(self) -> str:
        """Return the display name of the device."""
        pass

    @property
    @abstractmethod
    def descriptor(self) -> dict[str, Any]:
        """Return the device descriptor published on the ``info`` topic."""
        pass

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        """Return True once the device has signalled readiness."""
        pass

    @abstractmethod
    def on(self, event_name: str, handler: Callable[..., None]) -> Subscription:
        """Register ``handler`` for ``event_name``.

        Handlers may be called from a thread other than the event loop's.
        """
        pass

    @abstractmethod
    async def run(self, action: str, *args: Any) -> None:
        """Run a named action on the device (e.g. ``clean``, ``SpotArea``)."""
        pass


class CloudSession(ABC):
    """Vendor cloud session: authentication and device enumeration."""

    @abstractmethod
    async def connect(self) -> None:
        """Authenticate against the vendor cloud."""
        pass

    @abstractmethod
    async def enumerate_devices(self) -> list[BaseVacuum]:
        """Return a handle for every device on the account."""
        pass
