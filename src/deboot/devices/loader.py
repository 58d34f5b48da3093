"""Load the vendor cloud session adapter named in the configuration."""

import importlib
import logging

from deboot.bridge.config import CloudConfig
from deboot.devices.base import CloudSession

logger = logging.getLogger(__name__)


def load_cloud_session(config: CloudConfig) -> CloudSession:
    """Build the cloud session from ``config.adapter`` (``"module:factory"``).

    The factory is called with the ``CloudConfig`` and must return a
    ``CloudSession``.

    Raises:
        ValueError: If no adapter is configured or the path is malformed
        ImportError: If the module cannot be imported
        TypeError: If the factory does not return a CloudSession
    """
    if not config.adapter:
        raise ValueError("No cloud adapter configured (ecovacs.adapter)")

    module_name, sep, attr = config.adapter.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Cloud adapter must look like 'module:factory', got {config.adapter!r}")

    module = importlib.import_module(module_name)
    try:
        factory = getattr(module, attr)
    except AttributeError:
        raise ImportError(f"{module_name} has no attribute {attr!r}") from None

    session = factory(config)
    if not isinstance(session, CloudSession):
        raise TypeError(f"{config.adapter} returned {type(session).__name__}, not a CloudSession")

    logger.info(f"Loaded cloud adapter {config.adapter}")
    return session
