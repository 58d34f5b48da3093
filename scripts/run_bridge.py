"""Entry point to start the Deboot bridge.

Usage:
    uv run python scripts/run_bridge.py           # Use the cloud adapter set in ecovacs.adapter
    uv run python scripts/run_bridge.py --mock    # Simulated vacuum, no Ecovacs account

The bridge publishes on:
    {topic}/bridge/status
    {topic}/{device_id}/info, chargestate, batterystate, cleanstate, position
    {topic}/{device_id}/cleanlogs/{log_id}
    {topic}/{device_id}/mapareas/{area_id}

And waits for commands on:
    {topic}/{device_id}/cmd/{clean,cleanarea,cleancustomarea,charge,pause,stop}
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

from deboot.bridge.config import BridgeConfig, load_config
from deboot.bridge.errors import BrokerConnectFailure, DeviceEnumerationMismatch
from deboot.bridge.mqtt_client import MqttBroker
from deboot.bridge.vacuum_bridge import VacuumBridge
from deboot.devices.base import CloudSession
from deboot.devices.loader import load_cloud_session
from deboot.devices.mock_vacuum import MockCloudSession, MockVacuum

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEBOOT_DIR = Path.home() / ".deboot"
ENV_FILE = DEBOOT_DIR / ".env"


def create_cloud_session(config: BridgeConfig, force_mock: bool) -> CloudSession:
    """Create the cloud session (configured adapter or mock)."""
    if force_mock:
        logger.info("Using mock vacuum (--mock flag)")
        return MockCloudSession([MockVacuum("E1", "Mock Deebot")], ready_delay=1.0)
    return load_cloud_session(config.cloud)


async def main(args: argparse.Namespace) -> int:
    """Main entry point."""
    logger.info("Starting the Deboot bridge...")

    if ENV_FILE.exists():
        load_dotenv(ENV_FILE)

    try:
        config = load_config(args.config)
        config.validate()
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    try:
        cloud = create_cloud_session(config, args.mock)
    except (ValueError, ImportError, TypeError) as e:
        logger.error(f"Cannot create the cloud session: {e}")
        return 1

    broker = MqttBroker(config.mqtt)
    try:
        await broker.connect()
    except BrokerConnectFailure as e:
        logger.error(str(e))
        return 1

    bridge = VacuumBridge(cloud, broker, config)

    # Set up graceful shutdown
    shutdown_event = asyncio.Event()

    def handle_signal():
        logger.info("Shutdown signal received")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal)

    try:
        await bridge.link()
    except DeviceEnumerationMismatch as e:
        logger.error(str(e))
        await bridge.stop()
        await broker.disconnect()
        return 1

    logger.info(f"Bridge running. Linked vacuums: {bridge.linked_devices}")
    logger.info("Press Ctrl+C to stop")

    await shutdown_event.wait()

    logger.info("Stopping bridge...")
    await bridge.stop()
    await broker.disconnect()
    logger.info("Bridge stopped")

    return 0


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Start the MQTT bridge for Ecovacs Deebot vacuums",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use a simulated vacuum instead of the Ecovacs cloud",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to bridge config file (default: ~/.deboot/config.json)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    sys.exit(asyncio.run(main(args)))
