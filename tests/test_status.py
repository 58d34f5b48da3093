"""Tests for StatusPublisher."""

import asyncio

import pytest

from deboot.bridge.status import OFFLINE, ONLINE, StatusPublisher


@pytest.fixture
def publisher(broker):
    return StatusPublisher(broker, "ecovacs/bridge/status")


class TestPublish:
    """Tests for one-shot status publication."""

    @pytest.mark.asyncio
    async def test_publish_online(self, publisher, broker):
        """Test that online lands on the status topic."""
        assert await publisher.publish(ONLINE) is True

        assert broker.payloads("ecovacs/bridge/status") == ["online"]
        assert publisher.status == ONLINE

    @pytest.mark.asyncio
    async def test_publish_failure_not_raised(self, publisher, broker, caplog):
        """Test that a failed publish is logged and reported, not raised."""
        broker.fail_topics.add("ecovacs/bridge/status")

        assert await publisher.publish(ONLINE) is False
        assert any("ecovacs/bridge/status" in r.message for r in caplog.records)


class TestHeartbeat:
    """Tests for the optional periodic re-publication."""

    @pytest.mark.asyncio
    async def test_heartbeat_republishes(self, publisher, broker):
        """Test that the heartbeat repeats the last status."""
        await publisher.publish(ONLINE)

        publisher.start_heartbeat(0.01)
        await asyncio.sleep(0.05)
        await publisher.stop_heartbeat()

        assert len(broker.payloads("ecovacs/bridge/status")) >= 2

    @pytest.mark.asyncio
    async def test_stop_heartbeat_stops(self, publisher, broker):
        """Test that nothing is published after the heartbeat stops."""
        await publisher.publish(OFFLINE)
        publisher.start_heartbeat(0.01)
        await asyncio.sleep(0.02)
        await publisher.stop_heartbeat()
        count = len(broker.published)

        await asyncio.sleep(0.03)

        assert len(broker.published) == count

    @pytest.mark.asyncio
    async def test_stop_without_start(self, publisher):
        """Test that stopping an idle heartbeat is harmless."""
        # Should not raise
        await publisher.stop_heartbeat()
