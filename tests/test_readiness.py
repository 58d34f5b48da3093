"""Tests for the device readiness gate."""

import asyncio

import pytest

from deboot.bridge.errors import ReadinessTimeout
from deboot.bridge.readiness import await_ready
from deboot.devices.base import READY_EVENT


class TestReadinessRace:
    """Ready signal against timeout."""

    @pytest.mark.asyncio
    async def test_ready_before_timeout_resolves(self, vacuum):
        """Test that a ready signal inside the window resolves to the device."""
        asyncio.get_running_loop().call_later(0.01, vacuum.signal_ready)

        result = await await_ready(vacuum, timeout=1.0)

        assert result is vacuum
        assert vacuum.is_ready is True

    @pytest.mark.asyncio
    async def test_timeout_raises(self, vacuum):
        """Test that no ready signal fails with ReadinessTimeout."""
        with pytest.raises(ReadinessTimeout) as exc_info:
            await await_ready(vacuum, timeout=0.05)

        assert exc_info.value.device_id == "E1"
        assert "E1" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_late_ready_is_ignored(self, vacuum):
        """Test that a ready signal after the timeout does nothing."""
        with pytest.raises(ReadinessTimeout):
            await await_ready(vacuum, timeout=0.02)

        # Should not raise
        vacuum.signal_ready()
        await asyncio.sleep(0.01)

        assert vacuum.handler_count(READY_EVENT) == 0

    @pytest.mark.asyncio
    async def test_already_ready_returns_immediately(self, vacuum):
        """Test that a device that is ready already does not wait."""
        vacuum.signal_ready()

        result = await await_ready(vacuum, timeout=0.01)

        assert result is vacuum

    @pytest.mark.asyncio
    async def test_subscription_disposed_after_ready(self, vacuum):
        """Test that the ready handler is removed once the race is decided."""
        asyncio.get_running_loop().call_later(0.01, vacuum.signal_ready)

        await await_ready(vacuum, timeout=1.0)

        assert vacuum.handler_count(READY_EVENT) == 0

    @pytest.mark.asyncio
    async def test_ready_from_other_thread(self, vacuum):
        """Test that a ready signal from an SDK thread resolves the wait."""
        loop = asyncio.get_running_loop()
        loop.call_later(0.01, lambda: loop.run_in_executor(None, vacuum.signal_ready))

        result = await await_ready(vacuum, timeout=1.0)

        assert result is vacuum
