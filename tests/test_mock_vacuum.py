"""Tests for the MockVacuum and MockCloudSession."""

import asyncio

import pytest

from deboot.devices import BaseVacuum, CloudSession, MockCloudSession, MockVacuum


class TestMockVacuum:
    """Tests that MockVacuum behaves like a vacuum handle."""

    def test_is_base_vacuum(self, vacuum):
        assert isinstance(vacuum, BaseVacuum)
        assert vacuum.device_id == "E1"
        assert vacuum.nickname == "Mock Deebot"
        assert vacuum.descriptor["did"] == "E1"

    def test_signal_ready_once(self, vacuum):
        """Test that the ready event is emitted only on the first call."""
        calls = []
        vacuum.on("ready", lambda *args: calls.append(args))

        vacuum.signal_ready()
        vacuum.signal_ready()

        assert vacuum.is_ready is True
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_clean_emits_report(self, vacuum):
        reports = []
        vacuum.on("CleanReport", reports.append)

        await vacuum.run("clean")

        assert reports == ["auto"]
        assert vacuum.actions == [("clean",)]

    @pytest.mark.asyncio
    async def test_map_set_emits_each_area(self, vacuum):
        areas = []
        vacuum.on("MapSpotAreaInfo", areas.append)

        await vacuum.run("getMapSet")

        assert [a["mapSpotAreaID"] for a in areas] == ["0", "1"]

    @pytest.mark.asyncio
    async def test_unknown_action(self, vacuum):
        with pytest.raises(ValueError):
            await vacuum.run("fly")

    def test_failing_handler_isolated(self, vacuum):
        """Test that a raising handler does not stop the next one."""
        seen = []

        def broken(value):
            raise RuntimeError("boom")

        vacuum.on("BatteryInfo", broken)
        vacuum.on("BatteryInfo", seen.append)

        vacuum.emit("BatteryInfo", 7)

        assert seen == [7]

    def test_subscription_dispose_idempotent(self, vacuum):
        subscription = vacuum.on("BatteryInfo", lambda value: None)

        subscription.dispose()
        subscription.dispose()

        assert subscription.active is False
        assert vacuum.handler_count("BatteryInfo") == 0


class TestMockCloudSession:
    """Tests for the simulated cloud session."""

    @pytest.mark.asyncio
    async def test_enumerate_schedules_ready(self):
        vacuum = MockVacuum("E1")
        cloud = MockCloudSession([vacuum], ready_delay=0.01)

        assert isinstance(cloud, CloudSession)
        await cloud.connect()
        devices = await cloud.enumerate_devices()
        await asyncio.sleep(0.05)

        assert devices == [vacuum]
        assert vacuum.is_ready is True

    @pytest.mark.asyncio
    async def test_connect_failure(self):
        cloud = MockCloudSession([], fail_connect=True)

        with pytest.raises(ConnectionError):
            await cloud.connect()
