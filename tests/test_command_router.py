"""Tests for the CommandRouter."""

import json
import logging

import pytest

from deboot.bridge.command_router import CommandRouter
from deboot.bridge.routes import COMMAND_SPECS, command_specs_for
from deboot.devices import MockVacuum
from mocks.mock_broker import make_context


@pytest.fixture
def router(broker):
    return CommandRouter(broker)


class TestAttach:
    """Tests for command topic subscription."""

    @pytest.mark.asyncio
    async def test_subscribes_one_topic_per_command(self, router, vacuum, broker):
        """Test that every command gets its own topic."""
        context = make_context(vacuum)

        topics = await router.attach(context)

        assert topics == [f"ecovacs/E1/cmd/{spec.name}" for spec in COMMAND_SPECS]
        assert set(broker.subscriptions) == set(topics)
        assert context.command_topics == topics

    @pytest.mark.asyncio
    async def test_second_attach_is_noop(self, router, vacuum, broker):
        """Test that attaching twice does not register duplicate handlers."""
        context = make_context(vacuum)
        await router.attach(context)

        assert await router.attach(context) == []

        for handlers in broker.subscriptions.values():
            assert len(handlers) == 1

    @pytest.mark.asyncio
    async def test_subscribe_failure_skips_topic(self, router, vacuum, broker):
        """Test that one failed subscription leaves the others in place."""
        broker.fail_subscribe_topics.add("ecovacs/E1/cmd/pause")
        context = make_context(vacuum)

        topics = await router.attach(context)

        assert "ecovacs/E1/cmd/pause" not in topics
        assert "ecovacs/E1/cmd/stop" in topics

    @pytest.mark.asyncio
    async def test_minimal_profile(self, broker, vacuum):
        """Test that the minimal profile leaves out cleanarea and pause."""
        router = CommandRouter(broker, command_specs_for("minimal"))
        context = make_context(vacuum)

        await router.attach(context)

        assert "ecovacs/E1/cmd/cleanarea" not in broker.subscriptions
        assert "ecovacs/E1/cmd/pause" not in broker.subscriptions
        assert "ecovacs/E1/cmd/clean" in broker.subscriptions


class TestDispatch:
    """Tests for routing inbound messages to actions."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("command", ["clean", "charge", "pause", "stop"])
    async def test_simple_commands(self, router, vacuum, command):
        """Test that payload-less commands run the action without arguments."""
        context = make_context(vacuum)

        await router.handle_message(context, f"ecovacs/E1/cmd/{command}", b"ignored {")

        assert vacuum.actions == [(command,)]

    @pytest.mark.asyncio
    async def test_cleanarea(self, router, vacuum):
        """Test that cleanarea starts a spot area clean for the given area."""
        context = make_context(vacuum)

        await router.handle_message(context, "ecovacs/E1/cmd/cleanarea", b'{"areaid":"3"}')

        assert vacuum.actions == [("SpotArea", "start", "3")]

    @pytest.mark.asyncio
    async def test_cleancustomarea(self, router, vacuum):
        """Test that cleancustomarea passes area and runs."""
        context = make_context(vacuum)
        payload = json.dumps({"area": "-100,200,300,-400", "runs": 2})

        await router.handle_message(context, "ecovacs/E1/cmd/cleancustomarea", payload)

        assert vacuum.actions == [("customarea", "start", "-100,200,300,-400", 2)]

    @pytest.mark.asyncio
    async def test_message_through_broker(self, router, vacuum, broker):
        """Test that a message delivered by the broker reaches the device."""
        context = make_context(vacuum)
        await router.attach(context)

        broker.simulate_message("ecovacs/E1/cmd/charge", b"")
        await context.drain()

        assert vacuum.actions == [("charge",)]

    @pytest.mark.asyncio
    async def test_unknown_command_ignored(self, router, vacuum, caplog):
        """Test that a command outside the table runs nothing."""
        context = make_context(vacuum)

        with caplog.at_level(logging.INFO):
            await router.handle_message(context, "ecovacs/E1/cmd/selfdestruct", b"")

        assert vacuum.actions == []
        assert any("selfdestruct" in r.message for r in caplog.records)

    @pytest.mark.asyncio
    async def test_action_failure_logged(self, broker, caplog):
        """Test that an action the device rejects is logged, not raised."""

        class BrokenVacuum(MockVacuum):
            async def run(self, action, *args):
                raise RuntimeError("vacuum offline")

        router = CommandRouter(broker)
        context = make_context(BrokenVacuum("E1"))

        await router.handle_message(context, "ecovacs/E1/cmd/clean", b"")

        assert any("vacuum offline" in r.message for r in caplog.records)


class TestValidation:
    """Invalid payloads must never reach the device."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            b'{"areaid":""}',
            b'{"areaid":null}',
            b"{}",
            b"not json",
            b'"3"',
            b"",
            b"\xff\xfe",
        ],
    )
    async def test_invalid_cleanarea_not_dispatched(self, router, vacuum, payload, caplog):
        """Test that a bad cleanarea payload logs a failure and runs nothing."""
        context = make_context(vacuum)

        await router.handle_message(context, "ecovacs/E1/cmd/cleanarea", payload)

        assert vacuum.actions == []
        assert any(
            r.levelno == logging.WARNING and "cleanarea" in r.message for r in caplog.records
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "options",
        [{"area": "1,2,3,4"}, {"runs": 1}, {"area": "", "runs": 1}, {"area": "1,2,3,4", "runs": ""}],
    )
    async def test_invalid_cleancustomarea_not_dispatched(self, router, vacuum, options):
        """Test that cleancustomarea requires both area and runs."""
        context = make_context(vacuum)

        await router.handle_message(
            context, "ecovacs/E1/cmd/cleancustomarea", json.dumps(options).encode()
        )

        assert vacuum.actions == []

    @pytest.mark.asyncio
    async def test_every_command_logged(self, router, vacuum, caplog):
        """Test that a received command is logged even when validation fails."""
        context = make_context(vacuum)

        with caplog.at_level(logging.INFO):
            await router.handle_message(context, "ecovacs/E1/cmd/cleanarea", b"{}")

        assert any("Received `cleanarea` command" in r.message for r in caplog.records)
