"""Unit tests for systemd status and watchdog notifications."""

import os
from unittest.mock import Mock

import pytest

from swayr import health
from swayr.health import SystemdNotifier, watchdog_interval
from swayr.services.event_ingestor import EventIngestor
from swayr.services.event_processor import EventProcessor
from swayr.tree_model import TreeModel


@pytest.fixture
def sd_daemon(monkeypatch):
    notifier = Mock()
    monkeypatch.setattr(health, "SYSTEMD_AVAILABLE", True)
    monkeypatch.setattr(health, "sd_daemon", notifier, raising=False)
    return notifier


@pytest.fixture
def processor(state, sway):
    return EventProcessor(state, sway, EventIngestor())


class TestWatchdogInterval:
    def test_half_of_timeout(self):
        assert watchdog_interval({"WATCHDOG_USEC": "30000000"}) == 15.0

    def test_not_configured(self):
        assert watchdog_interval({}) is None

    def test_other_process(self):
        env = {"WATCHDOG_USEC": "30000000", "WATCHDOG_PID": str(os.getpid() + 1)}
        assert watchdog_interval(env) is None


class TestSystemdNotifier:
    @pytest.mark.asyncio
    async def test_status_line(self, state, processor):
        notifier = SystemdNotifier(state, processor)
        assert await notifier.status_line() == "7 windows on 2 workspaces, 0 events, no resync"

    @pytest.mark.asyncio
    async def test_status_line_after_resync(self, state, processor, tree_payload):
        async with state.lock:
            state.replace_model(TreeModel.from_ipc(tree_payload))
        assert "last resync" in await SystemdNotifier(state, processor).status_line()

    @pytest.mark.asyncio
    async def test_ready_reports_status(self, state, processor, sd_daemon):
        await SystemdNotifier(state, processor).ready()
        message = sd_daemon.notify.call_args.args[0]
        assert message.startswith("READY=1\nSTATUS=7 windows")

    @pytest.mark.asyncio
    async def test_ping_while_processing(self, state, processor, sd_daemon):
        await processor.start_processing()
        try:
            assert await SystemdNotifier(state, processor).tick()
        finally:
            await processor.stop_processing()
        assert sd_daemon.notify.call_args.args[0].startswith("WATCHDOG=1\n")

    @pytest.mark.asyncio
    async def test_no_ping_when_processor_stopped(self, state, processor, sd_daemon):
        assert not await SystemdNotifier(state, processor).tick()
        message = sd_daemon.notify.call_args.args[0]
        assert "WATCHDOG=1" not in message
        assert message.startswith("STATUS=Event processor stopped")

    @pytest.mark.asyncio
    async def test_without_systemd(self, state, processor, monkeypatch):
        monkeypatch.setattr(health, "SYSTEMD_AVAILABLE", False)
        await processor.start_processing()
        try:
            assert not await SystemdNotifier(state, processor).tick()
        finally:
            await processor.stop_processing()

    def test_stopping(self, state, processor, sd_daemon):
        SystemdNotifier(state, processor).stopping()
        sd_daemon.notify.assert_called_once_with("STOPPING=1\nSTATUS=Shutting down")
