"""End-to-end tests against a private dbus-daemon.

Skipped when dbus-daemon is not installed.
"""

import asyncio
import shutil
import subprocess

import pytest

from ninomiya.config import NinomiyaConfig
from ninomiya.daemon import NotificationDaemon
from ninomiya.errors import BusError, NotFound
from ninomiya.ipc import NotificationsClient
from ninomiya.models import Action, CloseReason, NotificationRequest

pytestmark = pytest.mark.skipif(shutil.which("dbus-daemon") is None, reason="dbus-daemon not installed")

CONFIG = NinomiyaConfig(default_timeout=0.1, shutdown_timeout=1.0)


@pytest.fixture
def bus_address():
    """Start a throwaway session bus and yield its address."""
    proc = subprocess.Popen(
        ["dbus-daemon", "--session", "--nofork", "--print-address=1"],
        stdout=subprocess.PIPE,
        text=True,
    )
    try:
        address = proc.stdout.readline().strip()
        if not address:
            pytest.skip("dbus-daemon did not report an address")
        yield address
    finally:
        proc.terminate()
        proc.wait(timeout=5)


async def start_daemon(bus_address: str, renderer, testing: bool = False, config: NinomiyaConfig = CONFIG):
    daemon = NotificationDaemon(config, renderer, testing=testing, bus_address=bus_address)
    await daemon.start()
    return daemon


class TestOverTheBus:
    """Test the daemon through a real bus connection."""

    @pytest.mark.asyncio
    async def test_notify_and_expire(self, bus_address, renderer):
        """A notification expires and the client sees reason EXPIRED."""
        daemon = await start_daemon(bus_address, renderer)
        try:
            async with NotificationsClient(daemon.bus_name, bus_address) as client:
                closed = await client.notify_and_wait(
                    NotificationRequest(app_name="pytest", summary="Test", expire_timeout=0),
                    timeout=2.0,
                )
        finally:
            await daemon.stop()

        assert closed.id == 1
        assert closed.reason == CloseReason.EXPIRED
        assert renderer.shown == [1]

    @pytest.mark.asyncio
    async def test_close_and_not_found(self, bus_address, renderer):
        """Closing works once; the second close is NotFound."""
        daemon = await start_daemon(bus_address, renderer)
        try:
            async with NotificationsClient(daemon.bus_name, bus_address) as client:
                nid = await client.notify(NotificationRequest(summary="Test", expire_timeout=-1))
                await client.close(nid)
                with pytest.raises(NotFound):
                    await client.close(nid)
        finally:
            await daemon.stop()

    @pytest.mark.asyncio
    async def test_info(self, bus_address, renderer):
        """Server information and capabilities are served."""
        daemon = await start_daemon(bus_address, renderer)
        try:
            async with NotificationsClient(daemon.bus_name, bus_address) as client:
                info = await client.get_server_information()
                capabilities = await client.get_capabilities()
        finally:
            await daemon.stop()

        assert info.name == "ninomiya"
        assert "actions" in capabilities

    @pytest.mark.asyncio
    async def test_action_then_dismiss(self, bus_address, renderer):
        """Action and dismissal reach a waiting client."""
        daemon = await start_daemon(bus_address, renderer)
        try:
            async with NotificationsClient(daemon.bus_name, bus_address) as client:
                waiting = asyncio.create_task(client.notify_and_wait(
                    NotificationRequest(summary="Choose", actions=(Action("yes", "Yes"),), expire_timeout=-1),
                    timeout=2.0,
                ))
                while not daemon.machine.list_visible():
                    await asyncio.sleep(0.01)
                nid = daemon.machine.list_visible()[0].id

                renderer.events.action_invoked(nid, "yes")
                renderer.events.dismissed(nid)
                closed = await waiting
        finally:
            await daemon.stop()

        assert closed.actions == ("yes",)
        assert closed.reason == CloseReason.DISMISSED

    @pytest.mark.asyncio
    async def test_shutdown_closes_undefined(self, bus_address, renderer):
        """Stopping the daemon closes live notifications with UNDEFINED."""
        daemon = await start_daemon(bus_address, renderer)
        async with NotificationsClient(daemon.bus_name, bus_address) as client:
            waiting = asyncio.create_task(client.notify_and_wait(
                NotificationRequest(summary="Stay", expire_timeout=-1),
                timeout=2.0,
            ))
            while not daemon.machine.list_visible():
                await asyncio.sleep(0.01)

            await daemon.stop()
            closed = await waiting

        assert closed.reason == CloseReason.UNDEFINED
        assert renderer.stopped is True


class TestBusNames:
    """Test well-known name ownership."""

    @pytest.mark.asyncio
    async def test_testing_instance_is_isolated(self, bus_address, make_renderer):
        """A --testing client reaches only the testing daemon."""
        normal_renderer, testing_renderer = make_renderer(), make_renderer()
        normal = await start_daemon(bus_address, normal_renderer)
        testing = await start_daemon(bus_address, testing_renderer, testing=True)
        try:
            async with NotificationsClient(testing.bus_name, bus_address) as client:
                await client.notify(NotificationRequest(summary="dev build", expire_timeout=-1))
        finally:
            await testing.stop()
            await normal.stop()

        assert testing_renderer.shown == [1]
        assert normal_renderer.shown == []

    @pytest.mark.asyncio
    async def test_second_daemon_refused(self, bus_address, make_renderer):
        """A second daemon on the same name reports already running."""
        first = await start_daemon(bus_address, make_renderer())
        try:
            with pytest.raises(BusError) as exc_info:
                await start_daemon(bus_address, make_renderer())
        finally:
            await first.stop()

        assert exc_info.value.already_running is True

    @pytest.mark.asyncio
    async def test_replace_takes_over(self, bus_address, make_renderer):
        """--replace takes the name; the old daemon shuts down."""
        old = NotificationDaemon(CONFIG, make_renderer(), bus_address=bus_address)
        stop = asyncio.Event()
        old_run = asyncio.create_task(old.run(stop))
        while not old.running:
            await asyncio.sleep(0.01)

        replacing = CONFIG.with_overrides(replace_existing=True)
        new = await start_daemon(bus_address, make_renderer(), config=replacing)
        try:
            await asyncio.wait_for(old_run, 2.0)
        finally:
            stop.set()
            await new.stop()

        assert old.running is False

    @pytest.mark.asyncio
    async def test_no_daemon(self, bus_address):
        """Clients report a missing daemon as BusError."""
        with pytest.raises(BusError, match="no notification daemon"):
            async with NotificationsClient(NinomiyaConfig().testing_bus_name, bus_address):
                pass
