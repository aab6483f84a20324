"""
Notification Daemon - Wires the machine, the renderer and the bus together.

Startup:
1. Start the renderer
2. Connect the bus and export the interface at /org/freedesktop/Notifications
3. Own the well-known name (fatal on failure)

Shutdown (signal, lost name or bus disconnect):
1. Stop accepting calls
2. Close every live notification with reason UNDEFINED (signals still go out)
3. Release the name, unexport, disconnect, stop the renderer
"""

import asyncio
from typing import Any

import structlog
from dbus_next import Message
from dbus_next.aio import MessageBus

from .config import OBJECT_PATH, NinomiyaConfig
from .contracts import Renderer
from .core import NotificationMachine
from .errors import BusError
from .ipc import NotificationsInterface, acquire_name, connect_bus
from .ipc.bus import is_name_lost
from .render import ConsoleRenderer

__all__ = ["NotificationDaemon"]

logger = structlog.get_logger(__name__)


class NotificationDaemon:
    """A notification daemon bound to one bus name.

    Also the renderer's event receiver: dismissals and action
    activations are relayed into the machine from here.

    Example:
        daemon = NotificationDaemon(NinomiyaConfig(), testing=True)
        await daemon.run(shutdown_event)
    """

    def __init__(
        self,
        config: NinomiyaConfig,
        renderer: Renderer | None = None,
        *,
        testing: bool = False,
        bus_address: str | None = None,
    ) -> None:
        self.config = config
        self.bus_name = config.bus_name_for(testing)
        self.bus_address = bus_address
        self.renderer = renderer if renderer is not None else ConsoleRenderer(interactive=config.interactive)
        self.interface = NotificationsInterface()
        self.machine = NotificationMachine(
            self.renderer,
            self.interface,
            default_timeout=config.default_timeout,
        )
        self.interface.attach(self.machine)
        self.renderer.bind(self, self.machine.list_visible)

        self.bus: MessageBus | None = None
        self._tasks: set[asyncio.Task] = set()
        self._name_lost = asyncio.Event()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Bring the daemon up.

        Raises:
            BusError: If the bus cannot be reached or the name is taken
        """
        await self.renderer.start()
        try:
            self.bus = await connect_bus(self.bus_address)
            self.bus.export(OBJECT_PATH, self.interface)
            await acquire_name(self.bus, self.bus_name, self.config.replace_existing)
        except BusError:
            await self._release()
            raise

        self.bus.add_message_handler(self._on_bus_message)
        self._running = True
        logger.info(
            "daemon_started",
            name=self.bus_name,
            unique_name=self.bus.unique_name,
            default_timeout=self.config.default_timeout,
        )

    async def stop(self) -> None:
        """Close everything and leave the bus. Safe to call more than once."""
        if not self._running:
            return
        self._running = False
        logger.info("daemon_stopping", live=len(self.machine.store.live()))

        self.interface.attach(None)
        await self.machine.shutdown(self.config.shutdown_timeout)

        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        await self._release()
        logger.info("daemon_stopped", **self.machine.status())

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """Start, serve until shutdown_event is set or the bus goes away, stop."""
        await self.start()
        waiters = [
            asyncio.create_task(shutdown_event.wait()),
            asyncio.create_task(self._name_lost.wait()),
            asyncio.create_task(self.bus.wait_for_disconnect()),
        ]
        try:
            done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
            if waiters[1] in done:
                logger.warning("bus_name_lost", name=self.bus_name)
            elif waiters[2] in done:
                logger.warning("bus_disconnected", name=self.bus_name)
        finally:
            for waiter in waiters:
                waiter.cancel()
            await asyncio.gather(*waiters, return_exceptions=True)
            await self.stop()

    # ─────────────────────────────────────────────────────────────────
    # RendererEvents
    # ─────────────────────────────────────────────────────────────────

    def dismissed(self, notification_id: int) -> None:
        self._spawn(self.machine.dismiss(notification_id), "dismiss", notification_id)

    def action_invoked(self, notification_id: int, action_key: str) -> None:
        self.machine.invoke_action(notification_id, action_key)

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    def _spawn(self, coro: Any, event: str, notification_id: int) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)

        def done(t: asyncio.Task) -> None:
            self._tasks.discard(t)
            if not t.cancelled() and t.exception() is not None:
                logger.error("renderer_event_failed", event=event, id=notification_id, error=str(t.exception()))

        task.add_done_callback(done)

    def _on_bus_message(self, message: Message) -> None:
        if is_name_lost(message, self.bus_name):
            self._name_lost.set()

    async def _release(self) -> None:
        if self.bus is not None:
            bus, self.bus = self.bus, None
            if bus.connected:
                try:
                    await bus.release_name(self.bus_name)
                except Exception as e:
                    logger.warning("release_name_failed", name=self.bus_name, error=str(e))
                bus.unexport(OBJECT_PATH, self.interface)
                bus.disconnect()
        await self.renderer.stop()
