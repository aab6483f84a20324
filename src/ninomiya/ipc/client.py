"""
Notifications Client - Talks to a running notification daemon over D-Bus.

Works against any daemon implementing org.freedesktop.Notifications, not
only ninomiya. D-Bus error replies and values that cannot be marshalled
are turned into ninomiya errors.
"""

import asyncio
from dataclasses import dataclass

import structlog
from dbus_next import DBusError, ErrorType
from dbus_next.aio import MessageBus, ProxyInterface
from dbus_next.errors import SignatureBodyMismatchError

from ..config import BUS_NAME, INTERFACE_NAME, OBJECT_PATH
from ..errors import BusError, NinomiyaError, NotFound, ProtocolError, RenderError
from ..models import CloseReason, NotificationRequest, ServerInformation
from .bus import connect_bus
from .interface import ERROR_NOT_FOUND, ERROR_RENDER_FAILED

__all__ = ["ClosedNotification", "NotificationsClient"]

logger = structlog.get_logger(__name__)

_NO_OWNER = (ErrorType.SERVICE_UNKNOWN.value, ErrorType.NAME_HAS_NO_OWNER.value)


@dataclass(frozen=True)
class ClosedNotification:
    """How a notification sent with notify_and_wait() ended."""

    id: int
    reason: int
    actions: tuple[str, ...] = ()

    @property
    def reason_name(self) -> str:
        try:
            return CloseReason(self.reason).name.lower()
        except ValueError:
            return f"unknown ({self.reason})"


class NotificationsClient:
    """Async D-Bus client for the notification service.

    Example:
        async with NotificationsClient(TESTING_BUS_NAME) as client:
            nid = await client.notify(NotificationRequest(summary="Hello"))
            await client.close(nid)
    """

    def __init__(self, bus_name: str = BUS_NAME, bus_address: str | None = None) -> None:
        self.bus_name = bus_name
        self.bus_address = bus_address
        self._bus: MessageBus | None = None
        self._iface: ProxyInterface | None = None

    async def __aenter__(self) -> "NotificationsClient":
        await self.connect()
        return self

    async def __aexit__(self, *args) -> None:
        self.disconnect()

    async def connect(self) -> None:
        """Connect to the bus and look up the daemon.

        Raises:
            BusError: If the bus is unreachable or no daemon owns the name
        """
        bus = await connect_bus(self.bus_address)
        try:
            introspection = await bus.introspect(self.bus_name, OBJECT_PATH)
        except DBusError as e:
            bus.disconnect()
            if e.type in _NO_OWNER:
                raise BusError(self.bus_name, "no notification daemon is running") from e
            raise BusError(self.bus_name, e.text) from e

        proxy = bus.get_proxy_object(self.bus_name, OBJECT_PATH, introspection)
        try:
            self._iface = proxy.get_interface(INTERFACE_NAME)
        except Exception as e:
            bus.disconnect()
            raise BusError(self.bus_name, f"does not implement {INTERFACE_NAME}") from e
        self._bus = bus
        logger.debug("client_connected", name=self.bus_name)

    def disconnect(self) -> None:
        if self._bus is not None:
            self._bus.disconnect()
            self._bus = None
            self._iface = None

    @property
    def iface(self) -> ProxyInterface:
        if self._iface is None:
            raise BusError(self.bus_name, "client is not connected")
        return self._iface

    # ─────────────────────────────────────────────────────────────────
    # Calls
    # ─────────────────────────────────────────────────────────────────

    async def notify(self, request: NotificationRequest) -> int:
        """Send a notification and return the id the daemon assigned."""
        actions: list[str] = []
        for action in request.actions:
            actions.extend((action.key, action.label))
        try:
            return await self.iface.call_notify(
                request.app_name,
                request.replaces_id,
                request.app_icon,
                request.summary,
                request.body,
                actions,
                request.hints.to_dbus(),
                request.expire_timeout,
            )
        except DBusError as e:
            raise self._translate(e, request.replaces_id) from e
        except SignatureBodyMismatchError as e:
            raise ProtocolError(f"Cannot send notification: {e}") from e

    async def close(self, notification_id: int) -> None:
        try:
            await self.iface.call_close_notification(notification_id)
        except DBusError as e:
            raise self._translate(e, notification_id) from e
        except SignatureBodyMismatchError as e:
            raise ProtocolError(f"Invalid notification id {notification_id}: {e}") from e

    async def get_capabilities(self) -> list[str]:
        try:
            return await self.iface.call_get_capabilities()
        except DBusError as e:
            raise self._translate(e) from e

    async def get_server_information(self) -> ServerInformation:
        try:
            name, vendor, version, spec_version = await self.iface.call_get_server_information()
        except DBusError as e:
            raise self._translate(e) from e
        return ServerInformation(name, vendor, version, spec_version)

    async def notify_and_wait(
        self,
        request: NotificationRequest,
        timeout: float | None = None,
    ) -> ClosedNotification:
        """Send a notification and wait for its NotificationClosed signal.

        Signals are subscribed before the call so a close that arrives
        right after the reply is not missed.

        Raises:
            TimeoutError: If timeout passes before the notification closes
        """
        closed: dict[int, int] = {}
        invoked: dict[int, list[str]] = {}
        changed = asyncio.Event()

        def on_closed(notification_id: int, reason: int) -> None:
            closed[notification_id] = reason
            changed.set()

        def on_action(notification_id: int, action_key: str) -> None:
            invoked.setdefault(notification_id, []).append(action_key)
            logger.debug("action_received", id=notification_id, key=action_key)

        self.iface.on_notification_closed(on_closed)
        self.iface.on_action_invoked(on_action)
        try:
            notification_id = await self.notify(request)

            async def wait() -> None:
                while notification_id not in closed:
                    changed.clear()
                    await changed.wait()

            await asyncio.wait_for(wait(), timeout)
            return ClosedNotification(
                notification_id,
                closed[notification_id],
                tuple(invoked.get(notification_id, ())),
            )
        finally:
            if self._iface is not None:
                self._iface.off_notification_closed(on_closed)
                self._iface.off_action_invoked(on_action)

    def _translate(self, error: DBusError, notification_id: int = 0) -> NinomiyaError:
        if error.type == ERROR_NOT_FOUND:
            return NotFound(notification_id)
        if error.type == ERROR_RENDER_FAILED:
            return RenderError(notification_id, error.text)
        if error.type == ErrorType.INVALID_ARGS.value:
            return ProtocolError(error.text)
        if error.type in _NO_OWNER:
            return BusError(self.bus_name, "no notification daemon is running")
        return BusError(self.bus_name, error.text)
