"""
D-Bus Interface - org.freedesktop.Notifications served over dbus_next.

Validates every call before it reaches the lifecycle machine and maps
ninomiya errors to D-Bus error replies. Also the machine's SignalSink:
NotificationClosed and ActionInvoked are emitted from here.

The D-Bus methods only delegate to the handle_* coroutines, which are
plain methods and can be called directly.
"""

from typing import Any

import structlog
from dbus_next import DBusError, ErrorType, Variant
from dbus_next.service import ServiceInterface, method, signal

from ..config import INTERFACE_NAME
from ..core import NotificationMachine
from ..errors import NinomiyaError, NotFound, ProtocolError, RenderError
from ..hints import Hints
from ..models import Action, CloseReason, NotificationRequest

__all__ = [
    "ERROR_NOT_FOUND",
    "ERROR_RENDER_FAILED",
    "NotificationsInterface",
    "build_request",
    "parse_actions",
    "to_dbus_error",
]

logger = structlog.get_logger(__name__)

ERROR_NOT_FOUND = "org.freedesktop.Notifications.Error.NotFound"
ERROR_RENDER_FAILED = "org.freedesktop.Notifications.Error.RenderFailed"

UINT32_MAX = 2**32 - 1


def to_dbus_error(error: NinomiyaError) -> DBusError:
    """Map a ninomiya error to the D-Bus error reply sent to the caller."""
    if isinstance(error, NotFound):
        return DBusError(ERROR_NOT_FOUND, str(error))
    if isinstance(error, RenderError):
        return DBusError(ERROR_RENDER_FAILED, str(error))
    if isinstance(error, ProtocolError):
        return DBusError(ErrorType.INVALID_ARGS, str(error))
    return DBusError(ErrorType.FAILED, str(error))


def parse_actions(actions: list[str]) -> tuple[Action, ...]:
    """Pair up the flat [key, label, key, label, ...] action list.

    Raises:
        ProtocolError: On an odd-length list or a non-string entry
    """
    if not isinstance(actions, (list, tuple)):
        raise ProtocolError("actions must be a list of strings")
    if len(actions) % 2:
        raise ProtocolError(f"actions must come in key/label pairs (got {len(actions)} entries)")
    if not all(isinstance(item, str) for item in actions):
        raise ProtocolError("actions must be a list of strings")
    return tuple(Action(key, label) for key, label in zip(actions[::2], actions[1::2]))


def _check(name: str, value: Any, kind: type) -> None:
    # bool is an int subclass and never a valid integer argument
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ProtocolError(f"{name} must be of type {kind.__name__}")


def build_request(
    app_name: str,
    replaces_id: int,
    app_icon: str,
    summary: str,
    body: str,
    actions: list[str],
    hints: dict[str, Variant],
    expire_timeout: int,
) -> NotificationRequest:
    """Validate raw Notify arguments and build a NotificationRequest.

    Raises:
        ProtocolError: If any argument is malformed
    """
    for name, value in (("app_name", app_name), ("app_icon", app_icon), ("summary", summary), ("body", body)):
        _check(name, value, str)
    _check("replaces_id", replaces_id, int)
    _check("expire_timeout", expire_timeout, int)
    if not 0 <= replaces_id <= UINT32_MAX:
        raise ProtocolError(f"replaces_id out of range: {replaces_id}")
    if expire_timeout < -1:
        raise ProtocolError(f"expire_timeout must be -1, 0 or positive (got {expire_timeout})")
    if not isinstance(hints, dict) or not all(isinstance(v, Variant) for v in hints.values()):
        raise ProtocolError("hints must map names to variants")

    return NotificationRequest(
        app_name=app_name,
        replaces_id=replaces_id,
        app_icon=app_icon,
        summary=summary,
        body=body,
        actions=parse_actions(actions),
        hints=Hints.from_dbus(hints),
        expire_timeout=expire_timeout,
    )


class NotificationsInterface(ServiceInterface):
    """The org.freedesktop.Notifications service object.

    Example:
        interface = NotificationsInterface()
        machine = NotificationMachine(renderer, interface)
        interface.attach(machine)
        bus.export(OBJECT_PATH, interface)
    """

    def __init__(self, name: str = INTERFACE_NAME) -> None:
        super().__init__(name)
        self._machine: NotificationMachine | None = None

    def attach(self, machine: NotificationMachine | None) -> None:
        """Set the machine calls go to; None makes the service refuse calls."""
        self._machine = machine

    @property
    def machine(self) -> NotificationMachine:
        if self._machine is None:
            raise DBusError(ErrorType.FAILED, "Notification service is not ready")
        return self._machine

    # ─────────────────────────────────────────────────────────────────
    # D-Bus methods
    # ─────────────────────────────────────────────────────────────────

    @method()
    async def Notify(
        self,
        app_name: "s",
        replaces_id: "u",
        app_icon: "s",
        summary: "s",
        body: "s",
        actions: "as",
        hints: "a{sv}",
        expire_timeout: "i",
    ) -> "u":
        return await self.handle_notify(
            app_name, replaces_id, app_icon, summary, body, actions, hints, expire_timeout
        )

    @method()
    async def CloseNotification(self, id: "u"):
        await self.handle_close_notification(id)

    @method()
    def GetCapabilities(self) -> "as":
        return self.handle_get_capabilities()

    @method()
    def GetServerInformation(self) -> "ssss":
        return self.handle_get_server_information()

    # ─────────────────────────────────────────────────────────────────
    # D-Bus signals
    # ─────────────────────────────────────────────────────────────────

    @signal()
    def NotificationClosed(self, id: "u", reason: "u") -> "uu":
        return [id, reason]

    @signal()
    def ActionInvoked(self, id: "u", action_key: "s") -> "us":
        return [id, action_key]

    # ─────────────────────────────────────────────────────────────────
    # Handlers
    # ─────────────────────────────────────────────────────────────────

    async def handle_notify(
        self,
        app_name: str,
        replaces_id: int,
        app_icon: str,
        summary: str,
        body: str,
        actions: list[str],
        hints: dict[str, Variant],
        expire_timeout: int,
    ) -> int:
        try:
            request = build_request(
                app_name, replaces_id, app_icon, summary, body, actions, hints, expire_timeout
            )
        except ProtocolError as e:
            logger.warning("notify_rejected", app=app_name, error=str(e))
            raise to_dbus_error(e) from e

        try:
            return await self.machine.notify(request)
        except NinomiyaError as e:
            raise to_dbus_error(e) from e

    async def handle_close_notification(self, notification_id: int) -> None:
        try:
            _check("id", notification_id, int)
            await self.machine.close_notification(notification_id)
        except NinomiyaError as e:
            logger.debug("close_rejected", id=notification_id, error=str(e))
            raise to_dbus_error(e) from e

    def handle_get_capabilities(self) -> list[str]:
        return self.machine.get_capabilities()

    def handle_get_server_information(self) -> list[str]:
        return list(self.machine.get_server_information().as_tuple())

    # ─────────────────────────────────────────────────────────────────
    # SignalSink
    # ─────────────────────────────────────────────────────────────────

    def notification_closed(self, notification_id: int, reason: CloseReason) -> None:
        self.NotificationClosed(notification_id, int(reason))

    def action_invoked(self, notification_id: int, action_key: str) -> None:
        self.ActionInvoked(notification_id, action_key)
