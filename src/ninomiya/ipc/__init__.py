"""
IPC - The org.freedesktop.Notifications D-Bus surface.

- interface: the exported service object (methods, signals, validation)
- bus: bus connection and well-known name ownership
- client: proxy used by the CLI to reach a running daemon
"""

from .bus import acquire_name, connect_bus
from .client import ClosedNotification, NotificationsClient
from .interface import NotificationsInterface, build_request, parse_actions, to_dbus_error

__all__ = [
    "ClosedNotification",
    "NotificationsClient",
    "NotificationsInterface",
    "acquire_name",
    "build_request",
    "connect_bus",
    "parse_actions",
    "to_dbus_error",
]
