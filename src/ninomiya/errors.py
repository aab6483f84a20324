"""
Errors - Exception hierarchy shared by the daemon and the client.

NotFound, RenderError and ProtocolError map to D-Bus error replies at the
endpoint. BusError and ConfigError are fatal at startup and are reported
by the CLI.
"""

__all__ = [
    "BusError",
    "ConfigError",
    "NinomiyaError",
    "NotFound",
    "ProtocolError",
    "RenderError",
]


class NinomiyaError(Exception):
    """Base class for all ninomiya errors."""


class NotFound(NinomiyaError):
    """Raised when an operation references a dead or never-issued id."""

    def __init__(self, notification_id: int):
        self.notification_id = notification_id
        super().__init__(f"Notification {notification_id} does not exist")


class RenderError(NinomiyaError):
    """Raised when the renderer fails to display a notification."""

    def __init__(self, notification_id: int, reason: str):
        self.notification_id = notification_id
        self.reason = reason
        super().__init__(f"Failed to render notification {notification_id}: {reason}")


class ProtocolError(NinomiyaError):
    """Raised for structurally invalid requests at the IPC boundary."""


class BusError(NinomiyaError):
    """Raised when the bus or a bus name cannot be reached or acquired.

    Reasons:
    - No session bus to connect to
    - Name already owned by another daemon (already_running=True)
    - No daemon owns the name the client is addressing
    """

    def __init__(self, bus_name: str, reason: str, already_running: bool = False):
        self.bus_name = bus_name
        self.reason = reason
        self.already_running = already_running
        super().__init__(f"{bus_name}: {reason}")


class ConfigError(NinomiyaError):
    """Raised for an invalid configuration file or value."""
