"""
Signal Sink - Contract for emitting lifecycle signals.

The daemon's D-Bus interface implements it by emitting the
NotificationClosed and ActionInvoked signals of the notification standard.
"""

from typing import Protocol, runtime_checkable

from ..models import CloseReason


@runtime_checkable
class SignalSink(Protocol):
    """Receives the lifecycle signals of the notification standard."""

    def notification_closed(self, notification_id: int, reason: CloseReason) -> None:
        """A notification reached CLOSED. Called exactly once per id."""
        ...

    def action_invoked(self, notification_id: int, action_key: str) -> None:
        """The user activated an action."""
        ...
