"""
Renderer Protocol - Contract for the component that displays notifications.

The lifecycle machine only needs two calls (show, teardown) and two
inbound events (dismissed, action_invoked). Any toolkit can sit behind
it; tests use a fake that acknowledges or fails on demand.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from ..models import NotificationRecord

StackProvider = Callable[[], list[NotificationRecord]]


@dataclass(frozen=True)
class RenderHandle:
    """Opaque reference to something the renderer put on screen."""

    notification_id: int
    data: Any = field(default=None, compare=False)


@runtime_checkable
class RendererEvents(Protocol):
    """User interaction reported by a renderer."""

    def dismissed(self, notification_id: int) -> None:
        """The user closed the notification."""
        ...

    def action_invoked(self, notification_id: int, action_key: str) -> None:
        """The user activated one of the notification's actions."""
        ...


@runtime_checkable
class Renderer(Protocol):
    """Contract for notification renderers.

    Example:
        class WindowRenderer:
            def bind(self, events, stack):
                self._events = events

            async def show(self, record):
                window = build_window(record)
                return RenderHandle(record.id, window)

            async def teardown(self, handle):
                handle.data.close()
    """

    def bind(self, events: RendererEvents, stack: StackProvider) -> None:
        """Attach the event receiver and the stacking order provider.

        Called once by the daemon before start().
        """
        ...

    async def start(self) -> None:
        """Acquire resources (windows, input readers)."""
        ...

    async def stop(self) -> None:
        """Release resources."""
        ...

    async def show(self, record: NotificationRecord) -> RenderHandle:
        """Display a record, or update the display of an already shown id.

        Returns:
            Handle later passed to teardown()

        Raises:
            RenderError: If the record cannot be displayed
        """
        ...

    async def teardown(self, handle: RenderHandle) -> None:
        """Remove a displayed notification."""
        ...
