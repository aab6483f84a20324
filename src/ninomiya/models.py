"""
Models - Notification records and the values of the lifecycle protocol.

States:
- PENDING: Accepted, waiting for the renderer to confirm display
- VISIBLE: Renderer acknowledged display
- CLOSING: Close requested, waiting for teardown
- CLOSED: Terminal, the close signal has been emitted

Transitions:
- PENDING → VISIBLE: Renderer acknowledged show
- PENDING → CLOSED: Renderer failed (reason UNDEFINED)
- VISIBLE → PENDING: Replaced with new content
- VISIBLE → CLOSING → CLOSED: Expiry, dismissal or CloseNotification
"""

import time
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any

from .hints import Hints, Urgency

__all__ = [
    "Action",
    "CloseReason",
    "EXPIRE_DEFAULT",
    "EXPIRE_NEVER",
    "NotificationRecord",
    "NotificationRequest",
    "NotificationState",
    "ServerInformation",
    "Urgency",
]

# expire_timeout sentinels from the notification standard
EXPIRE_NEVER = -1
EXPIRE_DEFAULT = 0

# Clients treat 0 as "no notification", so ids start at 1
FIRST_ID = 1

# This is the 'default' action key; activating the notification itself fires it
DEFAULT_ACTION = "default"


class NotificationState(Enum):
    """Lifecycle state of a notification."""

    PENDING = "pending"
    VISIBLE = "visible"
    CLOSING = "closing"
    CLOSED = "closed"


class CloseReason(IntEnum):
    """Reason codes carried by the NotificationClosed signal."""

    EXPIRED = 1
    DISMISSED = 2
    CLOSE_REQUESTED = 3
    UNDEFINED = 4


@dataclass(frozen=True)
class Action:
    """An action the user can take on a notification."""

    key: str
    label: str

    @property
    def is_default(self) -> bool:
        return self.key == DEFAULT_ACTION


@dataclass(frozen=True)
class ServerInformation:
    name: str
    vendor: str
    version: str
    spec_version: str

    def as_tuple(self) -> tuple[str, str, str, str]:
        return (self.name, self.vendor, self.version, self.spec_version)


@dataclass(frozen=True)
class NotificationRequest:
    """A structurally valid Notify call, as handed to the lifecycle machine."""

    app_name: str = ""
    replaces_id: int = 0
    app_icon: str = ""
    summary: str = ""
    body: str = ""
    actions: tuple[Action, ...] = ()
    hints: Hints = field(default_factory=Hints)
    expire_timeout: int = EXPIRE_DEFAULT


@dataclass
class NotificationRecord:
    """The daemon's view of one live notification.

    Mutated only inside a store transaction for its id.
    """

    id: int
    app_name: str
    app_icon: str
    summary: str
    body: str
    actions: tuple[Action, ...]
    hints: Hints
    expire_timeout: int
    state: NotificationState = NotificationState.PENDING
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    # Owned by the lifecycle machine
    handle: Any = None
    timer_token: int | None = None
    expires_at: float | None = None

    @classmethod
    def from_request(cls, notification_id: int, request: NotificationRequest) -> "NotificationRecord":
        return cls(
            id=notification_id,
            app_name=request.app_name,
            app_icon=request.app_icon,
            summary=request.summary,
            body=request.body,
            actions=request.actions,
            hints=request.hints,
            expire_timeout=request.expire_timeout,
        )

    def replace_content(self, request: NotificationRequest) -> None:
        """Swap in new content, keeping id and creation time."""
        self.app_name = request.app_name
        self.app_icon = request.app_icon
        self.summary = request.summary
        self.body = request.body
        self.actions = request.actions
        self.hints = request.hints
        self.expire_timeout = request.expire_timeout
        self.updated_at = time.time()

    @property
    def urgency(self) -> Urgency:
        return self.hints.urgency

    @property
    def is_live(self) -> bool:
        return self.state is not NotificationState.CLOSED

    def has_action(self, key: str) -> bool:
        return any(action.key == key for action in self.actions)

    def remaining(self) -> float | None:
        """Seconds until expiry, or None if no timer is armed."""
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - time.monotonic())
