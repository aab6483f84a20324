"""
Core - The notification lifecycle.

- IdentityAllocator: issues ids
- NotificationStore: live records behind per-id transactions
- TimeoutScheduler: cancelable expiry timers
- NotificationMachine: the state machine tying them together
"""

from .ids import IdentityAllocator
from .machine import CAPABILITIES, SERVER_INFORMATION, NotificationMachine
from .scheduler import TimeoutScheduler, resolve_timeout
from .store import NotificationStore

__all__ = [
    "CAPABILITIES",
    "IdentityAllocator",
    "NotificationMachine",
    "NotificationStore",
    "SERVER_INFORMATION",
    "TimeoutScheduler",
    "resolve_timeout",
]
