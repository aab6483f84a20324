"""
Timeout Scheduler - One-shot expiry timers keyed by notification id.

Timers run on the event loop (loop.call_later). Re-arming an id replaces
its previous timer. Every arm returns a token; the expiry callback gets
the token back so the receiver can discard expiries that belong to
content that has since been replaced.
"""

import asyncio
import itertools
from collections.abc import Awaitable, Callable

import structlog

from ..errors import ProtocolError
from ..hints import Urgency
from ..models import EXPIRE_DEFAULT, EXPIRE_NEVER

__all__ = ["ExpiryCallback", "TimeoutScheduler", "resolve_timeout"]

logger = structlog.get_logger(__name__)

ExpiryCallback = Callable[[int, int], Awaitable[None]]


def resolve_timeout(
    expire_timeout: int,
    default: float,
    urgency: Urgency = Urgency.NORMAL,
) -> float | None:
    """Turn a Notify expire_timeout into a delay in seconds.

    Args:
        expire_timeout: Milliseconds, EXPIRE_DEFAULT (0) or EXPIRE_NEVER (-1)
        default: Seconds used for EXPIRE_DEFAULT
        urgency: Critical notifications never expire by default

    Returns:
        Seconds until expiry, or None if no timer should be armed
    """
    if expire_timeout == EXPIRE_NEVER:
        return None
    if expire_timeout == EXPIRE_DEFAULT:
        if urgency == Urgency.CRITICAL:
            return None
        return default
    if expire_timeout < EXPIRE_NEVER:
        raise ProtocolError(f"Invalid expire_timeout {expire_timeout}")
    return expire_timeout / 1000.0


class TimeoutScheduler:
    """Cancelable per-id expiry timers.

    Example:
        scheduler = TimeoutScheduler(on_expire=machine.expire)

        token = scheduler.arm(7, 3.0)   # expire id 7 in 3 seconds
        scheduler.disarm(7)             # changed our mind
    """

    def __init__(self, on_expire: ExpiryCallback | None = None) -> None:
        self._on_expire = on_expire
        self._timers: dict[int, tuple[int, asyncio.TimerHandle]] = {}
        self._tokens = itertools.count(1)
        self._tasks: set[asyncio.Task] = set()

    def set_callback(self, on_expire: ExpiryCallback) -> None:
        self._on_expire = on_expire

    def __len__(self) -> int:
        return len(self._timers)

    def is_armed(self, notification_id: int) -> bool:
        return notification_id in self._timers

    def arm(self, notification_id: int, delay: float) -> int:
        """Schedule an expiry after delay seconds, replacing any earlier timer.

        Returns:
            Token passed to the expiry callback
        """
        self.disarm(notification_id)
        loop = asyncio.get_running_loop()
        token = next(self._tokens)
        handle = loop.call_later(max(0.0, delay), self._fire, notification_id, token)
        self._timers[notification_id] = (token, handle)
        logger.debug("timer_armed", id=notification_id, delay=delay, token=token)
        return token

    def disarm(self, notification_id: int) -> bool:
        """Cancel the id's pending timer.

        Returns:
            True if a timer was cancelled, False if none was pending
        """
        entry = self._timers.pop(notification_id, None)
        if entry is None:
            return False
        token, handle = entry
        handle.cancel()
        logger.debug("timer_disarmed", id=notification_id, token=token)
        return True

    def cancel_all(self) -> None:
        for notification_id in list(self._timers):
            self.disarm(notification_id)

    async def drain(self) -> None:
        """Wait for expiry callbacks that already started."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _fire(self, notification_id: int, token: int) -> None:
        entry = self._timers.get(notification_id)
        if entry is None or entry[0] != token:
            return
        del self._timers[notification_id]

        logger.debug("timer_fired", id=notification_id, token=token)
        if self._on_expire is None:
            return

        task = asyncio.create_task(self._run_callback(notification_id, token))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_callback(self, notification_id: int, token: int) -> None:
        try:
            await self._on_expire(notification_id, token)
        except Exception as e:
            logger.error("expiry_callback_error", id=notification_id, error=str(e))
