"""
Lifecycle State Machine - The core of the daemon.

Accepts Notify / CloseNotification requests, renderer events and timer
expiries, and drives each notification through
PENDING → VISIBLE → CLOSING → CLOSED.

Every transition runs inside the store transaction of its id. The first
transition that finds a record in an acceptable state wins; a later one
finds the record gone (or in another state) and is discarded. This one
rule settles expiry vs. dismissal vs. CloseNotification vs. replace, so
NotificationClosed is emitted exactly once per id.
"""

import asyncio
import time
from collections.abc import Callable
from typing import Any

import structlog

from .. import __version__
from ..config import DEFAULT_TIMEOUT
from ..contracts import Renderer, SignalSink
from ..errors import NotFound, ProtocolError, RenderError
from ..models import (
    EXPIRE_NEVER,
    CloseReason,
    NotificationRecord,
    NotificationRequest,
    NotificationState,
    ServerInformation,
)
from .ids import IdentityAllocator
from .scheduler import TimeoutScheduler, resolve_timeout
from .store import NotificationStore

__all__ = ["CAPABILITIES", "NotificationMachine", "SERVER_INFORMATION"]

logger = structlog.get_logger(__name__)

CAPABILITIES = ("actions", "body", "body-markup", "persistence")

SERVER_INFORMATION = ServerInformation(
    name="ninomiya",
    vendor="deifactor",
    version=__version__,
    spec_version="1.2",
)

Guard = Callable[[NotificationRecord], bool]


def _closable(record: NotificationRecord) -> bool:
    return record.state in (NotificationState.PENDING, NotificationState.VISIBLE)


def _visible(record: NotificationRecord) -> bool:
    return record.state is NotificationState.VISIBLE


class NotificationMachine:
    """Notification lifecycle over a store, a scheduler and a renderer.

    Example:
        machine = NotificationMachine(renderer, interface, default_timeout=3.0)

        nid = await machine.notify(NotificationRequest(summary="Hello"))
        await machine.close_notification(nid)
    """

    def __init__(
        self,
        renderer: Renderer,
        signals: SignalSink,
        *,
        default_timeout: float = DEFAULT_TIMEOUT,
        store: NotificationStore | None = None,
        scheduler: TimeoutScheduler | None = None,
        allocator: IdentityAllocator | None = None,
    ) -> None:
        self.renderer = renderer
        self.signals = signals
        self.default_timeout = default_timeout
        self.store = store if store is not None else NotificationStore()
        self.scheduler = scheduler if scheduler is not None else TimeoutScheduler()
        self.scheduler.set_callback(self.expire)
        self.allocator = allocator or IdentityAllocator(is_live=self.store.contains)
        self._closed_count = 0

    # ─────────────────────────────────────────────────────────────────
    # Protocol operations
    # ─────────────────────────────────────────────────────────────────

    async def notify(self, request: NotificationRequest) -> int:
        """Show a new notification or replace a live one.

        Returns:
            The notification id (the replaced id for a replace)

        Raises:
            RenderError: If the renderer failed; the id is already closed
                with reason UNDEFINED
            ProtocolError: If expire_timeout is below -1
        """
        if request.expire_timeout < EXPIRE_NEVER:
            raise ProtocolError(f"Invalid expire_timeout {request.expire_timeout}")
        if request.replaces_id:
            try:
                return await self._replace(request)
            except NotFound:
                logger.debug("replace_target_gone", replaces_id=request.replaces_id)
        return await self._create(request)

    async def close_notification(self, notification_id: int) -> None:
        """Close a notification on behalf of a client.

        Raises:
            NotFound: If the id is not live
        """
        closed = await self._close(notification_id, CloseReason.CLOSE_REQUESTED, _closable)
        if not closed:
            raise NotFound(notification_id)

    def get_capabilities(self) -> list[str]:
        return list(CAPABILITIES)

    def get_server_information(self) -> ServerInformation:
        return SERVER_INFORMATION

    # ─────────────────────────────────────────────────────────────────
    # Timer and renderer events
    # ─────────────────────────────────────────────────────────────────

    async def expire(self, notification_id: int, token: int | None = None) -> bool:
        """Expiry callback from the scheduler.

        Discarded unless the record is VISIBLE and, when a token is given,
        the token is the one armed for the record's current content.
        """

        def guard(record: NotificationRecord) -> bool:
            return _visible(record) and (token is None or record.timer_token == token)

        return await self._close(notification_id, CloseReason.EXPIRED, guard)

    async def dismiss(self, notification_id: int) -> bool:
        """The user dismissed the notification."""
        return await self._close(notification_id, CloseReason.DISMISSED, _visible)

    def invoke_action(self, notification_id: int, action_key: str) -> bool:
        """The user activated an action.

        Emits ActionInvoked without changing the lifecycle state.
        """
        record = self.store.get(notification_id)
        if record is None or not _visible(record):
            logger.warning("action_on_dead_notification", id=notification_id, key=action_key)
            return False
        if not record.has_action(action_key):
            logger.warning("unknown_action", id=notification_id, key=action_key)
            return False

        logger.info("action_invoked", id=notification_id, key=action_key)
        try:
            self.signals.action_invoked(notification_id, action_key)
        except Exception as e:
            logger.error("signal_emit_failed", id=notification_id, signal="ActionInvoked", error=str(e))
            return False
        return True

    async def shutdown(self, timeout: float | None = None) -> None:
        """Close every live notification with reason UNDEFINED.

        Records whose render or teardown does not finish within timeout
        are closed without waiting for the renderer.
        """
        self.scheduler.cancel_all()
        closes = [
            self._close(nid, CloseReason.UNDEFINED, lambda r: r.is_live)
            for nid in self.store.ids()
        ]
        if closes:
            try:
                await asyncio.wait_for(asyncio.gather(*closes), timeout)
            except TimeoutError:
                logger.warning("shutdown_timeout", remaining=len(self.store.live()))

        for record in self.store.live():
            self._finish(record, CloseReason.UNDEFINED)

        await self.scheduler.drain()
        logger.info("machine_stopped", closed=self._closed_count)

    # ─────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────

    def get(self, notification_id: int) -> NotificationRecord | None:
        return self.store.get(notification_id)

    def list_visible(self) -> list[NotificationRecord]:
        return self.store.list_visible()

    def status(self) -> dict[str, Any]:
        return {
            "live": len(self.store.live()),
            "visible": len(self.store.list_visible()),
            "timers": len(self.scheduler),
            "next_id": self.allocator.next_id,
            "closed": self._closed_count,
        }

    # ─────────────────────────────────────────────────────────────────
    # Transitions
    # ─────────────────────────────────────────────────────────────────

    async def _create(self, request: NotificationRequest) -> int:
        notification_id = self.allocator.allocate()
        self.store.insert(NotificationRecord.from_request(notification_id, request))
        logger.info(
            "notification_received",
            id=notification_id,
            app=request.app_name,
            summary=request.summary,
        )
        async with self.store.transaction(notification_id) as record:
            await self._show(record)
        return notification_id

    async def _replace(self, request: NotificationRequest) -> int:
        async with self.store.transaction(request.replaces_id) as record:
            record.replace_content(request)
            logger.info("notification_replaced", id=record.id, summary=request.summary)
            await self._show(record)
            return record.id

    async def _show(self, record: NotificationRecord) -> None:
        """Render a PENDING record and arm its timer.

        Caller holds the record's transaction.
        """
        record.state = NotificationState.PENDING
        self._disarm(record)

        try:
            handle = await self.renderer.show(record)
        except asyncio.CancelledError:
            self._finish(record, CloseReason.UNDEFINED)
            raise
        except Exception as e:
            reason = e.reason if isinstance(e, RenderError) else str(e)
            logger.warning("render_failed", id=record.id, error=reason)
            await self._teardown(record)
            self._finish(record, CloseReason.UNDEFINED)
            raise RenderError(record.id, reason) from e

        if not record.is_live:
            # Force-closed by shutdown while the renderer was busy
            record.handle = handle
            await self._teardown(record)
            raise RenderError(record.id, "closed while rendering")

        record.handle = handle
        record.state = NotificationState.VISIBLE
        self._arm(record)
        logger.debug("notification_visible", id=record.id, expires_in=record.remaining())

    async def _close(self, notification_id: int, reason: CloseReason, guard: Guard) -> bool:
        """Shared teardown path: → CLOSING → CLOSED.

        Returns:
            True if this call closed the notification, False if discarded
        """
        try:
            async with self.store.transaction(notification_id) as record:
                if not guard(record):
                    logger.debug(
                        "transition_discarded",
                        id=notification_id,
                        state=record.state.value,
                        reason=reason.name,
                    )
                    return False
                record.state = NotificationState.CLOSING
                self._disarm(record)
                await self._teardown(record)
                self._finish(record, reason)
                return True
        except NotFound:
            logger.debug("transition_discarded", id=notification_id, reason=reason.name)
            return False

    async def _teardown(self, record: NotificationRecord) -> None:
        if record.handle is None:
            return
        handle, record.handle = record.handle, None
        try:
            await self.renderer.teardown(handle)
        except Exception as e:
            logger.warning("teardown_failed", id=record.id, error=str(e))

    def _finish(self, record: NotificationRecord, reason: CloseReason) -> None:
        """Mark CLOSED, emit NotificationClosed, then evict."""
        if record.state is NotificationState.CLOSED:
            return
        record.state = NotificationState.CLOSED
        self._disarm(record)
        try:
            self.signals.notification_closed(record.id, reason)
        except Exception as e:
            logger.error("signal_emit_failed", id=record.id, signal="NotificationClosed", error=str(e))
        self.store.remove(record.id)
        self._closed_count += 1
        logger.info("notification_closed", id=record.id, reason=reason.name)

    def _arm(self, record: NotificationRecord) -> None:
        delay = resolve_timeout(record.expire_timeout, self.default_timeout, record.urgency)
        if delay is None:
            logger.debug("notification_persistent", id=record.id)
            return
        record.timer_token = self.scheduler.arm(record.id, delay)
        record.expires_at = time.monotonic() + delay

    def _disarm(self, record: NotificationRecord) -> None:
        self.scheduler.disarm(record.id)
        record.timer_token = None
        record.expires_at = None
