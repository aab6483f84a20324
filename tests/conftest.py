"""Shared test fixtures."""

import asyncio
import logging

import pytest
import structlog

from ninomiya.contracts import RenderHandle
from ninomiya.core import NotificationMachine
from ninomiya.errors import RenderError
from ninomiya.models import CloseReason, NotificationRecord


class FakeRenderer:
    """Renderer that acknowledges instantly, or fails or stalls on demand."""

    def __init__(self) -> None:
        self.shown: list[int] = []
        self.torn_down: list[int] = []
        self.fail_next = False
        self.delay = 0.0
        self.gate: asyncio.Event | None = None
        self.events = None
        self.stack = list
        self.started = False
        self.stopped = False

    def bind(self, events, stack) -> None:
        self.events = events
        self.stack = stack

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    async def show(self, record: NotificationRecord) -> RenderHandle:
        self.shown.append(record.id)
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_next:
            self.fail_next = False
            raise RenderError(record.id, "display unavailable")
        return RenderHandle(record.id, data=record.summary)

    async def teardown(self, handle: RenderHandle) -> None:
        self.torn_down.append(handle.notification_id)


class RecordingSignals:
    """SignalSink that remembers every emitted signal."""

    def __init__(self) -> None:
        self.closed: list[tuple[int, CloseReason]] = []
        self.actions: list[tuple[int, str]] = []

    def notification_closed(self, notification_id: int, reason: CloseReason) -> None:
        self.closed.append((notification_id, reason))

    def action_invoked(self, notification_id: int, action_key: str) -> None:
        self.actions.append((notification_id, action_key))

    def reasons_for(self, notification_id: int) -> list[CloseReason]:
        return [reason for nid, reason in self.closed if nid == notification_id]


class RecordingEvents:
    """RendererEvents receiver for renderer tests."""

    def __init__(self) -> None:
        self.dismissed_ids: list[int] = []
        self.actions: list[tuple[int, str]] = []

    def dismissed(self, notification_id: int) -> None:
        self.dismissed_ids.append(notification_id)

    def action_invoked(self, notification_id: int, action_key: str) -> None:
        self.actions.append((notification_id, action_key))


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def signals():
    return RecordingSignals()


@pytest.fixture
def events():
    return RecordingEvents()


@pytest.fixture
def machine(renderer, signals):
    """Machine with a short default timeout so expiry tests stay fast."""
    return NotificationMachine(renderer, signals, default_timeout=0.05)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep the user's config file and NINOMIYA_* variables out of tests."""
    for key in ("NINOMIYA_DEFAULT_TIMEOUT", "NINOMIYA_LOG", "NINOMIYA_REPLACE", "NINOMIYA_SHUTDOWN_TIMEOUT"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("NINOMIYA_CONFIG", str(tmp_path / "missing.toml"))


@pytest.fixture
def make_renderer():
    """Factory for tests that need more than one renderer."""
    return FakeRenderer


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo configure_logging() calls made by a test."""
    root_level = logging.getLogger().level
    yield
    structlog.reset_defaults()
    logging.getLogger().setLevel(root_level)
