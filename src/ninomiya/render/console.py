"""
Console Renderer - Prints notifications to a text stream.

The daemon's built-in renderer. Every show prints a block like

    ┌ [3] firefox (2/4)
    │ Download finished
    │ report.pdf is ready
    └ actions: Open, Show in folder

and every teardown a one-line notice. In interactive mode it reads
commands from stdin and reports them as user input:

    d <id>          dismiss
    a <id> [key]    invoke an action (key defaults to "default")
    c <id>          click: invoke "default" if advertised, then dismiss
"""

import asyncio
import contextlib
import html
import re
import sys
from typing import TextIO

import structlog

from ..contracts import RenderHandle, RendererEvents, StackProvider
from ..hints import ImagePath, RawImage
from ..models import DEFAULT_ACTION, NotificationRecord

__all__ = ["ConsoleRenderer", "format_notification", "strip_markup"]

logger = structlog.get_logger(__name__)

USAGE = "commands: d <id> dismiss, a <id> [key] action, c <id> click"

_TAG = re.compile(r"<[^>]*>")


def strip_markup(text: str) -> str:
    """Remove body markup (<b>, <i>, <a href=...>) and unescape entities."""
    return html.unescape(_TAG.sub("", text))


def format_notification(record: NotificationRecord, position: int, total: int, replaced: bool = False) -> str:
    """Render one record as the console block printed on show."""
    title = f"[{record.id}] {record.app_name or 'unknown'} ({position}/{total})"
    if replaced:
        title += " updated"
    if record.urgency.name != "NORMAL":
        title += f" {record.urgency.name.lower()}"

    lines = [f"┌ {title}", f"│ {record.summary}"]
    for line in strip_markup(record.body).splitlines():
        lines.append(f"│ {line}")

    image = record.hints.image
    if isinstance(image, RawImage):
        lines.append(f"│ image: {image.width}x{image.height}")
    elif isinstance(image, ImagePath):
        lines.append(f"│ image: {image.path}")
    if record.app_icon:
        lines.append(f"│ icon: {record.app_icon}")

    # A default action without a label is only reachable by clicking
    labels = [
        f"{action.label or action.key} ({action.key})"
        for action in record.actions
        if not (action.is_default and not action.label)
    ]
    if labels:
        lines.append(f"└ actions: {', '.join(labels)}")
    else:
        lines.append("└")
    return "\n".join(lines)


class ConsoleRenderer:
    """Renderer that writes notifications to a stream.

    Example:
        renderer = ConsoleRenderer(interactive=True)
        renderer.bind(events, machine.list_visible)
        await renderer.start()
    """

    def __init__(
        self,
        stream: TextIO | None = None,
        interactive: bool = False,
        input: asyncio.StreamReader | None = None,
    ) -> None:
        self.stream = stream or sys.stdout
        self.interactive = interactive
        self._input = input
        self._events: RendererEvents | None = None
        self._stack: StackProvider = list
        self._on_screen: set[int] = set()
        self._reader_task: asyncio.Task | None = None

    def bind(self, events: RendererEvents, stack: StackProvider) -> None:
        self._events = events
        self._stack = stack

    async def start(self) -> None:
        if not self.interactive:
            return
        reader = self._input
        if reader is None:
            loop = asyncio.get_running_loop()
            reader = asyncio.StreamReader()
            protocol = asyncio.StreamReaderProtocol(reader)
            await loop.connect_read_pipe(lambda: protocol, sys.stdin)
        self._reader_task = asyncio.create_task(self._read_commands(reader))
        self._write(USAGE)
        logger.debug("console_input_started")

    async def stop(self) -> None:
        if self._reader_task is not None:
            self._reader_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader_task
            self._reader_task = None
        self._on_screen.clear()

    async def show(self, record: NotificationRecord) -> RenderHandle:
        replaced = record.id in self._on_screen
        position, total = self._position(record)
        self._write(format_notification(record, position, total, replaced))
        self._on_screen.add(record.id)
        logger.debug("notification_rendered", id=record.id, position=position, replaced=replaced)
        return RenderHandle(record.id)

    async def teardown(self, handle: RenderHandle) -> None:
        self._on_screen.discard(handle.notification_id)
        self._write(f"  [{handle.notification_id}] closed")
        logger.debug("notification_torn_down", id=handle.notification_id)

    # ─────────────────────────────────────────────────────────────────
    # User input
    # ─────────────────────────────────────────────────────────────────

    def handle_command(self, line: str) -> bool:
        """Parse and dispatch one command line.

        Returns:
            True if the line was a valid command
        """
        parts = line.split()
        if not parts:
            return False
        command, args = parts[0].lower(), parts[1:]
        if command not in ("d", "a", "c") or not args:
            self._write(USAGE)
            return False
        try:
            notification_id = int(args[0])
        except ValueError:
            self._write(f"not an id: {args[0]}")
            return False
        if self._events is None:
            logger.warning("console_renderer_unbound", command=command)
            return False

        if command == "d":
            self._events.dismissed(notification_id)
        elif command == "a":
            key = args[1] if len(args) > 1 else DEFAULT_ACTION
            self._events.action_invoked(notification_id, key)
        else:
            self.click(notification_id)
        return True

    def click(self, notification_id: int) -> None:
        """Activate a notification the way clicking its window would."""
        if self._events is None:
            return
        record = next((r for r in self._stack() if r.id == notification_id), None)
        if record is not None and record.has_action(DEFAULT_ACTION):
            self._events.action_invoked(notification_id, DEFAULT_ACTION)
        self._events.dismissed(notification_id)

    async def _read_commands(self, reader: asyncio.StreamReader) -> None:
        while True:
            data = await reader.readline()
            if not data:
                logger.debug("console_input_closed")
                return
            self.handle_command(data.decode(errors="replace"))

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    def _position(self, record: NotificationRecord) -> tuple[int, int]:
        """1-based slot of record in the stack, and the stack size."""
        others = [r for r in self._stack() if r.id != record.id]
        key = (-record.urgency, record.created_at, record.id)
        ahead = sum(1 for r in others if (-r.urgency, r.created_at, r.id) < key)
        return ahead + 1, len(others) + 1

    def _write(self, text: str) -> None:
        print(text, file=self.stream, flush=True)
