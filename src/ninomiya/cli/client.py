"""
CLI Client - One-shot commands against a running daemon.

notify, close and info each open a connection, make their call and exit.
Argument parsing helpers live here too so they can be tested without a bus.
"""

import argparse
import sys
from pathlib import Path

from dbus_next import Variant

from ..errors import ProtocolError
from ..hints import Hints, parse_urgency
from ..ipc import NotificationsClient
from ..ipc.interface import UINT32_MAX
from ..models import Action, NotificationRequest

__all__ = [
    "HINT_TYPES",
    "build_notify_request",
    "check_id",
    "format_icon",
    "parse_action",
    "parse_hint",
    "print_error",
    "run_close",
    "run_info",
    "run_notify",
]

# TYPE prefix of --hint -> (D-Bus signature, converter)
HINT_TYPES = {
    "string": ("s", str),
    "int": ("i", int),
    "uint": ("u", int),
    "byte": ("y", int),
    "double": ("d", float),
    "boolean": ("b", None),
}

INT32_MIN, INT32_MAX = -(2**31), 2**31 - 1

_TRUE = ("true", "1", "yes", "on")
_FALSE = ("false", "0", "no", "off")


def format_icon(icon: str | None) -> str:
    """Turn --icon into the app_icon argument.

    Values containing '.' or '/' are paths and become absolute file:// URIs;
    anything else is an icon theme name and is sent unchanged.

    Raises:
        ProtocolError: If a path does not exist
    """
    if not icon:
        return ""
    if "." not in icon and "/" not in icon:
        return icon
    try:
        path = Path(icon).resolve(strict=True)
    except OSError as e:
        raise ProtocolError(f"Cannot load icon from {icon!r}: {e.strerror or e}") from e
    return path.as_uri()


def parse_action(value: str) -> Action:
    """Parse KEY:LABEL. A bare KEY gets an empty label."""
    key, _, label = value.partition(":")
    if not key:
        raise ProtocolError(f"Action needs a key: {value!r}")
    return Action(key, label)


def parse_hint(value: str) -> tuple[str, Variant]:
    """Parse TYPE:NAME:VALUE into a hint name and variant.

    Example:
        parse_hint("int:value:42") == ("value", Variant("i", 42))
    """
    parts = value.split(":", 2)
    if len(parts) != 3 or not parts[1]:
        raise ProtocolError(f"Hint must look like TYPE:NAME:VALUE (got {value!r})")
    kind, name, raw = parts
    if kind not in HINT_TYPES:
        raise ProtocolError(f"Unknown hint type {kind!r} (one of {', '.join(HINT_TYPES)})")

    signature, convert = HINT_TYPES[kind]
    if convert is None:
        lowered = raw.lower()
        if lowered not in _TRUE + _FALSE:
            raise ProtocolError(f"Hint '{name}' needs a boolean value (got {raw!r})")
        return name, Variant(signature, lowered in _TRUE)
    try:
        converted = convert(raw)
    except ValueError:
        raise ProtocolError(f"Hint '{name}' needs a {kind} value (got {raw!r})") from None
    if signature == "y" and not 0 <= converted <= 255:
        raise ProtocolError(f"Hint '{name}' byte out of range: {converted}")
    if signature == "u" and not 0 <= converted <= UINT32_MAX:
        raise ProtocolError(f"Hint '{name}' uint out of range: {converted}")
    if signature == "i" and not INT32_MIN <= converted <= INT32_MAX:
        raise ProtocolError(f"Hint '{name}' int out of range: {converted}")
    return name, Variant(signature, converted)


def check_id(name: str, value: int) -> None:
    """Notification ids travel as uint32."""
    if not 0 <= value <= UINT32_MAX:
        raise ProtocolError(f"{name} must be between 0 and {UINT32_MAX} (got {value})")


def build_notify_request(args: argparse.Namespace) -> NotificationRequest:
    """Build the Notify request described by the notify subcommand's flags."""
    if not -1 <= args.timeout <= INT32_MAX:
        raise ProtocolError(f"--timeout must be -1, 0 or a positive value up to {INT32_MAX} (got {args.timeout})")
    check_id("--replaces-id", args.replaces_id)

    raw_hints = dict(parse_hint(h) for h in args.hints)
    if args.urgency is not None:
        raw_hints["urgency"] = Variant("y", int(parse_urgency(args.urgency)))

    return NotificationRequest(
        app_name=args.app_name,
        replaces_id=args.replaces_id,
        app_icon=format_icon(args.icon),
        summary=args.summary,
        body=args.body,
        actions=tuple(parse_action(a) for a in args.actions),
        hints=Hints.from_dbus(raw_hints, unwrap=False),
        expire_timeout=args.timeout,
    )


async def run_notify(args: argparse.Namespace, bus_name: str) -> int:
    request = build_notify_request(args)
    async with NotificationsClient(bus_name, args.bus_address) as client:
        if not args.wait:
            print(await client.notify(request))
            return 0

        closed = await client.notify_and_wait(request)
        print(closed.id)
        for key in closed.actions:
            print(f"action: {key}")
        print(f"closed: {closed.reason_name}")
    return 0


async def run_close(args: argparse.Namespace, bus_name: str) -> int:
    check_id("id", args.id)
    async with NotificationsClient(bus_name, args.bus_address) as client:
        await client.close(args.id)
    return 0


async def run_info(args: argparse.Namespace, bus_name: str) -> int:
    async with NotificationsClient(bus_name, args.bus_address) as client:
        info = await client.get_server_information()
        capabilities = await client.get_capabilities()

    print(f"{info.name} {info.version} ({info.vendor})")
    print(f"  Bus name: {bus_name}")
    print(f"  Spec version: {info.spec_version}")
    print(f"  Capabilities: {', '.join(sorted(capabilities))}")
    return 0


def print_error(message: str) -> None:
    """Print error message to stderr."""
    print(f"Error: {message}", file=sys.stderr)
