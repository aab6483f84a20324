"""
CLI Parser - Argument parser for the ninomiya command.

Defines all subcommands and their arguments.
"""

import argparse

from .. import __version__

__all__ = ["create_parser"]


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="ninomiya",
        description="A notification daemon for org.freedesktop.Notifications",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-t", "--testing",
        action="store_true",
        help="Use the testing bus name so a development instance never meets the user's daemon",
    )
    parser.add_argument(
        "--bus-address",
        metavar="ADDR",
        default=None,
        help="Connect to this D-Bus address instead of the session bus",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run (default: daemon)")

    # daemon
    daemon_parser = subparsers.add_parser("daemon", help="Run the notification daemon in the foreground")
    daemon_parser.add_argument(
        "-r", "--replace",
        action="store_true",
        default=None,
        help="Take the bus name over from a running notification daemon",
    )
    daemon_parser.add_argument(
        "-i", "--interactive",
        action="store_true",
        default=None,
        help="Read dismiss/action commands from stdin",
    )

    # notify
    notify_parser = subparsers.add_parser("notify", help="Send a notification")
    notify_parser.add_argument("-s", "--summary", required=True, help="The summary of the notification")
    notify_parser.add_argument("-a", "--app-name", default="", help="The application the notification is from")
    notify_parser.add_argument("-b", "--body", default="", help="The body of the notification")
    notify_parser.add_argument(
        "-i", "--icon",
        default=None,
        help="Icon name, or a path to an icon (paths must contain '.' or '/')",
    )
    notify_parser.add_argument(
        "--action",
        dest="actions",
        action="append",
        default=[],
        metavar="KEY:LABEL",
        help="Add an action (repeatable)",
    )
    notify_parser.add_argument(
        "--timeout",
        type=int,
        default=-1,
        metavar="MS",
        help="Expire after MS milliseconds; 0 uses the daemon default, -1 never expires (default: -1)",
    )
    notify_parser.add_argument(
        "-u", "--urgency",
        default=None,
        help="low, normal or critical",
    )
    notify_parser.add_argument(
        "--hint",
        dest="hints",
        action="append",
        default=[],
        metavar="TYPE:NAME:VALUE",
        help="Add a hint, e.g. string:category:email or boolean:resident:true (repeatable)",
    )
    notify_parser.add_argument(
        "--replaces-id",
        type=int,
        default=0,
        metavar="ID",
        help="Replace the live notification with this id",
    )
    notify_parser.add_argument(
        "-w", "--wait",
        action="store_true",
        help="Wait until the notification is closed and print why",
    )

    # close
    close_parser = subparsers.add_parser("close", help="Close a notification")
    close_parser.add_argument("id", type=int, help="Notification id")

    # info
    subparsers.add_parser("info", help="Show server information and capabilities")

    # demo
    subparsers.add_parser("demo", help="Send a set of demo notifications")

    return parser
