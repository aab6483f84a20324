"""
CLI - Command-line interface for ninomiya.

The `ninomiya` command runs the daemon (the default) and doubles as a
client for any org.freedesktop.Notifications daemon.

Commands:
    ninomiya [daemon]     Run the daemon in the foreground
    ninomiya notify ...   Send a notification
    ninomiya close ID     Close a notification
    ninomiya info         Show server information and capabilities
    ninomiya demo         Send the demo notifications

Example:
    # Development instance next to the user's daemon
    $ ninomiya --testing daemon --interactive

    # In another terminal
    $ ninomiya --testing notify --summary "Build finished" --action open:Open --wait
    1
    action: open
    closed: dismissed
"""

from .main import main

__all__ = ["main"]
