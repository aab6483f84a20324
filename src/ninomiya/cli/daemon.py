"""
CLI Daemon - Runs the notification daemon in the foreground.

The daemon lives as long as the process: it exits on SIGTERM/SIGINT, when
another daemon takes the bus name over, or when the bus goes away.
"""

import asyncio
import sys

import structlog

from .. import __version__
from ..config import NinomiyaConfig
from ..daemon import NotificationDaemon
from ..errors import BusError
from ..lifecycle import SignalHandler
from .client import print_error

__all__ = ["run_daemon"]

logger = structlog.get_logger(__name__)


def run_daemon(config: NinomiyaConfig, testing: bool = False, bus_address: str | None = None) -> int:
    """Run the daemon until it is told to stop.

    Returns:
        Exit code (0 for a clean shutdown, 1 if startup failed)
    """
    bus_name = config.bus_name_for(testing)
    try:
        asyncio.run(_serve(config, testing, bus_address))
    except BusError as e:
        if e.already_running:
            print_error(
                f"Another notification daemon already owns {e.bus_name}. "
                "Stop it, or start ninomiya with --replace."
            )
        else:
            print_error(f"Cannot start the daemon: {e}")
        return 1

    logger.info("daemon_exited", name=bus_name)
    return 0


async def _serve(config: NinomiyaConfig, testing: bool, bus_address: str | None) -> None:
    signal_handler = SignalHandler()
    signal_handler.setup()
    try:
        daemon = NotificationDaemon(config, testing=testing, bus_address=bus_address)
        print(f"ninomiya {__version__} serving {daemon.bus_name}", file=sys.stderr)
        await daemon.run(signal_handler.shutdown_event)
    finally:
        signal_handler.restore()
