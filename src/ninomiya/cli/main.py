"""
CLI Main - Entry point for the `ninomiya` command.

Usage:
    ninomiya [--testing] [daemon [--replace] [--interactive]]
    ninomiya [--testing] notify --summary S [options]
    ninomiya [--testing] close ID
    ninomiya [--testing] info
    ninomiya [--testing] demo
"""

import asyncio
import os
import sys

from ..config import NinomiyaConfig
from ..errors import NinomiyaError
from ..logging import configure_logging, parse_level
from .client import print_error, run_close, run_info, run_notify
from .daemon import run_daemon
from .demo import run_demo
from .parser import create_parser

__all__ = ["main"]

CLIENT_COMMANDS = {
    "notify": run_notify,
    "close": run_close,
    "info": run_info,
    "demo": run_demo,
}


def main(args: list[str] | None = None) -> int:
    """Main entry point for the ninomiya CLI.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    if args is None:
        args = sys.argv[1:]

    parser = create_parser()
    parsed = parser.parse_args(args)
    command = parsed.command or "daemon"

    env_level = os.environ.get("NINOMIYA_LOG")
    level = configure_logging(env_level)

    try:
        config = NinomiyaConfig.load(strict=False)
        # The environment already applied; only a level from the file is new
        if config.log_level != env_level and parse_level(config.log_level) != level:
            configure_logging(config.log_level)

        if command == "daemon":
            config = config.with_overrides(
                replace_existing=getattr(parsed, "replace", None),
                interactive=getattr(parsed, "interactive", None),
            )
            return run_daemon(config, testing=parsed.testing, bus_address=parsed.bus_address)

        bus_name = config.bus_name_for(parsed.testing)
        return asyncio.run(CLIENT_COMMANDS[command](parsed, bus_name))
    except KeyboardInterrupt:
        return 130
    except NinomiyaError as e:
        print_error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
