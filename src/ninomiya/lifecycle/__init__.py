"""
Lifecycle - Process-level lifecycle of the daemon.

Components:
- SignalHandler: SIGTERM/SIGINT to graceful shutdown
"""

from .signals import SHUTDOWN_SIGNALS, SignalHandler

__all__ = ["SHUTDOWN_SIGNALS", "SignalHandler"]
