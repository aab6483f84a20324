"""
Ninomiya - A notification daemon for the freedesktop.org Notifications interface.

Receives notifications over D-Bus, tracks their lifecycle and hands them
to a renderer. Also works as a client for itself or any other daemon.
"""

__version__ = "0.2.0"

from .config import NinomiyaConfig

__all__ = [
    "__version__",
    "NinomiyaConfig",
]
