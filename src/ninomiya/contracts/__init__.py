"""
Contracts - Interfaces between the lifecycle machine and its collaborators.

- Renderer: turns records into something on screen and reports user input
- RendererEvents: what a renderer reports back (dismissal, action)
- SignalSink: where lifecycle signals go (the D-Bus interface in the daemon)
"""

from .renderer import RenderHandle, Renderer, RendererEvents, StackProvider
from .signals import SignalSink

__all__ = [
    "RenderHandle",
    "Renderer",
    "RendererEvents",
    "SignalSink",
    "StackProvider",
]
