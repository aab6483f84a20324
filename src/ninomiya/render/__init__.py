"""
Renderers - Components that put notifications in front of the user.

The lifecycle machine talks to them through the Renderer protocol in
ninomiya.contracts.
"""

from .console import ConsoleRenderer, format_notification, strip_markup

__all__ = ["ConsoleRenderer", "format_notification", "strip_markup"]
