"""
CLI Demo - Sends a set of notifications covering icon/image/action combinations.

Useful for eyeballing a renderer: no icon or image, icon only, image only,
image and icon, image and actions.
"""

import argparse

from ..hints import Hints, RawImage
from ..ipc import NotificationsClient
from ..models import EXPIRE_DEFAULT, Action, NotificationRequest

__all__ = ["demo_image", "demo_requests", "run_demo"]

DEMO_APP = "galax"
DEMO_ICON = "dialog-information"


def demo_image(size: int = 32) -> RawImage:
    """A small RGBA gradient, sent as raw image-data."""
    pixels = bytearray()
    for y in range(size):
        for x in range(size):
            pixels += bytes((x * 255 // (size - 1), y * 255 // (size - 1), 160, 255))
    return RawImage.from_pixels(size, size, bytes(pixels))


def demo_requests() -> list[NotificationRequest]:
    image = Hints(image=demo_image())

    def request(summary: str, body: str, **kwargs) -> NotificationRequest:
        return NotificationRequest(
            app_name=DEMO_APP,
            summary=summary,
            body=body,
            expire_timeout=EXPIRE_DEFAULT,
            **kwargs,
        )

    # Bodies are markup; the angle brackets are literal text
    return [
        request("no image or icon", "we are not alone / yowaku te tsuyoi hitori hitori da"),
        request("icon, no image", "&lt;load_galax&gt; let's upgrade the world!", app_icon=DEMO_ICON),
        request("image, no icon", "&lt;load_galax&gt; gatchaman crowds is a good anime", hints=image),
        request(
            "image and icon",
            "&lt;load_galax&gt; some weird alien gave me this book",
            app_icon=DEMO_ICON,
            hints=image,
        ),
        request(
            "image and actions",
            "&lt;load_galax&gt; what will you do?",
            app_icon=DEMO_ICON,
            hints=image,
            actions=(Action("key-1", "fight"), Action("key-2", "perish like a MESS")),
        ),
    ]


async def run_demo(args: argparse.Namespace, bus_name: str) -> int:
    async with NotificationsClient(bus_name, args.bus_address) as client:
        for request in demo_requests():
            notification_id = await client.notify(request)
            print(f"{notification_id}: {request.summary}")
    return 0
