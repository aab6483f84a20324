"""
Hints - Typed access to the standardized notification hints.

Parses the raw ``a{sv}`` hint map of a Notify call into a Hints object.
Recognized hints are validated; everything else is kept in ``extra``,
unwrapped for the renderer or as Variants for a client sending them on.

Image precedence (highest first): image-data, image-path, icon_data.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from dbus_next import Variant

from .errors import ProtocolError

__all__ = [
    "Hints",
    "ImagePath",
    "RawImage",
    "Urgency",
    "parse_urgency",
]

RAW_IMAGE_SIGNATURE = "(iiibiiay)"

IMAGE_DATA = ("image-data", "image_data")
IMAGE_PATH = ("image-path", "image_path")
# Despite the name this holds the image, which is why it got deprecated
ICON_DATA = "icon_data"


class Urgency(IntEnum):
    """Urgency levels from the notification standard."""

    LOW = 0
    NORMAL = 1
    CRITICAL = 2


def parse_urgency(value: str) -> Urgency:
    """Parse an urgency name or number (``low``, ``1``, ``CRITICAL``)."""
    text = value.strip().lower()
    if text.isdigit():
        try:
            return Urgency(int(text))
        except ValueError:
            raise ProtocolError(f"Urgency must be 0, 1 or 2 (got {value})") from None
    try:
        return Urgency[text.upper()]
    except KeyError:
        raise ProtocolError(f"Unknown urgency: {value}") from None


@dataclass(frozen=True)
class RawImage:
    """Raw pixel data as sent in the image-data hint."""

    width: int
    height: int
    rowstride: int
    has_alpha: bool
    bits_per_sample: int
    channels: int
    data: bytes = field(repr=False)

    @classmethod
    def from_variant(cls, name: str, variant: Variant) -> "RawImage":
        if variant.signature != RAW_IMAGE_SIGNATURE:
            raise ProtocolError(
                f"Hint '{name}' has signature {variant.signature} "
                f"(expected {RAW_IMAGE_SIGNATURE})"
            )
        width, height, rowstride, has_alpha, bits, channels, data = variant.value
        return cls(width, height, rowstride, bool(has_alpha), bits, channels, bytes(data))

    def to_variant(self) -> Variant:
        return Variant(
            RAW_IMAGE_SIGNATURE,
            [
                self.width,
                self.height,
                self.rowstride,
                self.has_alpha,
                self.bits_per_sample,
                self.channels,
                self.data,
            ],
        )

    @classmethod
    def from_pixels(cls, width: int, height: int, data: bytes, has_alpha: bool = True) -> "RawImage":
        """Build an 8-bit RGB(A) image, deriving rowstride and channel count."""
        channels = 4 if has_alpha else 3
        return cls(width, height, width * channels, has_alpha, 8, channels, data)


@dataclass(frozen=True)
class ImagePath:
    """Image referenced by path or file:// URI."""

    path: str


Image = RawImage | ImagePath


def _expect(name: str, variant: Variant, signatures: tuple[str, ...]) -> Any:
    if variant.signature not in signatures:
        raise ProtocolError(
            f"Hint '{name}' has signature {variant.signature} "
            f"(expected one of {', '.join(signatures)})"
        )
    return variant.value


@dataclass(frozen=True)
class Hints:
    """The recognized hints of one notification plus pass-through extras."""

    urgency: Urgency = Urgency.NORMAL
    image: Image | None = None
    category: str | None = None
    desktop_entry: str | None = None
    resident: bool = False
    transient: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dbus(cls, raw: dict[str, Variant], unwrap: bool = True) -> "Hints":
        """Build hints from a D-Bus hint map.

        With unwrap=False unrecognized hints keep their Variant, so a
        client can send them on with their original signature.

        Raises:
            ProtocolError: If a recognized hint has the wrong type or value
        """
        remaining = dict(raw)
        kwargs: dict[str, Any] = {}

        if "urgency" in remaining:
            # Some senders use int32 instead of the standard byte
            level = _expect("urgency", remaining.pop("urgency"), ("y", "i", "u"))
            try:
                kwargs["urgency"] = Urgency(level)
            except ValueError:
                raise ProtocolError(f"Urgency must be 0, 1 or 2 (got {level})") from None

        # Reverse precedence order so every image hint is consumed
        image: Image | None = None
        if ICON_DATA in remaining:
            image = RawImage.from_variant(ICON_DATA, remaining.pop(ICON_DATA))
        for name in IMAGE_PATH:
            if name in remaining:
                image = ImagePath(_expect(name, remaining.pop(name), ("s",)))
        for name in IMAGE_DATA:
            if name in remaining:
                image = RawImage.from_variant(name, remaining.pop(name))
        kwargs["image"] = image

        if "category" in remaining:
            kwargs["category"] = _expect("category", remaining.pop("category"), ("s",))
        if "desktop-entry" in remaining:
            kwargs["desktop_entry"] = _expect("desktop-entry", remaining.pop("desktop-entry"), ("s",))
        if "resident" in remaining:
            kwargs["resident"] = bool(_expect("resident", remaining.pop("resident"), ("b",)))
        if "transient" in remaining:
            kwargs["transient"] = bool(_expect("transient", remaining.pop("transient"), ("b",)))

        if unwrap:
            kwargs["extra"] = {name: variant.value for name, variant in remaining.items()}
        else:
            kwargs["extra"] = remaining
        return cls(**kwargs)

    def to_dbus(self) -> dict[str, Variant]:
        """Convert into a hint map suitable for a Notify call."""
        hints: dict[str, Variant] = {}
        if self.urgency != Urgency.NORMAL:
            hints["urgency"] = Variant("y", int(self.urgency))
        if isinstance(self.image, RawImage):
            hints["image-data"] = self.image.to_variant()
        elif isinstance(self.image, ImagePath):
            hints["image-path"] = Variant("s", self.image.path)
        if self.category is not None:
            hints["category"] = Variant("s", self.category)
        if self.desktop_entry is not None:
            hints["desktop-entry"] = Variant("s", self.desktop_entry)
        if self.resident:
            hints["resident"] = Variant("b", True)
        if self.transient:
            hints["transient"] = Variant("b", True)
        for name, value in self.extra.items():
            hints[name] = value if isinstance(value, Variant) else _infer_variant(name, value)
        return hints


def _infer_variant(name: str, value: Any) -> Variant:
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return Variant("b", value)
    if isinstance(value, int):
        return Variant("i", value)
    if isinstance(value, float):
        return Variant("d", value)
    if isinstance(value, str):
        return Variant("s", value)
    raise ProtocolError(f"Cannot send hint '{name}' of type {type(value).__name__}")
