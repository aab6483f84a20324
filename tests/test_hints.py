"""Tests for hint parsing."""

import pytest
from dbus_next import Variant

from ninomiya.errors import ProtocolError
from ninomiya.hints import Hints, ImagePath, RawImage, Urgency, parse_urgency


def raw_image_variant(width: int = 2, height: int = 2) -> Variant:
    return RawImage.from_pixels(width, height, bytes(width * height * 4)).to_variant()


class TestUrgency:
    """Test urgency parsing."""

    def test_default_is_normal(self):
        """Missing urgency hint means normal."""
        assert Hints.from_dbus({}).urgency is Urgency.NORMAL

    def test_byte(self):
        """The standard byte urgency is accepted."""
        hints = Hints.from_dbus({"urgency": Variant("y", 2)})

        assert hints.urgency is Urgency.CRITICAL

    def test_int32_tolerated(self):
        """Senders using int32 are accepted too."""
        hints = Hints.from_dbus({"urgency": Variant("i", 0)})

        assert hints.urgency is Urgency.LOW

    def test_out_of_range(self):
        """Urgency above 2 is a protocol error."""
        with pytest.raises(ProtocolError):
            Hints.from_dbus({"urgency": Variant("y", 7)})

    def test_wrong_type(self):
        """A string urgency is a protocol error."""
        with pytest.raises(ProtocolError):
            Hints.from_dbus({"urgency": Variant("s", "critical")})

    def test_parse_urgency(self):
        """Names and digits parse, case-insensitively."""
        assert parse_urgency("low") is Urgency.LOW
        assert parse_urgency("CRITICAL") is Urgency.CRITICAL
        assert parse_urgency("1") is Urgency.NORMAL

    def test_parse_urgency_invalid(self):
        """Unknown urgency names are rejected."""
        with pytest.raises(ProtocolError):
            parse_urgency("urgent")
        with pytest.raises(ProtocolError):
            parse_urgency("5")


class TestImages:
    """Test image hints and their precedence."""

    def test_image_path(self):
        """image-path becomes an ImagePath."""
        hints = Hints.from_dbus({"image-path": Variant("s", "/tmp/cat.png")})

        assert hints.image == ImagePath("/tmp/cat.png")

    def test_legacy_spelling(self):
        """The image_path spelling of older senders is accepted."""
        hints = Hints.from_dbus({"image_path": Variant("s", "file:///tmp/cat.png")})

        assert hints.image == ImagePath("file:///tmp/cat.png")

    def test_raw_image(self):
        """image-data becomes a RawImage."""
        hints = Hints.from_dbus({"image-data": raw_image_variant(3, 2)})

        assert isinstance(hints.image, RawImage)
        assert (hints.image.width, hints.image.height) == (3, 2)
        assert hints.image.rowstride == 12
        assert hints.image.has_alpha is True

    def test_precedence(self):
        """image-data beats image-path, which beats icon_data."""
        all_three = {
            "icon_data": raw_image_variant(1, 1),
            "image-path": Variant("s", "/tmp/cat.png"),
            "image-data": raw_image_variant(4, 4),
        }

        assert Hints.from_dbus(all_three).image.width == 4

        del all_three["image-data"]
        assert Hints.from_dbus(all_three).image == ImagePath("/tmp/cat.png")

        del all_three["image-path"]
        assert Hints.from_dbus(all_three).image.width == 1

    def test_image_hints_not_in_extra(self):
        """Consumed image hints do not leak into extra."""
        hints = Hints.from_dbus({
            "icon_data": raw_image_variant(),
            "image-data": raw_image_variant(),
        })

        assert hints.extra == {}

    def test_bad_raw_image(self):
        """image-data with the wrong structure is a protocol error."""
        with pytest.raises(ProtocolError):
            Hints.from_dbus({"image-data": Variant("s", "nope")})


class TestOtherHints:
    """Test the remaining hints."""

    def test_flags_and_strings(self):
        """category, desktop-entry, resident and transient are recognized."""
        hints = Hints.from_dbus({
            "category": Variant("s", "email.arrived"),
            "desktop-entry": Variant("s", "thunderbird"),
            "resident": Variant("b", True),
            "transient": Variant("b", False),
        })

        assert hints.category == "email.arrived"
        assert hints.desktop_entry == "thunderbird"
        assert hints.resident is True
        assert hints.transient is False
        assert hints.extra == {}

    def test_unknown_hints_pass_through(self):
        """Unrecognized hints are unwrapped into extra."""
        hints = Hints.from_dbus({"x-volume": Variant("i", 40), "sound-name": Variant("s", "bell")})

        assert hints.extra == {"x-volume": 40, "sound-name": "bell"}

    def test_kept_variants_round_trip(self):
        """With unwrap=False unknown hints keep their signature through to_dbus()."""
        raw = {"x-count": Variant("u", 5), "x-level": Variant("y", 7), "urgency": Variant("y", 0)}

        hints = Hints.from_dbus(raw, unwrap=False)

        assert hints.urgency is Urgency.LOW
        assert hints.to_dbus() == raw

    def test_wrong_category_type(self):
        """A non-string category is a protocol error."""
        with pytest.raises(ProtocolError):
            Hints.from_dbus({"category": Variant("i", 3)})

    def test_to_dbus(self):
        """to_dbus() emits standard signatures and infers extras."""
        hints = Hints(
            urgency=Urgency.CRITICAL,
            image=ImagePath("/tmp/cat.png"),
            category="im",
            extra={"x-count": 3, "x-flag": True},
        )

        raw = hints.to_dbus()

        assert raw["urgency"] == Variant("y", 2)
        assert raw["image-path"] == Variant("s", "/tmp/cat.png")
        assert raw["category"] == Variant("s", "im")
        assert raw["x-count"] == Variant("i", 3)
        assert raw["x-flag"] == Variant("b", True)
        assert "resident" not in raw

    def test_to_dbus_rejects_unsendable(self):
        """Extras without an obvious signature cannot be sent."""
        with pytest.raises(ProtocolError):
            Hints(extra={"x-list": [1, 2]}).to_dbus()
