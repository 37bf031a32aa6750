"""The color variants, and their encoding into SGR parameters."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from math import sqrt
from typing import Union

from .core import ColorSpace

__all__ = [
    "Color",
    "NamedColor",
    "IndexedColor",
    "RgbColor",
    "color",
    "to_rgb",
    "encode_color",
]


def _build_color_table() -> list[tuple[int, int, int]]:
    """Returns the RGB values of the xterm 256 color palette."""

    table = [
        (0, 0, 0),
        (128, 0, 0),
        (0, 128, 0),
        (128, 128, 0),
        (0, 0, 128),
        (128, 0, 128),
        (0, 128, 128),
        (192, 192, 192),
        (128, 128, 128),
        (255, 0, 0),
        (0, 255, 0),
        (255, 255, 0),
        (0, 0, 255),
        (255, 0, 255),
        (0, 255, 255),
        (255, 255, 255),
    ]

    levels = (0, 95, 135, 175, 215, 255)

    for red in levels:
        for green in levels:
            for blue in levels:
                table.append((red, green, blue))

    for step in range(24):
        grey = 8 + step * 10
        table.append((grey, grey, grey))

    return table


COLOR_TABLE = _build_color_table()


def geometric_difference(
    first: tuple[int, int, int], second: tuple[int, int, int]
) -> float:
    """Gets the geometric difference of 2 RGB triplets.

    See https://en.wikipedia.org/wiki/Color_difference's Euclidian section.
    """

    red1, green1, blue1 = first
    red2, green2, blue2 = second

    redmean = (red1 + red2) // 2

    delta_red = red1 - red2
    delta_green = green1 - green2
    delta_blue = blue1 - blue2

    return sqrt(
        (2 + (redmean / 256)) * (delta_red ** 2)
        + 4 * (delta_green ** 2)
        + (2 + (255 - redmean) / 256) * (delta_blue ** 2)
    )


class NamedColor(Enum):
    """One of the 16 standard ANSI colors."""

    BLACK = 0
    RED = 1
    GREEN = 2
    YELLOW = 3
    BLUE = 4
    MAGENTA = 5
    CYAN = 6
    WHITE = 7
    BRIGHT_BLACK = 8
    BRIGHT_RED = 9
    BRIGHT_GREEN = 10
    BRIGHT_YELLOW = 11
    BRIGHT_BLUE = 12
    BRIGHT_MAGENTA = 13
    BRIGHT_CYAN = 14
    BRIGHT_WHITE = 15


@dataclass(frozen=True)
class IndexedColor:
    """A color of the 256 color palette."""

    index: int

    def __post_init__(self) -> None:
        if not 0 <= self.index < 256:
            raise ValueError(
                f"Color index must be between 0 and 256, got {self.index!r}."
            )


@dataclass(frozen=True)
class RgbColor:
    """A 24-bit true color."""

    red: int
    green: int
    blue: int

    def __post_init__(self) -> None:
        if any(not 0 <= val < 256 for val in self.rgb):
            raise ValueError(
                f"Color RGB values must be between 0 and 256, got {self.rgb!r}."
            )

    @property
    def rgb(self) -> tuple[int, int, int]:
        """Returns the (red, green, blue) triplet."""

        return (self.red, self.green, self.blue)

    @property
    def hex(self) -> str:
        """Returns the `#RRGGBB` representation."""

        return "#" + "".join(f"{i:02X}" for i in self.rgb)

    @classmethod
    def from_hex(cls, hexstring: str) -> RgbColor:
        """Generates an RgbColor from a `#rrggbb` (or `rrggbb`) string."""

        hexstring = hexstring.lstrip("#")

        if len(hexstring) != 6:
            raise ValueError(f"Hex colors need 6 digits, got {hexstring!r}.")

        return cls(
            int(hexstring[:2], base=16),
            int(hexstring[2:4], base=16),
            int(hexstring[4:], base=16),
        )


Color = Union[NamedColor, IndexedColor, RgbColor]


def color(description: str | int | tuple[int, int, int]) -> Color:
    """Creates a color from the given description.

    Strings starting with `#` are read as hex, other strings as color names
    (`"red"`, `"bright_cyan"`). Integers are palette indices, and 3-tuples are
    RGB triplets.
    """

    if isinstance(description, bool):
        raise ValueError(f"unknown descriptor {description!r}")

    if isinstance(description, int):
        return IndexedColor(description)

    if isinstance(description, tuple):
        return RgbColor(*description)

    if isinstance(description, str):
        if description.startswith("#"):
            return RgbColor.from_hex(description)

        name = description.strip().upper().replace("-", "_").replace(" ", "_")

        try:
            return NamedColor[name]

        except KeyError:
            raise ValueError(f"unknown color name {description!r}") from None

    raise ValueError(f"unknown descriptor {description!r}")


def to_rgb(value: Color) -> tuple[int, int, int]:
    """Returns the RGB triplet a color is displayed as in the xterm palette."""

    if isinstance(value, RgbColor):
        return value.rgb

    if isinstance(value, IndexedColor):
        return COLOR_TABLE[value.index]

    return COLOR_TABLE[value.value]


def _nearest_standard(rgb: tuple[int, int, int]) -> NamedColor:
    index = min(range(16), key=lambda i: geometric_difference(rgb, COLOR_TABLE[i]))

    return NamedColor(index)


def _eight_bit_index(rgb: tuple[int, int, int]) -> int:
    red, green, blue = (x / 255 for x in rgb)

    index = 16
    index += 36 * round(red * 5)
    index += 6 * round(green * 5)
    index += round(blue * 5)

    return index


def downgrade(value: Color, color_space: ColorSpace) -> Color | None:
    """Returns the closest color the given color space can display.

    `None` means the color space displays no colors at all.
    """

    if color_space is ColorSpace.NO_COLOR:
        return None

    if isinstance(value, NamedColor) or color_space is ColorSpace.TRUE_COLOR:
        return value

    if isinstance(value, IndexedColor):
        if color_space is ColorSpace.EIGHT_BIT:
            return value

        if value.index < 16:
            return NamedColor(value.index)

        return _nearest_standard(COLOR_TABLE[value.index])

    if color_space is ColorSpace.EIGHT_BIT:
        return IndexedColor(_eight_bit_index(value.rgb))

    return _nearest_standard(value.rgb)


def encode_color(
    value: Color | None,
    is_background: bool = False,
    color_space: ColorSpace = ColorSpace.TRUE_COLOR,
) -> str:
    """Returns the SGR parameters that select the given color.

    Args:
        value: The color to encode. `None` selects the terminal's default color.
        is_background: Encode as a background instead of a foreground color.
        color_space: The color space of the terminal, the color is downgraded to
            fit it.

    Returns:
        The parameter string, without the leading CSI and the trailing `m`.
    """

    if value is not None:
        value = downgrade(value, color_space)

    if value is None:
        return "49" if is_background else "39"

    if isinstance(value, NamedColor):
        index = value.value

        if index < 8:
            return str(index + (40 if is_background else 30))

        return str(index - 8 + (100 if is_background else 90))

    lead = 48 if is_background else 38

    if isinstance(value, IndexedColor):
        return f"{lead};5;{value.index}"

    return f"{lead};2;{';'.join(map(str, value.rgb))}"
